"""
antartica.bot.cogs.roles — Role Toggle Commands
================================================

- /role add | remove — moderators (Manage Roles) configure which roles
  members may toggle on themselves, optionally gated by a permission
  bitmask.  Both the moderator and the bot must be able to manage the role.
- /role message-create | message-remove | message-list — public "role
  list" messages that re-render whenever the toggle set changes.
- /toggle-role [role] — a member toggles a configured role, or lists the
  ones they hold and can add.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import discord
from discord import app_commands
from discord.ext import commands

from antartica.bot.responses import handle_command_error, respond
from antartica.constants import (
    EMBED_DESCRIPTION_LIMIT,
    EMPTY_ROLE_LIST_TEXT,
    SELF_TOGGLE_COMMAND,
    StaticMessageType,
)
from antartica.database.engine import run_db
from antartica.engine.role_repository import actor_from_member
from antartica.engine.roles import Actor
from antartica.errors import AntarticaError, LookupFailure
from antartica.services.embeds import Tone, build_self_role_embed, fit_lines, tone_embed
from antartica.services.role_service import check_manage_role, list_self_roles, toggle_self_role
from antartica.services.role_toggle_service import (
    parse_permissions,
    remove_role_toggle,
    upsert_role_toggle,
)
from antartica.services.static_message_service import (
    create_static_message,
    list_static_messages,
    load_config,
    parse_message_id,
    remove_static_message,
)

if TYPE_CHECKING:
    from antartica.bot.core import AntarticaBot

logger = logging.getLogger(__name__)

BOT_UNVERIFIED = "Bot permissions could not be verified yet."


def interaction_actor(interaction: discord.Interaction) -> Actor | None:
    """The caller as an :class:`Actor`, if the payload carries a full member."""
    if not isinstance(interaction.user, discord.Member) or interaction.guild is None:
        return None
    return actor_from_member(interaction.user, owner_id=interaction.guild.owner_id)


class Roles(commands.Cog, name="Roles"):
    """Self-assignable role configuration and toggling."""

    role = app_commands.Group(
        name="role",
        description="Manage self-assignable roles.",
        guild_only=True,
        default_permissions=discord.Permissions(manage_roles=True),
    )

    def __init__(self, bot: AntarticaBot) -> None:
        self.bot = bot

    async def _refresh_role_lists(self, guild_id: int) -> None:
        try:
            await self.bot.synchronizer.refresh_role_lists(guild_id)
        except AntarticaError as exc:
            logger.warning("Role list refresh failed for guild %s: %s", guild_id, exc)

    # -------------------------------------------------------------------
    # /role add | remove
    # -------------------------------------------------------------------
    @role.command(name="add", description="Make a role self-assignable.")
    @app_commands.describe(
        role="Role members may toggle",
        description="Shown next to the role in role lists",
        permissions="Permission bitmask a member needs to toggle it (default 0)",
    )
    async def role_add(
        self,
        interaction: discord.Interaction,
        role: discord.Role,
        description: str | None = None,
        permissions: str | None = None,
    ) -> None:
        guild_id = interaction.guild_id or 0
        required = parse_permissions(permissions)

        try:
            decision = await check_manage_role(
                self.bot.roles, guild_id, interaction.user.id, role.id,
                actor=interaction_actor(interaction),
            )
        except LookupFailure as exc:
            logger.warning("Role check failed in guild %s: %s", guild_id, exc)
            await respond(interaction, Tone.WARN, BOT_UNVERIFIED)
            return
        if not decision:
            await respond(interaction, Tone.DECLINE, decision.reason)
            return

        created = await run_db(
            upsert_role_toggle, self.bot.engine, guild_id, role.id, required, description or "",
        )
        await self._refresh_role_lists(guild_id)
        if created:
            await respond(interaction, Tone.SUCCESS, f"Added {role.mention} to the role toggles.")
        else:
            await respond(interaction, Tone.SUCCESS, f"Updated {role.mention} in the role toggles.")

    @role.command(name="remove", description="Stop a role from being self-assignable.")
    @app_commands.describe(role="Role to remove from the toggles")
    async def role_remove(self, interaction: discord.Interaction, role: discord.Role) -> None:
        guild_id = interaction.guild_id or 0
        try:
            decision = await check_manage_role(
                self.bot.roles, guild_id, interaction.user.id, role.id,
                actor=interaction_actor(interaction),
            )
        except LookupFailure as exc:
            logger.warning("Role check failed in guild %s: %s", guild_id, exc)
            await respond(interaction, Tone.WARN, BOT_UNVERIFIED)
            return
        if not decision:
            await respond(interaction, Tone.DECLINE, decision.reason)
            return

        removed = await run_db(remove_role_toggle, self.bot.engine, guild_id, role.id)
        if not removed:
            await respond(interaction, Tone.INFO, f"{role.mention} was not in the role toggles.")
            return
        await self._refresh_role_lists(guild_id)
        await respond(interaction, Tone.SUCCESS, f"Removed {role.mention} from the role toggles.")

    # -------------------------------------------------------------------
    # /role message-create | message-remove | message-list
    # -------------------------------------------------------------------
    @role.command(name="message-create", description="Post a live list of self-assignable roles.")
    @app_commands.describe(
        channel="Channel to post the role list in",
        title="Override the list title",
        description="Override the list description",
    )
    async def message_create(
        self,
        interaction: discord.Interaction,
        channel: discord.TextChannel,
        title: str | None = None,
        description: str | None = None,
    ) -> None:
        guild_id = interaction.guild_id or 0
        config = {
            k: v.strip() for k, v in (("title", title), ("description", description))
            if v and v.strip()
        }

        await interaction.response.defer(ephemeral=True, thinking=True)

        try:
            message_id = await self.bot.platform.create_message(
                channel.id, embeds=[tone_embed(Tone.NEUTRAL, EMPTY_ROLE_LIST_TEXT)],
            )
        except discord.HTTPException:
            logger.exception("Failed to post role list in channel %s", channel.id)
            await respond(interaction, Tone.ERROR, "Failed to create the role list message.")
            return

        try:
            message = await run_db(
                create_static_message,
                self.bot.engine,
                guild_id,
                channel.id,
                message_id,
                StaticMessageType.ROLE_LIST,
                config,
            )
        except AntarticaError:
            logger.exception("Failed to store role list message %s", message_id)
            try:
                await self.bot.platform.delete_message(channel.id, message_id)
            except discord.HTTPException as exc:
                logger.warning("Could not delete placeholder %s: %s", message_id, exc)
            await respond(interaction, Tone.ERROR, "Failed to store the role list message.")
            return

        await self.bot.synchronizer.render_now(message)
        await respond(interaction, Tone.SUCCESS, f"Role list message created in {channel.mention}.")

    @role.command(name="message-remove", description="Stop updating a role list message.")
    @app_commands.describe(message_id="ID of the role list message")
    async def message_remove(self, interaction: discord.Interaction, message_id: str) -> None:
        removed = await run_db(
            remove_static_message,
            self.bot.engine,
            interaction.guild_id or 0,
            parse_message_id(message_id),
            StaticMessageType.ROLE_LIST,
        )
        if removed:
            await respond(interaction, Tone.SUCCESS, "Role list message removed.")
        else:
            await respond(interaction, Tone.INFO, "That message was not registered.")

    @role.command(name="message-list", description="List role list messages.")
    async def message_list(self, interaction: discord.Interaction) -> None:
        messages = await run_db(
            list_static_messages,
            self.bot.engine,
            interaction.guild_id or 0,
            StaticMessageType.ROLE_LIST,
        )
        if not messages:
            await respond(interaction, Tone.INFO, "No role list messages are configured.")
            return

        lines = []
        for message in messages:
            line = f"<#{message.channel_id}> - {message.message_id}"
            try:
                title = str(load_config(message).get("title") or "")
            except ValueError:
                title = ""
            if title:
                line += f" - {title}"
            lines.append(line)
        await respond(
            interaction,
            Tone.INFO,
            embed=tone_embed(
                Tone.INFO, fit_lines(lines, EMBED_DESCRIPTION_LIMIT), title="Role list messages",
            ),
        )

    # -------------------------------------------------------------------
    # /toggle-role
    # -------------------------------------------------------------------
    @app_commands.command(name=SELF_TOGGLE_COMMAND, description="Add or remove a self-assignable role.")
    @app_commands.describe(role="Role to toggle (leave empty to see your options)")
    @app_commands.guild_only()
    async def toggle_role(
        self, interaction: discord.Interaction, role: discord.Role | None = None,
    ) -> None:
        guild_id = interaction.guild_id or 0
        actor = interaction_actor(interaction)

        if role is None:
            try:
                have, available = await list_self_roles(
                    self.bot.engine, self.bot.roles, guild_id, interaction.user.id, actor=actor,
                )
            except LookupFailure as exc:
                logger.warning("Self role listing failed in guild %s: %s", guild_id, exc)
                await respond(interaction, Tone.WARN, BOT_UNVERIFIED)
                return
            if not have and not available:
                await respond(interaction, Tone.INFO, "No self-assignable roles are available to you.")
                return
            await respond(interaction, Tone.INFO, embed=build_self_role_embed(have, available))
            return

        try:
            outcome = await toggle_self_role(
                self.bot.engine,
                self.bot.roles,
                self.bot.platform,
                guild_id,
                interaction.user.id,
                role.id,
                actor=actor,
            )
        except LookupFailure as exc:
            logger.warning("Self role toggle failed in guild %s: %s", guild_id, exc)
            await respond(interaction, Tone.WARN, BOT_UNVERIFIED)
            return
        except discord.HTTPException:
            logger.exception("Failed to toggle role %s for %s", role.id, interaction.user.id)
            await respond(interaction, Tone.ERROR, "Failed to toggle the role.")
            return

        if not outcome:
            await respond(interaction, Tone.DECLINE, outcome.decision.reason)
        elif outcome.added:
            await respond(interaction, Tone.SUCCESS, f"Added {role.mention}.")
        else:
            await respond(interaction, Tone.SUCCESS, f"Removed {role.mention}.")

    # -------------------------------------------------------------------
    # Error handling
    # -------------------------------------------------------------------
    async def cog_app_command_error(
        self, interaction: discord.Interaction, error: app_commands.AppCommandError,
    ) -> None:
        await handle_command_error(interaction, error)


async def setup(bot: AntarticaBot) -> None:
    await bot.add_cog(Roles(bot))
