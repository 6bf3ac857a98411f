"""
antartica.bot.cogs.reaction_admin — /reaction Slash Commands
=============================================================

Server admins (Manage Server) choose which emojis are tracked and where
leaderboards are shown:

- /reaction add | remove | list
- /reaction leaderboard create | remove | list

Leaderboards are static messages: the bot posts a placeholder, stores the
binding, and from then on the synchronizer edits the message whenever the
leaderboard for that emoji changes (``instant`` cadence only).
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

import discord
from discord import app_commands
from discord.ext import commands

from antartica.bot.responses import handle_command_error, respond
from antartica.constants import (
    EMBED_DESCRIPTION_LIMIT,
    MAX_LEADERBOARD_TOP,
    StaticMessageType,
    UpdateCadence,
)
from antartica.database.engine import run_db
from antartica.engine.emoji import EmojiKey, parse_emoji
from antartica.errors import AntarticaError, LookupFailure, Refusal, ValidationError
from antartica.services.embeds import Tone, build_leaderboard_placeholder, fit_lines, tone_embed
from antartica.services.reaction_track_service import (
    list_reaction_tracks,
    remove_reaction_track,
    upsert_reaction_track,
)
from antartica.services.static_message_service import (
    create_static_message,
    list_static_messages,
    load_config,
    parse_cadence,
    parse_message_id,
    remove_static_message,
)

if TYPE_CHECKING:
    from antartica.bot.core import AntarticaBot

logger = logging.getLogger(__name__)

CADENCE_CHOICES = [app_commands.Choice(name=c.value, value=c.value) for c in UpdateCadence]


class ReactionAdmin(commands.Cog, name="ReactionAdmin"):
    """Configure tracked reactions and their leaderboards."""

    reaction = app_commands.Group(
        name="reaction",
        description="Manage tracked reactions.",
        guild_only=True,
        default_permissions=discord.Permissions(manage_guild=True),
    )
    leaderboard = app_commands.Group(
        name="leaderboard",
        description="Manage reaction leaderboard messages.",
        parent=reaction,
    )

    def __init__(self, bot: AntarticaBot) -> None:
        self.bot = bot

    async def _checked_emoji(self, guild_id: int, raw: str) -> EmojiKey:
        """Parse *raw*; custom emojis must belong to the guild."""
        emoji = parse_emoji(raw)
        if emoji.is_custom:
            try:
                exists = await self.bot.platform.guild_has_emoji(guild_id, emoji.id)
            except LookupFailure as exc:
                logger.warning("Emoji check failed for %s: %s", emoji.key, exc)
                raise ValidationError(
                    "Couldn't verify that emoji. Make sure it belongs to this "
                    "server or use a unicode emoji."
                ) from exc
            if not exists:
                raise Refusal("Custom emojis must belong to this server.")
        return emoji

    # -------------------------------------------------------------------
    # /reaction add | remove | list
    # -------------------------------------------------------------------
    @reaction.command(name="add", description="Track an emoji for reaction counts.")
    @app_commands.describe(
        emoji="Emoji to track (unicode or a custom emoji from this server)",
        title="Leaderboard title for this emoji",
        description="Optional description",
    )
    async def reaction_add(
        self,
        interaction: discord.Interaction,
        emoji: str,
        title: str,
        description: str | None = None,
    ) -> None:
        guild_id = interaction.guild_id or 0
        key = await self._checked_emoji(guild_id, emoji)
        created = await run_db(
            upsert_reaction_track, self.bot.engine, guild_id, key, title, description or "",
        )
        if created:
            await respond(interaction, Tone.SUCCESS, f"Tracking {key.display} for reactions.")
        else:
            await respond(interaction, Tone.SUCCESS, f"Updated tracking for {key.display}.")

    @reaction.command(name="remove", description="Stop tracking an emoji.")
    @app_commands.describe(emoji="Emoji to stop tracking")
    async def reaction_remove(self, interaction: discord.Interaction, emoji: str) -> None:
        key = parse_emoji(emoji)
        removed = await run_db(
            remove_reaction_track, self.bot.engine, interaction.guild_id or 0, key.key,
        )
        if removed:
            await respond(interaction, Tone.SUCCESS, f"Stopped tracking {key.display}.")
        else:
            await respond(interaction, Tone.INFO, f"{key.display} was not being tracked.")

    @reaction.command(name="list", description="List tracked emojis.")
    async def reaction_list(self, interaction: discord.Interaction) -> None:
        tracks = await run_db(list_reaction_tracks, self.bot.engine, interaction.guild_id or 0)
        if not tracks:
            await respond(interaction, Tone.INFO, "No reactions are being tracked.")
            return

        lines = []
        for track in tracks:
            display = EmojiKey.from_stored(
                track.emoji_key, track.emoji_name, bool(track.emoji_animated),
            ).display
            line = f"{display} — {track.title}"
            if track.description:
                line += f" ({track.description})"
            lines.append(line)
        await respond(
            interaction,
            Tone.INFO,
            embed=tone_embed(
                Tone.INFO, fit_lines(lines, EMBED_DESCRIPTION_LIMIT), title="Tracked reactions",
            ),
        )

    # -------------------------------------------------------------------
    # /reaction leaderboard create | remove | list
    # -------------------------------------------------------------------
    @leaderboard.command(name="create", description="Post a live leaderboard for an emoji.")
    @app_commands.describe(
        channel="Channel to post the leaderboard in",
        emoji="Tracked emoji to rank by",
        update="How often the leaderboard refreshes",
        top=f"Number of users to show, 1-{MAX_LEADERBOARD_TOP} (default from config)",
        title="Override the leaderboard title",
    )
    @app_commands.choices(update=CADENCE_CHOICES)
    async def leaderboard_create(
        self,
        interaction: discord.Interaction,
        channel: discord.TextChannel,
        emoji: str,
        update: str,
        top: Optional[app_commands.Range[int, 1, MAX_LEADERBOARD_TOP]] = None,
        title: str | None = None,
    ) -> None:
        guild_id = interaction.guild_id or 0
        cadence = parse_cadence(update)
        if top is not None and not 1 <= top <= MAX_LEADERBOARD_TOP:
            raise ValidationError(f"Top must be between 1 and {MAX_LEADERBOARD_TOP}.")
        key = await self._checked_emoji(guild_id, emoji)

        config: dict = {"emoji_key": key.key, "emoji_name": key.name}
        if key.animated:
            config["emoji_animated"] = True
        if top:
            config["top"] = top
        if title and title.strip():
            config["title"] = title.strip()

        await interaction.response.defer(ephemeral=True, thinking=True)

        try:
            message_id = await self.bot.platform.create_message(
                channel.id, embeds=[build_leaderboard_placeholder(key.display)],
            )
        except discord.HTTPException:
            logger.exception("Failed to post leaderboard placeholder in channel %s", channel.id)
            await respond(interaction, Tone.ERROR, "Failed to create the leaderboard message.")
            return

        try:
            message = await run_db(
                create_static_message,
                self.bot.engine,
                guild_id,
                channel.id,
                message_id,
                StaticMessageType.LEADERBOARD,
                config,
                cadence,
            )
        except AntarticaError:
            logger.exception("Failed to store leaderboard message %s", message_id)
            await self._discard_placeholder(channel.id, message_id)
            await respond(interaction, Tone.ERROR, "Failed to store the leaderboard message.")
            return

        await self.bot.synchronizer.render_now(message)
        await respond(interaction, Tone.SUCCESS, f"Leaderboard message created in {channel.mention}.")

    async def _discard_placeholder(self, channel_id: int, message_id: int) -> None:
        try:
            await self.bot.platform.delete_message(channel_id, message_id)
        except discord.HTTPException as exc:
            logger.warning("Could not delete placeholder %s: %s", message_id, exc)

    @leaderboard.command(name="remove", description="Stop updating a leaderboard message.")
    @app_commands.describe(message_id="ID of the leaderboard message")
    async def leaderboard_remove(self, interaction: discord.Interaction, message_id: str) -> None:
        removed = await run_db(
            remove_static_message,
            self.bot.engine,
            interaction.guild_id or 0,
            parse_message_id(message_id),
            StaticMessageType.LEADERBOARD,
        )
        if removed:
            await respond(interaction, Tone.SUCCESS, "Leaderboard message removed.")
        else:
            await respond(interaction, Tone.INFO, "That message was not registered.")

    @leaderboard.command(name="list", description="List leaderboard messages.")
    async def leaderboard_list(self, interaction: discord.Interaction) -> None:
        messages = await run_db(
            list_static_messages,
            self.bot.engine,
            interaction.guild_id or 0,
            StaticMessageType.LEADERBOARD,
        )
        if not messages:
            await respond(interaction, Tone.INFO, "No leaderboard messages are configured.")
            return

        lines = []
        for message in messages:
            try:
                config = load_config(message)
            except ValueError:
                config = {}
            display = EmojiKey.from_stored(
                str(config.get("emoji_key") or "?"),
                str(config.get("emoji_name") or ""),
                bool(config.get("emoji_animated")),
            ).display
            lines.append(
                f"{display} — <#{message.channel_id}> — {message.update_cadence} "
                f"(`{message.message_id}`)"
            )
        await respond(
            interaction,
            Tone.INFO,
            embed=tone_embed(
                Tone.INFO, fit_lines(lines, EMBED_DESCRIPTION_LIMIT), title="Leaderboard messages",
            ),
        )

    # -------------------------------------------------------------------
    # Error handling
    # -------------------------------------------------------------------
    async def cog_app_command_error(
        self, interaction: discord.Interaction, error: app_commands.AppCommandError,
    ) -> None:
        await handle_command_error(interaction, error)


async def setup(bot: AntarticaBot) -> None:
    await bot.add_cog(ReactionAdmin(bot))
