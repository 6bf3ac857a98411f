"""
antartica.bot.platform — Discord Side Effects
==============================================

:class:`DiscordPlatform` is the only place that turns ids into discord.py
REST calls.  The dispatcher, the role service and the cogs depend on it
instead of reaching into the client directly, which keeps them testable
with an ``AsyncMock``.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

import discord

from antartica.errors import LookupFailure

logger = logging.getLogger(__name__)


class DiscordPlatform:
    def __init__(self, client: discord.Client) -> None:
        self.client = client

    # -------------------------------------------------------------------
    # Messages
    # -------------------------------------------------------------------
    async def create_message(
        self,
        channel_id: int,
        content: str = "",
        embeds: Sequence[discord.Embed] = (),
    ) -> int:
        """Post a message and return its id."""
        channel = self.client.get_partial_messageable(channel_id)
        message = await channel.send(content=content or None, embeds=list(embeds))
        return message.id

    async def edit_message(
        self,
        channel_id: int,
        message_id: int,
        content: str | None = None,
        embeds: Sequence[discord.Embed] = (),
    ) -> None:
        partial = self.client.get_partial_messageable(channel_id).get_partial_message(message_id)
        kwargs: dict = {"embeds": list(embeds)}
        if content is not None:
            kwargs["content"] = content or None
        await partial.edit(**kwargs)

    async def delete_message(self, channel_id: int, message_id: int) -> None:
        partial = self.client.get_partial_messageable(channel_id).get_partial_message(message_id)
        await partial.delete()

    async def get_message_author(self, channel_id: int, message_id: int) -> int | None:
        """Author id of a message: gateway cache first, then REST.

        Returns ``None`` if the message can't be fetched.
        """
        for cached in reversed(self.client.cached_messages):
            if cached.id == message_id:
                return cached.author.id

        channel = self.client.get_partial_messageable(channel_id)
        try:
            message = await channel.fetch_message(message_id)
        except discord.HTTPException as exc:
            logger.warning(
                "Could not fetch message %s in channel %s: %s",
                message_id, channel_id, exc,
            )
            return None
        return message.author.id

    # -------------------------------------------------------------------
    # Users / emojis / roles
    # -------------------------------------------------------------------
    async def is_bot_user(self, guild_id: int, user_id: int) -> bool:
        """Whether *user_id* is a bot account (cache first, then REST).

        Raises
        ------
        LookupFailure
            If the user can't be fetched.
        """
        user = self.client.get_user(user_id)
        if user is None:
            guild = self.client.get_guild(guild_id)
            user = guild.get_member(user_id) if guild else None
        if user is None:
            try:
                user = await self.client.fetch_user(user_id)
            except discord.HTTPException as exc:
                raise LookupFailure(f"could not fetch user {user_id}: {exc}") from exc
        return user.bot

    async def guild_has_emoji(self, guild_id: int, emoji_id: int) -> bool:
        """Existence check for a custom emoji in a guild."""
        guild = self.client.get_guild(guild_id)
        if guild is not None and guild.get_emoji(emoji_id) is not None:
            return True
        if guild is None:
            try:
                guild = await self.client.fetch_guild(guild_id)
            except discord.HTTPException as exc:
                raise LookupFailure(f"could not fetch guild {guild_id}: {exc}") from exc
        try:
            await guild.fetch_emoji(emoji_id)
        except discord.NotFound:
            return False
        except discord.HTTPException as exc:
            raise LookupFailure(f"could not fetch emoji {emoji_id}: {exc}") from exc
        return True

    async def set_member_role(
        self,
        guild_id: int,
        user_id: int,
        role_id: int,
        *,
        add: bool,
        reason: str = "",
    ) -> None:
        guild = self.client.get_guild(guild_id)
        if guild is None:
            guild = await self.client.fetch_guild(guild_id)
        member = guild.get_member(user_id) or await guild.fetch_member(user_id)
        role = discord.Object(id=role_id)
        if add:
            await member.add_roles(role, reason=reason or None)
        else:
            await member.remove_roles(role, reason=reason or None)
