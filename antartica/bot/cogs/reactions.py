"""
antartica.bot.cogs.reactions — Gateway → Event Bus Bridge
==========================================================

Normalizes raw reaction / message-delete / interaction gateway events and
publishes them on ``bot.bus.events``.  Nothing here touches the database;
the reaction reconciler does that from the other end of the queue.

Raw events are used so reactions on uncached (old) messages are seen too.
Reactions by bot accounts and anything outside a guild are ignored.

Listeners run as independent tasks, so nothing here awaits a message
fetch: a reaction-add is published with the author from the payload, or
``None``, and the reconciler resolves a missing author in queue order.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import discord
from discord.ext import commands

from antartica.engine.emoji import EmojiKey
from antartica.engine.events import (
    InteractionReceived,
    MessageDeleted,
    ReactionAdded,
    ReactionRemoved,
    ReactionRemovedAll,
    ReactionRemovedForEmoji,
)
from antartica.errors import LookupFailure

if TYPE_CHECKING:
    from antartica.bot.core import AntarticaBot

logger = logging.getLogger(__name__)


class Reactions(commands.Cog, name="Reactions"):
    """Feeds reaction and message-delete events into the reconciler."""

    def __init__(self, bot: AntarticaBot) -> None:
        self.bot = bot
        # user id → is a bot account
        self._bot_users: dict[int, bool] = {}

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    async def _is_bot_user(
        self, guild_id: int, user_id: int, member: discord.Member | None = None,
    ) -> bool:
        cached = self._bot_users.get(user_id)
        if cached is not None:
            return cached

        if member is not None:
            is_bot = member.bot
        else:
            try:
                is_bot = await self.bot.platform.is_bot_user(guild_id, user_id)
            except LookupFailure as exc:
                logger.warning("Treating user %s as human: %s", user_id, exc)
                return False

        self._bot_users[user_id] = is_bot
        return is_bot

    # -------------------------------------------------------------------
    # Reactions
    # -------------------------------------------------------------------
    @commands.Cog.listener()
    async def on_raw_reaction_add(self, payload: discord.RawReactionActionEvent) -> None:
        """Fire when any reaction is added, even on uncached messages."""
        try:
            if payload.guild_id is None:
                return
            if await self._is_bot_user(payload.guild_id, payload.user_id, payload.member):
                return

            await self.bot.bus.publish_event(ReactionAdded(
                guild_id=payload.guild_id,
                channel_id=payload.channel_id,
                message_id=payload.message_id,
                user_id=payload.user_id,
                author_id=getattr(payload, "message_author_id", None) or None,
                emoji=EmojiKey.from_partial(payload.emoji),
            ))
        except Exception:
            logger.exception(
                "Error publishing reaction add on message %s from user %s",
                payload.message_id, payload.user_id,
            )

    @commands.Cog.listener()
    async def on_raw_reaction_remove(self, payload: discord.RawReactionActionEvent) -> None:
        try:
            if payload.guild_id is None:
                return
            if await self._is_bot_user(payload.guild_id, payload.user_id):
                return

            await self.bot.bus.publish_event(ReactionRemoved(
                guild_id=payload.guild_id,
                channel_id=payload.channel_id,
                message_id=payload.message_id,
                user_id=payload.user_id,
                emoji=EmojiKey.from_partial(payload.emoji),
            ))
        except Exception:
            logger.exception(
                "Error publishing reaction remove on message %s from user %s",
                payload.message_id, payload.user_id,
            )

    @commands.Cog.listener()
    async def on_raw_reaction_clear_emoji(self, payload: discord.RawReactionClearEmojiEvent) -> None:
        try:
            if payload.guild_id is None:
                return
            await self.bot.bus.publish_event(ReactionRemovedForEmoji(
                guild_id=payload.guild_id,
                channel_id=payload.channel_id,
                message_id=payload.message_id,
                emoji=EmojiKey.from_partial(payload.emoji),
            ))
        except Exception:
            logger.exception("Error publishing emoji clear on message %s", payload.message_id)

    @commands.Cog.listener()
    async def on_raw_reaction_clear(self, payload: discord.RawReactionClearEvent) -> None:
        try:
            if payload.guild_id is None:
                return
            await self.bot.bus.publish_event(ReactionRemovedAll(
                guild_id=payload.guild_id,
                channel_id=payload.channel_id,
                message_id=payload.message_id,
            ))
        except Exception:
            logger.exception("Error publishing reaction clear on message %s", payload.message_id)

    # -------------------------------------------------------------------
    # Messages / interactions
    # -------------------------------------------------------------------
    @commands.Cog.listener()
    async def on_raw_message_delete(self, payload: discord.RawMessageDeleteEvent) -> None:
        try:
            if payload.guild_id is None:
                return
            await self.bot.bus.publish_event(MessageDeleted(
                guild_id=payload.guild_id,
                channel_id=payload.channel_id,
                message_id=payload.message_id,
            ))
        except Exception:
            logger.exception("Error publishing delete of message %s", payload.message_id)

    @commands.Cog.listener()
    async def on_interaction(self, interaction: discord.Interaction) -> None:
        try:
            await self.bot.bus.publish_event(InteractionReceived(
                interaction_id=interaction.id,
                type=interaction.type.name,
                guild_id=interaction.guild_id,
                channel_id=interaction.channel_id,
                user_id=interaction.user.id,
            ))
        except Exception:
            logger.exception("Error publishing interaction %s", interaction.id)


async def setup(bot: AntarticaBot) -> None:
    await bot.add_cog(Reactions(bot))
