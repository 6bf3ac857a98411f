"""
tests/test_gateway_bridge.py — Gateway → Bus Bridge and Command Replies
========================================================================

The Reactions cog is driven with mock raw payloads and a real EventBus;
the shared command error handler with mock interactions.
"""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import discord
import pytest
from conftest import CHANNEL_ID, GUILD_ID, run_async
from discord import app_commands

from antartica.bot.cogs.reactions import Reactions
from antartica.bot.responses import handle_command_error, respond
from antartica.engine.bus import EventBus
from antartica.engine.events import (
    MessageDeleted,
    ReactionAdded,
    ReactionRemoved,
    ReactionRemovedForEmoji,
)
from antartica.errors import LookupFailure, PersistenceFailure, Refusal, ValidationError
from antartica.services.embeds import TONE_TITLES, Tone

FIRE = discord.PartialEmoji(name="🔥")


def _bot(*, is_bot_user: bool = False, author_id: int | None = 200) -> SimpleNamespace:
    platform = MagicMock()
    platform.is_bot_user = AsyncMock(return_value=is_bot_user)
    platform.get_message_author = AsyncMock(return_value=author_id)
    return SimpleNamespace(bus=EventBus(), platform=platform)


def _payload(*, user_id: int = 1, guild_id: int | None = GUILD_ID, member=None, author_id=None):
    return SimpleNamespace(
        guild_id=guild_id,
        channel_id=CHANNEL_ID,
        message_id=300,
        user_id=user_id,
        member=member,
        emoji=FIRE,
        message_author_id=author_id,
    )


def _events(bus: EventBus) -> list:
    items = []
    while not bus.events.empty():
        items.append(bus.events.get_nowait())
    return items


class TestReactionsCog:
    def test_reaction_add_leaves_unknown_author_to_the_reconciler(self):
        bot = _bot()

        async def _inner():
            await Reactions(bot).on_raw_reaction_add(_payload())
            return _events(bot.bus)

        (event,) = run_async(_inner())
        assert isinstance(event, ReactionAdded)
        assert (event.user_id, event.author_id, event.emoji.key) == (1, None, "🔥")
        bot.platform.get_message_author.assert_not_awaited()

    def test_payload_author_is_published(self):
        bot = _bot()

        async def _inner():
            await Reactions(bot).on_raw_reaction_add(_payload(author_id=777))
            return _events(bot.bus)

        (event,) = run_async(_inner())
        assert event.author_id == 777
        bot.platform.get_message_author.assert_not_awaited()

    def test_bot_reactions_are_ignored_and_cached(self):
        bot = _bot(is_bot_user=True)

        async def _inner():
            cog = Reactions(bot)
            await cog.on_raw_reaction_add(_payload(user_id=9))
            await cog.on_raw_reaction_remove(_payload(user_id=9))
            return _events(bot.bus)

        assert run_async(_inner()) == []
        bot.platform.is_bot_user.assert_awaited_once_with(GUILD_ID, 9)

    def test_member_on_payload_decides_bot_flag(self):
        bot = _bot(is_bot_user=True)
        member = SimpleNamespace(bot=False)

        async def _inner():
            await Reactions(bot).on_raw_reaction_add(_payload(member=member))
            return _events(bot.bus)

        assert len(run_async(_inner())) == 1
        bot.platform.is_bot_user.assert_not_awaited()

    def test_lookup_failure_treats_user_as_human(self):
        bot = _bot()
        bot.platform.is_bot_user = AsyncMock(side_effect=LookupFailure("rest down"))

        async def _inner():
            await Reactions(bot).on_raw_reaction_remove(_payload())
            return _events(bot.bus)

        (event,) = run_async(_inner())
        assert isinstance(event, ReactionRemoved)

    def test_direct_messages_are_ignored(self):
        bot = _bot()

        async def _inner():
            cog = Reactions(bot)
            await cog.on_raw_reaction_add(_payload(guild_id=None))
            await cog.on_raw_message_delete(SimpleNamespace(guild_id=None, channel_id=1, message_id=2))
            return _events(bot.bus)

        assert run_async(_inner()) == []

    def test_clear_and_delete_events(self):
        bot = _bot()

        async def _inner():
            cog = Reactions(bot)
            await cog.on_raw_reaction_clear_emoji(SimpleNamespace(
                guild_id=GUILD_ID, channel_id=CHANNEL_ID, message_id=300, emoji=FIRE,
            ))
            await cog.on_raw_message_delete(SimpleNamespace(
                guild_id=GUILD_ID, channel_id=CHANNEL_ID, message_id=300,
            ))
            return _events(bot.bus)

        cleared, deleted = run_async(_inner())
        assert isinstance(cleared, ReactionRemovedForEmoji)
        assert isinstance(deleted, MessageDeleted)

    def test_closed_bus_is_logged_not_raised(self, caplog):
        bot = _bot()

        async def _inner():
            await bot.bus.close()
            await Reactions(bot).on_raw_message_delete(SimpleNamespace(
                guild_id=GUILD_ID, channel_id=CHANNEL_ID, message_id=300,
            ))

        run_async(_inner())
        assert "Error publishing delete of message 300" in caplog.text


def _interaction(*, done: bool = False) -> MagicMock:
    interaction = MagicMock()
    interaction.response.is_done = MagicMock(return_value=done)
    interaction.response.send_message = AsyncMock()
    interaction.followup.send = AsyncMock()
    interaction.command.qualified_name = "reaction add"
    return interaction


def _sent_embed(interaction) -> discord.Embed:
    call = interaction.response.send_message.await_args or interaction.followup.send.await_args
    assert call.kwargs["ephemeral"] is True
    return call.kwargs["embed"]


def _invoke_error(original: Exception) -> app_commands.CommandInvokeError:
    return app_commands.CommandInvokeError(MagicMock(), original)


class TestCommandReplies:
    def test_respond_uses_followup_after_defer(self):
        interaction = _interaction(done=True)
        run_async(respond(interaction, Tone.SUCCESS, "ok"))
        interaction.followup.send.assert_awaited_once()
        interaction.response.send_message.assert_not_awaited()

    @pytest.mark.parametrize("original, tone, text", [
        (ValidationError("Emoji is required."), Tone.WARN, "Emoji is required."),
        (Refusal("Custom emojis must belong to this server."), Tone.DECLINE,
         "Custom emojis must belong to this server."),
        (LookupFailure("boom"), Tone.ERROR, "Couldn't load the data needed. Try again shortly."),
        (PersistenceFailure("boom"), Tone.ERROR, "Failed to save your changes."),
    ])
    def test_domain_errors_become_replies(self, original, tone, text):
        interaction = _interaction()
        run_async(handle_command_error(interaction, _invoke_error(original)))
        embed = _sent_embed(interaction)
        assert embed.title == TONE_TITLES[tone]
        assert embed.description == text

    def test_unexpected_errors_are_reraised(self):
        error = _invoke_error(RuntimeError("bug"))
        with pytest.raises(app_commands.CommandInvokeError):
            run_async(handle_command_error(_interaction(), error))
