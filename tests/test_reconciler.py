"""
tests/test_reconciler.py — Reaction Reconciler
===============================================

Drives events through the bus into the reconciler and checks the
resulting store state and queued leaderboard edits.
"""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from conftest import CHANNEL_ID, FIRE, GUILD_ID, PARTY, count_for, run_async

from antartica.constants import StaticMessageType
from antartica.engine.bus import EventBus
from antartica.engine.events import (
    EditMessage,
    Event,
    InteractionReceived,
    MessageDeleted,
    ReactionAdded,
    ReactionRemoved,
    ReactionRemovedAll,
    ReactionRemovedForEmoji,
)
from antartica.errors import PersistenceFailure
from antartica.services.reaction_service import apply_reaction_add
from antartica.services.reaction_track_service import upsert_reaction_track
from antartica.services.reconciler import ReactionReconciler
from antartica.services.static_message_service import create_static_message
from antartica.services.sync_service import StaticMessageSynchronizer

USER_A = 1
USER_B = 2
MESSAGE_M = 300
LEADERBOARD_MSG = 900


def _added(user_id=USER_A, author_id=USER_B, emoji=FIRE, message_id=MESSAGE_M) -> ReactionAdded:
    return ReactionAdded(
        guild_id=GUILD_ID, channel_id=CHANNEL_ID, message_id=message_id,
        user_id=user_id, author_id=author_id, emoji=emoji,
    )


def _removed(user_id=USER_A, emoji=FIRE) -> ReactionRemoved:
    return ReactionRemoved(
        guild_id=GUILD_ID, channel_id=CHANNEL_ID, message_id=MESSAGE_M,
        user_id=user_id, emoji=emoji,
    )


def _drain_actions(bus: EventBus) -> list:
    items = []
    while not bus.actions.empty():
        items.append(bus.actions.get_nowait())
    return items


async def _run(engine, events: list[Event], authors=None) -> list:
    """Publish *events*, consume them one by one, return the queued actions."""
    bus = EventBus()
    reconciler = ReactionReconciler(engine, StaticMessageSynchronizer(engine, bus), authors)
    for event in events:
        await bus.publish_event(event)
    while not bus.events.empty():
        await reconciler.handle(await bus.next_event())
    return _drain_actions(bus)


@pytest.fixture
def fire_board(db_engine):
    upsert_reaction_track(db_engine, GUILD_ID, FIRE, "Hot takes")
    create_static_message(
        db_engine, GUILD_ID, CHANNEL_ID, LEADERBOARD_MSG, StaticMessageType.LEADERBOARD,
        {"emoji_key": FIRE.key, "emoji_name": FIRE.name},
    )
    return db_engine


class TestEndToEnd:
    def test_reaction_by_non_author_updates_leaderboard_once(self, fire_board):
        actions = run_async(_run(fire_board, [_added()]))

        assert count_for(fire_board, GUILD_ID, MESSAGE_M, "🔥") == 1
        (edit,) = actions
        assert isinstance(edit, EditMessage)
        assert edit.message_id == LEADERBOARD_MSG
        assert "<@2> — 1" in edit.embeds[0].description

    def test_removal_empties_leaderboard(self, fire_board):
        actions = run_async(_run(fire_board, [_added(), _removed()]))

        assert count_for(fire_board, GUILD_ID, MESSAGE_M, "🔥") == 0
        assert len(actions) == 2
        assert actions[-1].embeds[0].description == "No reactions tracked yet."

    def test_self_reaction_queues_nothing(self, fire_board):
        assert run_async(_run(fire_board, [_added(user_id=USER_B)])) == []
        assert count_for(fire_board, GUILD_ID, MESSAGE_M, "🔥") == 0

    def test_untracked_emoji_queues_nothing(self, fire_board):
        assert run_async(_run(fire_board, [_added(emoji=PARTY)])) == []

    def test_bulk_events_clear_records(self, fire_board):
        events = [
            _added(),
            _added(user_id=3),
            ReactionRemovedForEmoji(
                guild_id=GUILD_ID, channel_id=CHANNEL_ID, message_id=MESSAGE_M, emoji=FIRE,
            ),
            _added(user_id=4),
            ReactionRemovedAll(guild_id=GUILD_ID, channel_id=CHANNEL_ID, message_id=MESSAGE_M),
            _added(user_id=5, message_id=301),
            MessageDeleted(guild_id=GUILD_ID, channel_id=CHANNEL_ID, message_id=301),
            MessageDeleted(guild_id=GUILD_ID, channel_id=CHANNEL_ID, message_id=301),
        ]
        actions = run_async(_run(fire_board, events))

        assert count_for(fire_board, GUILD_ID, MESSAGE_M, "🔥") == 0
        assert count_for(fire_board, GUILD_ID, 301, "🔥") == 0
        # 4 adds + 3 effective clears; the repeated delete changes nothing
        assert len(actions) == 7
        assert actions[-1].embeds[0].description == "No reactions tracked yet."

    def test_interaction_events_are_accepted(self, fire_board):
        event = InteractionReceived(
            interaction_id=1, type="application_command", guild_id=GUILD_ID,
            channel_id=CHANNEL_ID, user_id=USER_A,
        )
        assert run_async(_run(fire_board, [event])) == []


def _authors(author_id=USER_B) -> MagicMock:
    authors = MagicMock()
    authors.get_message_author = AsyncMock(return_value=author_id)
    return authors


class TestAuthorLookup:
    def test_missing_author_is_resolved_before_a_later_remove(self, fire_board):
        authors = _authors()
        run_async(_run(fire_board, [_added(author_id=None), _removed()], authors))

        authors.get_message_author.assert_awaited_once_with(CHANNEL_ID, MESSAGE_M)
        assert count_for(fire_board, GUILD_ID, MESSAGE_M, "🔥") == 0

    def test_resolved_author_owns_the_record(self, fire_board):
        actions = run_async(_run(fire_board, [_added(author_id=None)], _authors()))
        assert count_for(fire_board, GUILD_ID, MESSAGE_M, "🔥") == 1
        (edit,) = actions
        assert edit.embeds[0].description == f"1. <@{USER_B}> — 1"

    def test_untracked_emoji_skips_the_lookup(self, fire_board):
        authors = _authors()
        run_async(_run(fire_board, [_added(author_id=None, emoji=PARTY)], authors))
        authors.get_message_author.assert_not_awaited()

    def test_unresolvable_author_creates_nothing(self, fire_board):
        actions = run_async(_run(fire_board, [_added(author_id=None)], _authors(None)))
        assert count_for(fire_board, GUILD_ID, MESSAGE_M, "🔥") == 0
        assert actions == []


class TestFailureIsolation:
    def test_unbound_engine_drops_events(self):
        async def _inner():
            bus = EventBus()
            reconciler = ReactionReconciler(None, StaticMessageSynchronizer(None, bus))
            return await reconciler.handle(_added()), await reconciler.handle(_added())

        assert run_async(_inner()) == ([], [])

    def test_store_failure_is_logged_and_loop_continues(self, fire_board, monkeypatch):
        calls = []

        def _flaky(engine, event):
            calls.append(event.user_id)
            if len(calls) == 1:
                raise PersistenceFailure("disk full")
            return apply_reaction_add(engine, event)

        monkeypatch.setattr("antartica.services.reconciler.apply_reaction_add", _flaky)
        actions = run_async(_run(fire_board, [_added(), _added(user_id=3)]))

        assert calls == [USER_A, 3]
        assert count_for(fire_board, GUILD_ID, MESSAGE_M, "🔥") == 1
        assert len(actions) == 1

    def test_refresh_failure_does_not_lose_the_mutation(self, fire_board):
        async def _inner():
            bus = EventBus()
            sync = StaticMessageSynchronizer(fire_board, bus)
            sync.apply_deltas = AsyncMock(side_effect=RuntimeError("render broke"))
            return await ReactionReconciler(fire_board, sync).handle(_added())

        deltas = run_async(_inner())
        assert len(deltas) == 1
        assert count_for(fire_board, GUILD_ID, MESSAGE_M, "🔥") == 1

    def test_unknown_event_type_raises(self, fire_board):
        class Mystery(Event):
            __slots__ = ()

        reconciler = ReactionReconciler(fire_board, StaticMessageSynchronizer(fire_board, EventBus()))
        with pytest.raises(TypeError):
            run_async(reconciler.handle(Mystery()))

    def test_stop_signal_ends_the_loop(self, fire_board):
        async def _inner():
            bus = EventBus()
            stop = asyncio.Event()
            reconciler = ReactionReconciler(fire_board, StaticMessageSynchronizer(fire_board, bus))
            task = asyncio.ensure_future(reconciler.run(bus, stop))
            await asyncio.sleep(0.01)
            stop.set()
            await asyncio.wait_for(task, 1)
            return task.done()

        assert run_async(_inner()) is True

    def test_close_ends_the_loop_after_draining(self, fire_board):
        async def _inner():
            bus = EventBus()
            reconciler = ReactionReconciler(fire_board, StaticMessageSynchronizer(fire_board, bus))
            await bus.publish_event(_added(user_id=USER_B))
            await bus.publish_event(_added(emoji=PARTY))
            await bus.close()
            await asyncio.wait_for(reconciler.run(bus, asyncio.Event()), 5)
            return bus.events.qsize()

        # Only the close sentinel is left behind
        assert run_async(_inner()) == 1
