"""
tests/test_sync_service.py — Static Message Synchronizer
=========================================================

Only instant-cadence messages bound to the mutated emoji (or, for role
lists, the mutated guild) get an EditMessage.
"""

from __future__ import annotations

import json

import pytest
from conftest import CHANNEL_ID, FIRE, GUILD_ID, PARTY, run_async

from antartica.constants import (
    EMBED_DESCRIPTION_LIMIT,
    EMBED_FIELD_LIMIT,
    MAX_LEADERBOARD_TOP,
    StaticMessageType,
    UpdateCadence,
)
from antartica.database.engine import get_session
from antartica.database.models import StaticMessage
from antartica.engine.bus import EventBus
from antartica.engine.events import EditMessage
from antartica.errors import ConfigurationError, LookupFailure
from antartica.services.reaction_service import LeaderboardDelta, apply_leaderboard_delta
from antartica.services.reaction_track_service import upsert_reaction_track
from antartica.services.role_toggle_service import upsert_role_toggle
from antartica.services.static_message_service import create_static_message, list_static_messages
from antartica.services.sync_service import LeaderboardConfig, StaticMessageSynchronizer


def _leaderboard(engine, message_id: int, emoji=FIRE, cadence=UpdateCadence.INSTANT, **extra):
    config = {"emoji_key": emoji.key, "emoji_name": emoji.name, **extra}
    return create_static_message(
        engine, GUILD_ID, CHANNEL_ID, message_id, StaticMessageType.LEADERBOARD, config, cadence,
    )


def _drain(bus: EventBus) -> list:
    items = []
    while not bus.actions.empty():
        items.append(bus.actions.get_nowait())
    return items


def _score(engine, user_id: int, count: int, emoji=FIRE):
    with get_session(engine) as session:
        apply_leaderboard_delta(
            session, LeaderboardDelta(GUILD_ID, user_id, emoji.key, emoji.name, count),
        )


class TestLeaderboardConfig:
    def test_defaults_top(self):
        config = LeaderboardConfig.from_dict({"emoji_key": "🔥"}, 10)
        assert config.top == 10
        assert config.emoji == FIRE

    def test_missing_emoji_is_invalid(self):
        with pytest.raises(ValueError):
            LeaderboardConfig.from_dict({"top": 3}, 10)

    def test_top_is_capped(self):
        assert LeaderboardConfig.from_dict({"emoji_key": "🔥", "top": 200}, 10).top == MAX_LEADERBOARD_TOP
        assert LeaderboardConfig.from_dict({"emoji_key": "🔥"}, 500).top == MAX_LEADERBOARD_TOP


class TestLeaderboardRefresh:
    def test_only_matching_instant_leaderboards_are_edited(self, db_engine):
        upsert_reaction_track(db_engine, GUILD_ID, FIRE, "Hot takes")
        _leaderboard(db_engine, 1)
        _leaderboard(db_engine, 2, cadence=UpdateCadence.HOURLY)
        _leaderboard(db_engine, 3, emoji=PARTY)
        _score(db_engine, 7, 4)

        async def _inner():
            bus = EventBus()
            sync = StaticMessageSynchronizer(db_engine, bus)
            queued = await sync.refresh_leaderboards(GUILD_ID, "🔥")
            return queued, _drain(bus)

        queued, actions = run_async(_inner())
        assert queued == 1
        (edit,) = actions
        assert isinstance(edit, EditMessage)
        assert (edit.channel_id, edit.message_id) == (CHANNEL_ID, 1)
        embed = edit.embeds[0]
        assert embed.title == "🔥 Hot takes"
        assert embed.description == "1. <@7> — 4"

    def test_config_title_and_top_win(self, db_engine):
        _leaderboard(db_engine, 1, top=2, title="Best")
        for user, count in ((1, 5), (2, 3), (3, 1)):
            _score(db_engine, user, count)

        sync = StaticMessageSynchronizer(db_engine, EventBus())
        (message,) = list_static_messages(db_engine, GUILD_ID)
        edit = sync.render(message)
        assert edit.embeds[0].title == "🔥 Best"
        assert edit.embeds[0].description == "1. <@1> — 5\n2. <@2> — 3"

    def test_invalid_config_is_skipped(self, db_engine):
        create_static_message(
            db_engine, GUILD_ID, CHANNEL_ID, 9, StaticMessageType.LEADERBOARD, {"top": 3},
        )
        _leaderboard(db_engine, 1)
        sync = StaticMessageSynchronizer(db_engine, EventBus())
        edits = sync.collect_leaderboard_edits(GUILD_ID, "🔥")
        assert [e.message_id for e in edits] == [1]

    def test_apply_deltas_refreshes_each_emoji_once(self, db_engine):
        _leaderboard(db_engine, 1)
        _leaderboard(db_engine, 2, emoji=PARTY)
        deltas = [
            LeaderboardDelta(GUILD_ID, 7, "🔥", "🔥", -2),
            LeaderboardDelta(GUILD_ID, 8, "🔥", "🔥", -1),
            LeaderboardDelta(GUILD_ID, 7, "555", "party", -1),
        ]

        async def _inner():
            bus = EventBus()
            queued = await StaticMessageSynchronizer(db_engine, bus).apply_deltas(deltas)
            return queued, [a.message_id for a in _drain(bus)]

        assert run_async(_inner()) == (2, [1, 2])

    def test_large_stored_top_still_fits_one_embed(self, db_engine):
        _leaderboard(db_engine, 1, top=200)
        for user in range(200):
            _score(db_engine, 10_000_000_000_000_000 + user, 1000 + user)

        (edit,) = StaticMessageSynchronizer(db_engine, EventBus()).collect_leaderboard_edits(
            GUILD_ID, "🔥",
        )

        description = edit.embeds[0].description
        assert len(description) <= EMBED_DESCRIPTION_LIMIT
        assert len(description.splitlines()) == MAX_LEADERBOARD_TOP

    def test_render_failure_skips_only_that_message(self, db_engine, monkeypatch):
        _leaderboard(db_engine, 1)
        _leaderboard(db_engine, 2)
        calls = []

        def flaky_entries(engine, guild_id, emoji_key, limit):
            calls.append(emoji_key)
            if len(calls) == 1:
                raise LookupFailure("database went away")
            return []

        monkeypatch.setattr("antartica.services.sync_service.top_leaderboard_entries", flaky_entries)
        edits = StaticMessageSynchronizer(db_engine, EventBus()).collect_leaderboard_edits(
            GUILD_ID, "🔥",
        )

        assert len(calls) == 2
        assert len(edits) == 1

    def test_empty_leaderboard_text(self, db_engine):
        message = _leaderboard(db_engine, 1)
        edit = StaticMessageSynchronizer(db_engine, EventBus()).render(message)
        assert edit.embeds[0].description == "No reactions tracked yet."
        assert edit.embeds[0].title == "🔥 Reaction Leaderboard"


class TestRoleListRefresh:
    def test_role_list_lists_toggles_in_role_order(self, db_engine):
        create_static_message(
            db_engine, GUILD_ID, CHANNEL_ID, 4, StaticMessageType.ROLE_LIST, {"title": "Pick one"},
        )
        upsert_role_toggle(db_engine, GUILD_ID, 60, 0, "Artists")
        upsert_role_toggle(db_engine, GUILD_ID, 50)

        async def _inner():
            bus = EventBus()
            queued = await StaticMessageSynchronizer(db_engine, bus).refresh_role_lists(GUILD_ID)
            return queued, _drain(bus)

        queued, (edit,) = run_async(_inner())
        assert queued == 1
        embed = edit.embeds[0]
        assert embed.title == "Pick one"
        assert embed.fields[0].name == "Roles"
        assert embed.fields[0].value == "<@&50>\n<@&60> - Artists"

    def test_long_role_list_spills_into_more_fields(self, db_engine):
        create_static_message(
            db_engine, GUILD_ID, CHANNEL_ID, 4, StaticMessageType.ROLE_LIST, {},
        )
        role_ids = [900_000_000_000_000_000 + i for i in range(40)]
        for role_id in role_ids:
            upsert_role_toggle(db_engine, GUILD_ID, role_id, 0, "a role for people who like things")

        (edit,) = StaticMessageSynchronizer(db_engine, EventBus()).collect_role_list_edits(GUILD_ID)

        fields = edit.embeds[0].fields
        assert len(fields) > 1
        assert all(len(f.value) <= EMBED_FIELD_LIMIT for f in fields)
        listed = "\n".join(f.value for f in fields)
        assert all(f"<@&{role_id}>" in listed for role_id in role_ids)

    def test_empty_role_list(self, db_engine):
        message = create_static_message(
            db_engine, GUILD_ID, CHANNEL_ID, 4, StaticMessageType.ROLE_LIST, {},
        )
        embed = StaticMessageSynchronizer(db_engine, EventBus()).render(message).embeds[0]
        assert embed.title == "Self-assignable roles"
        assert embed.fields[0].value == "No self-assignable roles are configured."


class TestRenderNow:
    def test_instant_message_is_rendered(self, db_engine):
        message = _leaderboard(db_engine, 1)

        async def _inner():
            bus = EventBus()
            rendered = await StaticMessageSynchronizer(db_engine, bus).render_now(message)
            return rendered, len(_drain(bus))

        assert run_async(_inner()) == (True, 1)

    def test_scheduled_cadences_are_inert(self, db_engine):
        message = _leaderboard(db_engine, 1, cadence=UpdateCadence.DAILY)

        async def _inner():
            bus = EventBus()
            rendered = await StaticMessageSynchronizer(db_engine, bus).render_now(message)
            return rendered, len(_drain(bus))

        assert run_async(_inner()) == (False, 0)

    def test_unknown_type_raises(self, db_engine):
        message = StaticMessage(
            guild_id=GUILD_ID, channel_id=CHANNEL_ID, message_id=1, type="poll",
            config=json.dumps({}), update_cadence="instant",
        )
        with pytest.raises(ValueError):
            StaticMessageSynchronizer(db_engine, EventBus()).render(message)

    def test_unbound_engine_raises_configuration_error(self):
        with pytest.raises(ConfigurationError):
            StaticMessageSynchronizer(None, EventBus()).collect_role_list_edits(GUILD_ID)
