"""
tests/test_role_service.py — Role Toggle Decisions & Actions
=============================================================

Uses a fake repository that hands out fixed role contexts, so only the
orchestration (toggle lookup, threshold, bot check, platform call) is
under test here.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from conftest import GUILD_ID, make_actor, make_table, moderator_role, run_async

from antartica.constants import PERMISSION_MANAGE_ROLES
from antartica.engine.role_repository import RoleContext
from antartica.engine.roles import (
    REASON_BOT_HIERARCHY,
    REASON_BOT_MANAGE_ROLES,
    REASON_THRESHOLD,
    REASON_USER_HIERARCHY,
    RoleInfo,
)
from antartica.errors import LookupFailure
from antartica.services.role_service import (
    REASON_NOT_SELF_ASSIGNABLE,
    REASON_ROLE_MISSING,
    check_manage_role,
    list_self_roles,
    toggle_self_role,
)
from antartica.services.role_toggle_service import upsert_role_toggle

KICK = 1 << 1
ROLE_R = RoleInfo(id=50, position=3, permissions=0)
ROLE_S = RoleInfo(id=51, position=2, permissions=0)
KICKER = RoleInfo(id=20, position=1, permissions=KICK)
BOT_ROLE = RoleInfo(id=70, position=8, permissions=PERMISSION_MANAGE_ROLES)
LOW_BOT_ROLE = RoleInfo(id=71, position=2, permissions=PERMISSION_MANAGE_ROLES)
TABLE = make_table(moderator_role(), ROLE_R, ROLE_S, KICKER, BOT_ROLE, LOW_BOT_ROLE)
BOT = make_actor(99, 70, bot=True)


def _repo(actor, *, bot=BOT, table=TABLE) -> MagicMock:
    repo = MagicMock()
    repo.load = AsyncMock(return_value=RoleContext(table=table, actor=actor))
    repo.load_bot = AsyncMock(return_value=RoleContext(table=table, actor=bot))
    return repo


def _platform() -> MagicMock:
    platform = MagicMock()
    platform.set_member_role = AsyncMock()
    return platform


class TestCheckManageRole:
    def test_moderator_and_bot_allowed(self):
        repo = _repo(make_actor(1, 10))
        assert run_async(check_manage_role(repo, GUILD_ID, 1, 50))
        repo.load_bot.assert_awaited_once()

    def test_moderator_denied_skips_bot_check(self):
        high = RoleInfo(id=80, position=9, permissions=0)
        table = make_table(moderator_role(), high, BOT_ROLE)
        repo = _repo(make_actor(1, 10), table=table)
        decision = run_async(check_manage_role(repo, GUILD_ID, 1, 80))
        assert decision.reason == REASON_USER_HIERARCHY
        repo.load_bot.assert_not_awaited()

    def test_bot_without_manage_roles_denied(self):
        low_bot = make_actor(99, 20, bot=True)
        repo = _repo(make_actor(1, 10, owner=True), bot=low_bot)
        decision = run_async(check_manage_role(repo, GUILD_ID, 1, 50))
        assert decision.reason == REASON_BOT_MANAGE_ROLES

    def test_unknown_role(self):
        repo = _repo(make_actor(1, 10))
        assert run_async(check_manage_role(repo, GUILD_ID, 1, 12345)).reason == REASON_ROLE_MISSING

    def test_lookup_failure_propagates(self):
        repo = MagicMock()
        repo.load = AsyncMock(side_effect=LookupFailure("rest down"))
        with pytest.raises(LookupFailure):
            run_async(check_manage_role(repo, GUILD_ID, 1, 50))


class TestToggleSelfRole:
    def test_missing_permission_is_denied_without_platform_call(self, db_engine):
        upsert_role_toggle(db_engine, GUILD_ID, 50, KICK)
        platform = _platform()

        outcome = run_async(toggle_self_role(
            db_engine, _repo(make_actor(5)), platform, GUILD_ID, 5, 50,
        ))

        assert not outcome
        assert outcome.decision.reason == REASON_THRESHOLD
        platform.set_member_role.assert_not_awaited()

    def test_not_configured_role_is_refused(self, db_engine):
        platform = _platform()
        outcome = run_async(toggle_self_role(
            db_engine, _repo(make_actor(5)), platform, GUILD_ID, 5, 50,
        ))
        assert outcome.decision.reason == REASON_NOT_SELF_ASSIGNABLE
        platform.set_member_role.assert_not_awaited()

    def test_adds_role_the_member_lacks(self, db_engine):
        upsert_role_toggle(db_engine, GUILD_ID, 50, KICK)
        platform = _platform()

        outcome = run_async(toggle_self_role(
            db_engine, _repo(make_actor(5, 20)), platform, GUILD_ID, 5, 50,
        ))

        assert outcome.added is True
        platform.set_member_role.assert_awaited_once_with(
            GUILD_ID, 5, 50, add=True, reason="Self-service role toggle",
        )

    def test_removes_role_the_member_has(self, db_engine):
        upsert_role_toggle(db_engine, GUILD_ID, 50)
        platform = _platform()

        outcome = run_async(toggle_self_role(
            db_engine, _repo(make_actor(5, 50)), platform, GUILD_ID, 5, 50,
        ))

        assert outcome.added is False
        assert platform.set_member_role.await_args.kwargs["add"] is False

    def test_bot_unable_to_manage_role(self, db_engine):
        upsert_role_toggle(db_engine, GUILD_ID, 50)
        platform = _platform()
        low_bot = make_actor(99, 71, bot=True)

        outcome = run_async(toggle_self_role(
            db_engine, _repo(make_actor(5), bot=low_bot), platform, GUILD_ID, 5, 50,
        ))

        assert outcome.decision.reason == REASON_BOT_HIERARCHY
        platform.set_member_role.assert_not_awaited()


class TestListSelfRoles:
    def test_splits_have_and_available(self, db_engine):
        upsert_role_toggle(db_engine, GUILD_ID, 50, 0, "Gamers")
        upsert_role_toggle(db_engine, GUILD_ID, 51)
        upsert_role_toggle(db_engine, GUILD_ID, 20, KICK)  # threshold not met
        high = RoleInfo(id=90, position=20, permissions=0)
        table = make_table(moderator_role(), ROLE_R, ROLE_S, KICKER, BOT_ROLE, LOW_BOT_ROLE, high)
        upsert_role_toggle(db_engine, GUILD_ID, 90)  # above the bot

        have, available = run_async(list_self_roles(
            db_engine, _repo(make_actor(5, 51), table=table), GUILD_ID, 5,
        ))

        assert have == ["<@&51>"]
        assert available == ["<@&50> - Gamers"]

    def test_no_toggles_skips_role_lookups(self, db_engine):
        repo = _repo(make_actor(5))
        assert run_async(list_self_roles(db_engine, repo, GUILD_ID, 5)) == ([], [])
        repo.load.assert_not_awaited()
