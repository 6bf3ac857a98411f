"""
tests/conftest.py — Shared Test Fixtures
=========================================
"""

from __future__ import annotations

import asyncio
from unittest.mock import MagicMock

import discord
import pytest
from sqlalchemy import Engine, create_engine, select
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from antartica.constants import PERMISSION_ADMINISTRATOR, PERMISSION_MANAGE_ROLES
from antartica.database.models import Base, ReactionRecord
from antartica.engine.emoji import EmojiKey
from antartica.engine.roles import Actor, RoleInfo, RoleTable

GUILD_ID = 1000
CHANNEL_ID = 2000
FIRE = EmojiKey(id=None, name="🔥")
PARTY = EmojiKey(id=555, name="party")


# Helper to run async tests without pytest-asyncio
def run_async(coro):
    """Run an async coroutine in a new event loop."""
    return asyncio.get_event_loop_policy().new_event_loop().run_until_complete(coro)


@pytest.fixture
def db_engine() -> Engine:
    """Create an in-memory SQLite engine with all Antartica tables.

    Uses StaticPool so every ``run_db`` worker thread shares the same
    in-memory database.
    """
    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return engine


@pytest.fixture
def db_session(db_engine: Engine):
    """Provide a session that rolls back after each test."""
    with Session(db_engine) as session:
        yield session
        session.rollback()


# ---------------------------------------------------------------------------
# Reaction helpers
# ---------------------------------------------------------------------------
def count_for(engine: Engine, guild_id: int, message_id: int, emoji_key: str) -> int:
    """Current record count for one message and emoji (0 when absent)."""
    with Session(engine) as session:
        record = session.scalar(
            select(ReactionRecord).where(
                ReactionRecord.guild_id == guild_id,
                ReactionRecord.message_id == message_id,
                ReactionRecord.emoji_key == emoji_key,
            )
        )
        return record.count if record else 0


# ---------------------------------------------------------------------------
# Role fixtures
# ---------------------------------------------------------------------------
def make_table(*roles: RoleInfo, guild_id: int = GUILD_ID, everyone_permissions: int = 0) -> RoleTable:
    """A role table that always contains ``@everyone`` at position 0."""
    everyone = RoleInfo(id=guild_id, position=0, permissions=everyone_permissions)
    return RoleTable.from_roles(guild_id, [everyone, *roles])


def moderator_role(role_id: int = 10, position: int = 5) -> RoleInfo:
    return RoleInfo(id=role_id, position=position, permissions=PERMISSION_MANAGE_ROLES)


def admin_role(role_id: int = 11, position: int = 1) -> RoleInfo:
    return RoleInfo(id=role_id, position=position, permissions=PERMISSION_ADMINISTRATOR)


def make_actor(user_id: int = 42, *role_ids: int, owner: bool = False, bot: bool = False) -> Actor:
    return Actor(user_id=user_id, role_ids=frozenset(role_ids), is_owner=owner, is_bot=bot)


# ---------------------------------------------------------------------------
# discord.py fakes
# ---------------------------------------------------------------------------
def make_discord_role(role_id: int, position: int, permissions: int = 0, managed: bool = False):
    role = MagicMock(spec=discord.Role)
    role.id = role_id
    role.position = position
    role.permissions = discord.Permissions(permissions)
    role.managed = managed
    return role


def make_member(user_id: int, roles=(), *, bot: bool = False):
    member = MagicMock(spec=discord.Member)
    member.id = user_id
    member.roles = list(roles)
    member.bot = bot
    return member


def http_error(status: int = 500, cls: type[discord.HTTPException] = discord.HTTPException):
    response = MagicMock()
    response.status = status
    response.reason = "error"
    return cls(response, "boom")
