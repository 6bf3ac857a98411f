"""
antartica.database.models — SQLAlchemy 2.0 Data Models
=======================================================

Tables:
- reaction_tracks       — Emojis a guild has opted to measure
- reaction_records      — Per-message reaction ledger for a tracked emoji
- reaction_leaderboard  — Per-user aggregate derived from record deltas
- role_toggles          — Self-assignable roles and their permission gate
- static_messages       — Live display messages kept in sync with state

Every Discord snowflake is stored as ``BigInteger``.  Emojis are stored by
their canonical key (see :mod:`antartica.engine.emoji`) plus the display
name, so custom and unicode emojis compare the same way everywhere.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    BigInteger,
    Boolean,
    DateTime,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from antartica.constants import StaticMessageType, UpdateCadence


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """Shared base for all Antartica ORM models."""


# ---------------------------------------------------------------------------
# ReactionTrack — a guild's opt-in to measure an emoji
# ---------------------------------------------------------------------------
class ReactionTrack(Base):
    __tablename__ = "reaction_tracks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    guild_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    emoji_key: Mapped[str] = mapped_column(String(100), nullable=False)
    emoji_name: Mapped[str] = mapped_column(String(100), default="")
    emoji_animated: Mapped[bool] = mapped_column(Boolean, default=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        UniqueConstraint("guild_id", "emoji_key", name="uq_reaction_tracks_guild_emoji"),
    )

    def __repr__(self) -> str:
        return f"<ReactionTrack guild={self.guild_id} emoji={self.emoji_key!r}>"


# ---------------------------------------------------------------------------
# ReactionRecord — one row per (guild, message, emoji), owned by the author
# ---------------------------------------------------------------------------
class ReactionRecord(Base):
    """Qualifying reactions a message received for one tracked emoji.

    ``user_id`` is the message author: the user the reactions count for.
    The row is deleted once ``count`` reaches zero.
    """
    __tablename__ = "reaction_records"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    guild_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    channel_id: Mapped[int | None] = mapped_column(BigInteger, default=None)
    message_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    emoji_key: Mapped[str] = mapped_column(String(100), nullable=False)
    emoji_name: Mapped[str] = mapped_column(String(100), default="")
    count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint(
            "guild_id", "message_id", "emoji_key",
            name="uq_reaction_records_guild_message_emoji",
        ),
        Index("ix_reaction_records_message", "guild_id", "message_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<ReactionRecord message={self.message_id} emoji={self.emoji_key!r} "
            f"owner={self.user_id} count={self.count}>"
        )


# ---------------------------------------------------------------------------
# ReactionLeaderboardEntry — per-user aggregate
# ---------------------------------------------------------------------------
class ReactionLeaderboardEntry(Base):
    __tablename__ = "reaction_leaderboard"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    guild_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    emoji_key: Mapped[str] = mapped_column(String(100), nullable=False)
    emoji_name: Mapped[str] = mapped_column(String(100), default="")
    count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint(
            "guild_id", "user_id", "emoji_key",
            name="uq_reaction_leaderboard_guild_user_emoji",
        ),
        Index("ix_reaction_leaderboard_guild_emoji", "guild_id", "emoji_key"),
    )

    def __repr__(self) -> str:
        return (
            f"<ReactionLeaderboardEntry user={self.user_id} "
            f"emoji={self.emoji_key!r} count={self.count}>"
        )


# ---------------------------------------------------------------------------
# RoleToggle — self-service role configuration
# ---------------------------------------------------------------------------
class RoleToggle(Base):
    __tablename__ = "role_toggles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    guild_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    role_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    # Permission bitmask a member must hold to toggle the role (0 = anyone)
    required_permissions: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    description: Mapped[str] = mapped_column(Text, default="")

    __table_args__ = (
        UniqueConstraint("guild_id", "role_id", name="uq_role_toggles_guild_role"),
    )

    def __repr__(self) -> str:
        return f"<RoleToggle guild={self.guild_id} role={self.role_id}>"


# ---------------------------------------------------------------------------
# StaticMessage — a live display bound to a rendering job
# ---------------------------------------------------------------------------
class StaticMessage(Base):
    __tablename__ = "static_messages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    guild_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    channel_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    message_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    type: Mapped[str] = mapped_column(
        String(20), nullable=False, default=StaticMessageType.LEADERBOARD.value
    )
    config: Mapped[str] = mapped_column(Text, default="")  # opaque JSON
    update_cadence: Mapped[str] = mapped_column(
        String(10), nullable=False, default=UpdateCadence.INSTANT.value
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        UniqueConstraint("guild_id", "message_id", name="uq_static_messages_guild_message"),
        Index("ix_static_messages_guild_type", "guild_id", "type", "update_cadence"),
    )

    def __repr__(self) -> str:
        return (
            f"<StaticMessage message={self.message_id} type={self.type} "
            f"update={self.update_cadence}>"
        )
