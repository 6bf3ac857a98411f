"""
antartica.services.reaction_service — Reaction Records & Leaderboard
=====================================================================

The store side of the reaction reconciler.  Each ``apply_*`` function runs
one reaction event against the database inside a single session, updating
both derived aggregates:

- :class:`ReactionRecord` — one row per (guild, message, emoji), owned by
  the message author, counting qualifying reactions.
- :class:`ReactionLeaderboardEntry` — one row per (guild, user, emoji),
  always equal to the sum of that user's live record counts.

Rules:

- Only emojis with a :class:`ReactionTrack` in the guild create records.
- Reactions by the message author never count.
- A record is deleted when its count reaches zero; so is a leaderboard
  entry.  Neither is ever left at zero or below.

Each function returns the :class:`LeaderboardDelta` list it applied so the
caller can refresh the affected displays.  An empty list means "nothing
changed".
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import Engine, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from antartica.database.engine import get_session
from antartica.database.models import ReactionLeaderboardEntry, ReactionRecord
from antartica.engine.emoji import EmojiKey
from antartica.engine.events import ReactionAdded, ReactionRemoved
from antartica.errors import LookupFailure, PersistenceFailure
from antartica.services.reaction_track_service import find_track

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class LeaderboardDelta:
    guild_id: int
    user_id: int
    emoji_key: str
    emoji_name: str
    delta: int


def _lookup(session: Session, stmt):
    try:
        return session.scalars(stmt).all()
    except SQLAlchemyError as exc:
        raise LookupFailure(f"reaction lookup failed: {exc}") from exc


def _record_stmt(guild_id: int, message_id: int, emoji_key: str | None = None):
    stmt = select(ReactionRecord).where(
        ReactionRecord.guild_id == guild_id,
        ReactionRecord.message_id == message_id,
    )
    if emoji_key is not None:
        stmt = stmt.where(ReactionRecord.emoji_key == emoji_key)
    return stmt.order_by(ReactionRecord.id)


# ---------------------------------------------------------------------------
# Leaderboard
# ---------------------------------------------------------------------------
def apply_leaderboard_delta(session: Session, change: LeaderboardDelta) -> None:
    """Add ``change.delta`` to the user's entry inside *session*.

    The entry is deleted at zero or below and only created for a positive
    delta.
    """
    if change.delta == 0:
        return

    entry = session.scalar(
        select(ReactionLeaderboardEntry).where(
            ReactionLeaderboardEntry.guild_id == change.guild_id,
            ReactionLeaderboardEntry.user_id == change.user_id,
            ReactionLeaderboardEntry.emoji_key == change.emoji_key,
        )
    )
    if entry is not None:
        new_count = entry.count + change.delta
        if new_count <= 0:
            session.delete(entry)
        else:
            entry.count = new_count
            if change.emoji_name:
                entry.emoji_name = change.emoji_name
    elif change.delta > 0:
        session.add(ReactionLeaderboardEntry(
            guild_id=change.guild_id,
            user_id=change.user_id,
            emoji_key=change.emoji_key,
            emoji_name=change.emoji_name,
            count=change.delta,
        ))


def top_leaderboard_entries(
    engine: Engine, guild_id: int, emoji_key: str, limit: int,
) -> list[ReactionLeaderboardEntry]:
    """Highest counts first; ties broken by ascending user id."""
    try:
        with get_session(engine) as session:
            return list(session.scalars(
                select(ReactionLeaderboardEntry)
                .where(
                    ReactionLeaderboardEntry.guild_id == guild_id,
                    ReactionLeaderboardEntry.emoji_key == emoji_key,
                    ReactionLeaderboardEntry.count > 0,
                )
                .order_by(
                    ReactionLeaderboardEntry.count.desc(),
                    ReactionLeaderboardEntry.user_id.asc(),
                )
                .limit(limit)
            ).all())
    except SQLAlchemyError as exc:
        raise LookupFailure(f"could not load leaderboard: {exc}") from exc


# ---------------------------------------------------------------------------
# Event application
# ---------------------------------------------------------------------------
def apply_reaction_add(engine: Engine, event: ReactionAdded) -> list[LeaderboardDelta]:
    """Count a reaction toward the message author.

    No-op when the emoji is untracked, the reactor is the author, or the
    author is unknown and no record exists yet.

    Raises
    ------
    LookupFailure
        If reading the track or record fails.
    PersistenceFailure
        If the write fails; nothing is applied.
    """
    emoji: EmojiKey = event.emoji
    if event.author_id is not None and event.user_id == event.author_id:
        return []

    try:
        with get_session(engine) as session:
            try:
                track = find_track(session, event.guild_id, emoji.key)
            except SQLAlchemyError as exc:
                raise LookupFailure(f"track lookup failed: {exc}") from exc
            if track is None:
                return []

            existing = _lookup(session, _record_stmt(event.guild_id, event.message_id, emoji.key))
            if existing:
                record = existing[0]
                if record.user_id == event.user_id:
                    return []
                record.count += 1
                if emoji.name:
                    record.emoji_name = emoji.name
            else:
                if event.author_id is None:
                    logger.debug(
                        "Skipping reaction on message %s: author unknown",
                        event.message_id,
                    )
                    return []
                record = ReactionRecord(
                    guild_id=event.guild_id,
                    channel_id=event.channel_id,
                    message_id=event.message_id,
                    user_id=event.author_id,
                    emoji_key=emoji.key,
                    emoji_name=emoji.name,
                    count=1,
                )
                session.add(record)

            change = LeaderboardDelta(
                guild_id=event.guild_id,
                user_id=record.user_id,
                emoji_key=emoji.key,
                emoji_name=emoji.name,
                delta=1,
            )
            apply_leaderboard_delta(session, change)
    except SQLAlchemyError as exc:
        raise PersistenceFailure(f"could not apply reaction add: {exc}") from exc
    return [change]


def apply_reaction_remove(engine: Engine, event: ReactionRemoved) -> list[LeaderboardDelta]:
    """Undo one reaction; deletes the record when its count reaches zero."""
    emoji: EmojiKey = event.emoji
    try:
        with get_session(engine) as session:
            existing = _lookup(session, _record_stmt(event.guild_id, event.message_id, emoji.key))
            if not existing:
                return []
            record = existing[0]
            if record.user_id == event.user_id:
                return []

            if record.count <= 1:
                session.delete(record)
            else:
                record.count -= 1

            change = LeaderboardDelta(
                guild_id=event.guild_id,
                user_id=record.user_id,
                emoji_key=emoji.key,
                emoji_name=emoji.name or record.emoji_name,
                delta=-1,
            )
            apply_leaderboard_delta(session, change)
    except SQLAlchemyError as exc:
        raise PersistenceFailure(f"could not apply reaction remove: {exc}") from exc
    return [change]


def clear_reactions(
    engine: Engine,
    guild_id: int,
    message_id: int,
    emoji_key: str | None = None,
) -> list[LeaderboardDelta]:
    """Delete every record on a message (optionally only for one emoji).

    Each deleted record takes its whole count back off its owner's
    leaderboard entry.  Clearing an already-clear message is a no-op.
    """
    changes: list[LeaderboardDelta] = []
    try:
        with get_session(engine) as session:
            records = _lookup(session, _record_stmt(guild_id, message_id, emoji_key))
            for record in records:
                if record.count > 0:
                    changes.append(LeaderboardDelta(
                        guild_id=guild_id,
                        user_id=record.user_id,
                        emoji_key=record.emoji_key,
                        emoji_name=record.emoji_name,
                        delta=-record.count,
                    ))
                session.delete(record)
            for change in changes:
                apply_leaderboard_delta(session, change)
    except SQLAlchemyError as exc:
        raise PersistenceFailure(f"could not clear reactions: {exc}") from exc

    if records:
        logger.info(
            "Cleared %d reaction record(s): guild=%s message=%s emoji=%s",
            len(records), guild_id, message_id, emoji_key or "*",
        )
    return changes

