"""
antartica.services.reaction_track_service — Tracked Emoji Store
================================================================

CRUD for :class:`~antartica.database.models.ReactionTrack`.  All functions
are synchronous; call them from coroutines through
:func:`antartica.database.engine.run_db`.
"""

from __future__ import annotations

import logging

from sqlalchemy import Engine, delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from antartica.database.engine import get_session
from antartica.database.models import ReactionTrack
from antartica.engine.emoji import EmojiKey
from antartica.errors import LookupFailure, PersistenceFailure, ValidationError

logger = logging.getLogger(__name__)


def find_track(session: Session, guild_id: int, emoji_key: str) -> ReactionTrack | None:
    """Return the track for *emoji_key* in *guild_id*, if any."""
    return session.scalar(
        select(ReactionTrack).where(
            ReactionTrack.guild_id == guild_id,
            ReactionTrack.emoji_key == emoji_key,
        )
    )


def upsert_reaction_track(
    engine: Engine,
    guild_id: int,
    emoji: EmojiKey,
    title: str,
    description: str = "",
) -> bool:
    """Create or update the track for *emoji*.

    Returns
    -------
    bool
        ``True`` if a new track was created, ``False`` if one was updated.

    Raises
    ------
    ValidationError
        If *title* is blank.
    PersistenceFailure
        If the write fails.
    """
    title = (title or "").strip()
    if not title:
        raise ValidationError("Title is required.")
    description = (description or "").strip()

    try:
        with get_session(engine) as session:
            track = find_track(session, guild_id, emoji.key)
            created = track is None
            if created:
                track = ReactionTrack(guild_id=guild_id, emoji_key=emoji.key)
                session.add(track)
            track.emoji_name = emoji.name
            track.emoji_animated = emoji.animated
            track.title = title
            track.description = description
    except SQLAlchemyError as exc:
        raise PersistenceFailure(f"could not save reaction track: {exc}") from exc

    logger.info(
        "Reaction track %s: guild=%s emoji=%s",
        "added" if created else "updated", guild_id, emoji.key,
    )
    return created


def remove_reaction_track(engine: Engine, guild_id: int, emoji_key: str) -> int:
    """Delete the track(s) for *emoji_key*; return how many were removed."""
    try:
        with get_session(engine) as session:
            result = session.execute(
                delete(ReactionTrack).where(
                    ReactionTrack.guild_id == guild_id,
                    ReactionTrack.emoji_key == emoji_key,
                )
            )
            deleted = result.rowcount or 0
    except SQLAlchemyError as exc:
        raise PersistenceFailure(f"could not remove reaction track: {exc}") from exc

    if deleted:
        logger.info("Reaction track removed: guild=%s emoji=%s", guild_id, emoji_key)
    return deleted


def list_reaction_tracks(engine: Engine, guild_id: int) -> list[ReactionTrack]:
    try:
        with get_session(engine) as session:
            return list(session.scalars(
                select(ReactionTrack)
                .where(ReactionTrack.guild_id == guild_id)
                .order_by(ReactionTrack.title, ReactionTrack.emoji_key)
            ).all())
    except SQLAlchemyError as exc:
        raise LookupFailure(f"could not list reaction tracks: {exc}") from exc


def is_tracked(engine: Engine, guild_id: int, emoji_key: str) -> bool:
    try:
        with get_session(engine) as session:
            return find_track(session, guild_id, emoji_key) is not None
    except SQLAlchemyError as exc:
        raise LookupFailure(f"could not load reaction track: {exc}") from exc
