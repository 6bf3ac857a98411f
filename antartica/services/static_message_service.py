"""
antartica.services.static_message_service — Live Display Message Store
=======================================================================

Persists the messages the bot keeps re-rendering (leaderboards and role
lists).  ``config`` is stored as a JSON object; its shape depends on
``type``:

- ``leaderboard``: ``{"emoji_key", "emoji_name", "top", "title"}``
- ``role_list``:   ``{"title", "description"}``
"""

from __future__ import annotations

import json
import logging

from sqlalchemy import Engine, delete, select
from sqlalchemy.exc import SQLAlchemyError

from antartica.constants import StaticMessageType, UpdateCadence
from antartica.database.engine import get_session
from antartica.database.models import StaticMessage
from antartica.errors import LookupFailure, PersistenceFailure, ValidationError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Input parsing
# ---------------------------------------------------------------------------
def parse_cadence(raw: str | None) -> UpdateCadence:
    value = (raw or "").strip().lower()
    try:
        return UpdateCadence(value)
    except ValueError:
        raise ValidationError("Update must be instant, hourly, or daily.") from None


def parse_message_id(raw: str | None) -> int:
    value = (raw or "").strip()
    if not value.isdigit() or int(value) == 0:
        raise ValidationError("Message ID must be a number.")
    return int(value)


def load_config(message: StaticMessage) -> dict:
    """Decode a row's JSON config.  Blank config decodes to ``{}``.

    Raises
    ------
    ValueError
        If the stored config is not a JSON object.
    """
    raw = (message.config or "").strip()
    if not raw:
        return {}
    data = json.loads(raw)
    if not isinstance(data, dict):
        raise ValueError("static message config must be a JSON object")
    return data


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------
def create_static_message(
    engine: Engine,
    guild_id: int,
    channel_id: int,
    message_id: int,
    message_type: StaticMessageType,
    config: dict,
    update_cadence: UpdateCadence = UpdateCadence.INSTANT,
) -> StaticMessage:
    try:
        with get_session(engine) as session:
            message = StaticMessage(
                guild_id=guild_id,
                channel_id=channel_id,
                message_id=message_id,
                type=StaticMessageType(message_type).value,
                config=json.dumps(config, sort_keys=True),
                update_cadence=UpdateCadence(update_cadence).value,
            )
            session.add(message)
    except SQLAlchemyError as exc:
        raise PersistenceFailure(f"could not save static message: {exc}") from exc

    logger.info(
        "Static message added: guild=%s message=%s type=%s update=%s",
        guild_id, message_id, message.type, message.update_cadence,
    )
    return message


def remove_static_message(
    engine: Engine,
    guild_id: int,
    message_id: int,
    message_type: StaticMessageType | None = None,
) -> int:
    """Unregister a static message (the Discord message itself is left alone)."""
    stmt = delete(StaticMessage).where(
        StaticMessage.guild_id == guild_id,
        StaticMessage.message_id == message_id,
    )
    if message_type is not None:
        stmt = stmt.where(StaticMessage.type == StaticMessageType(message_type).value)
    try:
        with get_session(engine) as session:
            result = session.execute(stmt)
            deleted = result.rowcount or 0
    except SQLAlchemyError as exc:
        raise PersistenceFailure(f"could not remove static message: {exc}") from exc

    if deleted:
        logger.info("Static message removed: guild=%s message=%s", guild_id, message_id)
    return deleted


def list_static_messages(
    engine: Engine,
    guild_id: int,
    message_type: StaticMessageType | None = None,
    update_cadence: UpdateCadence | None = None,
) -> list[StaticMessage]:
    """List a guild's static messages, optionally filtered by type and cadence."""
    stmt = select(StaticMessage).where(StaticMessage.guild_id == guild_id)
    if message_type is not None:
        stmt = stmt.where(StaticMessage.type == StaticMessageType(message_type).value)
    if update_cadence is not None:
        stmt = stmt.where(StaticMessage.update_cadence == UpdateCadence(update_cadence).value)
    try:
        with get_session(engine) as session:
            return list(session.scalars(stmt.order_by(StaticMessage.id)).all())
    except SQLAlchemyError as exc:
        raise LookupFailure(f"could not list static messages: {exc}") from exc
