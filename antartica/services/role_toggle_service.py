"""
antartica.services.role_toggle_service — Self-Assignable Role Store
====================================================================

One :class:`~antartica.database.models.RoleToggle` row per (guild, role).
Upserts replace the permission threshold and description.
"""

from __future__ import annotations

import logging

from sqlalchemy import Engine, delete, select
from sqlalchemy.exc import SQLAlchemyError

from antartica.database.engine import get_session
from antartica.database.models import RoleToggle
from antartica.errors import LookupFailure, PersistenceFailure, ValidationError

logger = logging.getLogger(__name__)


def parse_permissions(raw: str | None) -> int:
    """Parse a permission bitmask typed by an admin.

    Blank means ``0`` (no threshold).

    Raises
    ------
    ValidationError
        If *raw* is not a non-negative whole number.
    """
    value = (raw or "").strip()
    if not value:
        return 0
    if not value.isdigit():
        raise ValidationError("Permissions must be a whole number.")
    return int(value)


def upsert_role_toggle(
    engine: Engine,
    guild_id: int,
    role_id: int,
    required_permissions: int = 0,
    description: str = "",
) -> bool:
    """Create or replace the toggle for *role_id*; ``True`` if newly created."""
    if required_permissions < 0:
        raise ValidationError("Permissions must be a whole number.")

    try:
        with get_session(engine) as session:
            toggle = session.scalar(
                select(RoleToggle).where(
                    RoleToggle.guild_id == guild_id,
                    RoleToggle.role_id == role_id,
                )
            )
            created = toggle is None
            if created:
                toggle = RoleToggle(guild_id=guild_id, role_id=role_id)
                session.add(toggle)
            toggle.required_permissions = required_permissions
            toggle.description = (description or "").strip()
    except SQLAlchemyError as exc:
        raise PersistenceFailure(f"could not save role toggle: {exc}") from exc

    logger.info(
        "Role toggle %s: guild=%s role=%s permissions=%s",
        "added" if created else "updated", guild_id, role_id, required_permissions,
    )
    return created


def remove_role_toggle(engine: Engine, guild_id: int, role_id: int) -> int:
    try:
        with get_session(engine) as session:
            result = session.execute(
                delete(RoleToggle).where(
                    RoleToggle.guild_id == guild_id,
                    RoleToggle.role_id == role_id,
                )
            )
            deleted = result.rowcount or 0
    except SQLAlchemyError as exc:
        raise PersistenceFailure(f"could not remove role toggle: {exc}") from exc

    if deleted:
        logger.info("Role toggle removed: guild=%s role=%s", guild_id, role_id)
    return deleted


def list_role_toggles(engine: Engine, guild_id: int) -> list[RoleToggle]:
    """All toggles of a guild, ordered by role id."""
    try:
        with get_session(engine) as session:
            return list(session.scalars(
                select(RoleToggle)
                .where(RoleToggle.guild_id == guild_id)
                .order_by(RoleToggle.role_id)
            ).all())
    except SQLAlchemyError as exc:
        raise LookupFailure(f"could not list role toggles: {exc}") from exc


def get_role_toggle(engine: Engine, guild_id: int, role_id: int) -> RoleToggle | None:
    try:
        with get_session(engine) as session:
            return session.scalar(
                select(RoleToggle).where(
                    RoleToggle.guild_id == guild_id,
                    RoleToggle.role_id == role_id,
                )
            )
    except SQLAlchemyError as exc:
        raise LookupFailure(f"could not load role toggle: {exc}") from exc
