"""
antartica.database.engine — Database Connection & Async Helper
===============================================================

Discord bots run on an ``asyncio`` event loop while SQLAlchemy is
**synchronous**.  Calling the DB directly from a coroutine would freeze the
whole bot until the query returns, so every store call goes through
:func:`run_db`, which ships the synchronous function to a thread pool via
``asyncio.to_thread()``.

Usage::

    from antartica.database.engine import create_db_engine, init_db, run_db

    engine = create_db_engine()          # reads DATABASE_URL from .env
    init_db(engine)                      # CREATE TABLE IF NOT EXISTS …

    # Inside an async Cog method:
    tracks = await run_db(list_reaction_tracks, engine, guild_id)
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Callable
from contextlib import contextmanager
from typing import ParamSpec, TypeVar

from sqlalchemy import Engine, create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from antartica.database.models import Base
from antartica.errors import ConfigurationError, PersistenceFailure

logger = logging.getLogger(__name__)

P = ParamSpec("P")
T = TypeVar("T")


# ---------------------------------------------------------------------------
# Engine creation
# ---------------------------------------------------------------------------
def create_db_engine() -> Engine:
    """Build a SQLAlchemy :class:`Engine` from the ``DATABASE_URL`` env var.

    The pool is sized for a single bot process: five persistent
    connections, up to ten more under load, stale connections pinged
    before use and recycled hourly.

    Raises
    ------
    ConfigurationError
        If ``DATABASE_URL`` is not set.
    """
    url = os.getenv("DATABASE_URL")
    if not url:
        raise ConfigurationError(
            "DATABASE_URL is not set.  "
            "Add a PostgreSQL URL (postgresql+psycopg://…) to your .env."
        )

    engine = create_engine(
        url,
        echo=False,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,
        pool_timeout=10,
        pool_recycle=3600,
    )
    logger.info("Database engine created → %s", engine.url.host)
    return engine


# ---------------------------------------------------------------------------
# Schema initialization
# ---------------------------------------------------------------------------
def init_db(engine: Engine) -> None:
    """Create all tables defined in :mod:`antartica.database.models`.

    Safe to call on every startup (``CREATE TABLE IF NOT EXISTS``).

    .. note::

        In production the schema is managed by Alembic (``alembic upgrade
        head``).  ``create_all`` stays as a safety net for dev/test.
    """
    Base.metadata.create_all(engine)
    logger.info("Database tables verified / created.")


def require_engine(engine: Engine | None) -> Engine:
    """Return *engine* or raise :class:`ConfigurationError` if none is bound."""
    if engine is None:
        raise ConfigurationError("No database engine is configured.")
    return engine


# ---------------------------------------------------------------------------
# Session helper
# ---------------------------------------------------------------------------
@contextmanager
def get_session(engine: Engine):
    """Yield a :class:`Session` that commits on success and rolls back on
    exception.

    A failing commit surfaces as :class:`PersistenceFailure`.

    Usage::

        with get_session(engine) as session:
            session.add(RoleToggle(guild_id=1, role_id=2))
            # commit happens automatically on block exit
    """
    session = Session(require_engine(engine), expire_on_commit=False)
    try:
        yield session
        try:
            session.commit()
        except SQLAlchemyError as exc:
            raise PersistenceFailure(f"commit failed: {exc}") from exc
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


# ---------------------------------------------------------------------------
# Async bridge
# ---------------------------------------------------------------------------
async def run_db(func: Callable[P, T], *args: P.args, **kwargs: P.kwargs) -> T:
    """Run a **synchronous** database function on a background thread.

    Every DB call from a coroutine goes through this wrapper::

        result = await run_db(my_sync_db_function, engine, guild_id)

    Under the hood it calls :func:`asyncio.to_thread`, which schedules
    *func* on the default ``ThreadPoolExecutor`` so the event loop is never
    blocked.
    """
    return await asyncio.to_thread(func, *args, **kwargs)
