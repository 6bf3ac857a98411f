"""
antartica.services.reconciler — Reaction Reconciler
====================================================

The single consumer of ``bus.events``.  Each event is applied to the
reaction store (:mod:`antartica.services.reaction_service`) and the
resulting leaderboard deltas are handed to the
:class:`~antartica.services.sync_service.StaticMessageSynchronizer`.

Delivery is at-most-once: if the store fails, the event is logged and
dropped.  There is no retry and no requeue.  Because there is only one
consumer, events for the same message are applied in the order they were
published.

A reaction-add arrives without its message author unless the gateway
payload carried one.  The author is looked up here, in queue order, so a
later remove for the same message cannot overtake the add while the
lookup is in flight.  Only adds for tracked emojis trigger a lookup.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import replace
from typing import Protocol

from sqlalchemy import Engine

from antartica.database.engine import require_engine, run_db
from antartica.engine.bus import EventBus
from antartica.engine.events import (
    Event,
    InteractionReceived,
    MessageDeleted,
    ReactionAdded,
    ReactionRemoved,
    ReactionRemovedAll,
    ReactionRemovedForEmoji,
)
from antartica.errors import AntarticaError, ConfigurationError
from antartica.services.reaction_service import (
    LeaderboardDelta,
    apply_reaction_add,
    apply_reaction_remove,
    clear_reactions,
)
from antartica.services.reaction_track_service import is_tracked
from antartica.services.sync_service import StaticMessageSynchronizer

logger = logging.getLogger(__name__)


class AuthorLookup(Protocol):
    async def get_message_author(self, channel_id: int, message_id: int) -> int | None: ...


class ReactionReconciler:
    """Turns reaction events into record / leaderboard mutations."""

    def __init__(
        self,
        engine: Engine | None,
        synchronizer: StaticMessageSynchronizer,
        authors: AuthorLookup | None = None,
    ) -> None:
        self.engine = engine
        self.synchronizer = synchronizer
        self.authors = authors
        self._config_error_logged = False

        # Every Event subclass must appear here; handler_for() raises otherwise.
        self._handlers: dict[type[Event], Callable[[Event], Awaitable[list[LeaderboardDelta]]]] = {
            ReactionAdded: self._on_reaction_added,
            ReactionRemoved: self._on_reaction_removed,
            ReactionRemovedForEmoji: self._on_reaction_removed_for_emoji,
            ReactionRemovedAll: self._on_message_cleared,
            MessageDeleted: self._on_message_cleared,
            InteractionReceived: self._on_interaction,
        }

    # -------------------------------------------------------------------
    # Consumer loop
    # -------------------------------------------------------------------
    async def run(self, bus: EventBus, stop: asyncio.Event) -> None:
        """Drain ``bus.events`` until the bus closes or *stop* is set."""
        logger.info("Reaction reconciler started.")
        while True:
            event = await bus.next_event(stop)
            if event is None:
                break
            await self.handle(event)
        logger.info("Reaction reconciler stopped.")

    async def handle(self, event: Event) -> list[LeaderboardDelta]:
        """Apply one event, isolating failures.

        Store and configuration errors are logged and the event is dropped.
        An unrecognised event type is a bug and is raised.
        """
        handler = self.handler_for(event)
        try:
            deltas = await handler(event)
        except ConfigurationError as exc:
            if not self._config_error_logged:
                logger.error("Reaction reconciler disabled: %s", exc)
                self._config_error_logged = True
            return []
        except AntarticaError as exc:
            logger.warning("Dropping %s: %s", type(event).__name__, exc)
            return []
        except Exception:
            logger.exception("Unexpected error applying %s", type(event).__name__)
            return []

        if deltas:
            try:
                await self.synchronizer.apply_deltas(deltas)
            except AntarticaError as exc:
                logger.warning(
                    "Leaderboard refresh failed after %s: %s", type(event).__name__, exc,
                )
            except Exception:
                logger.exception("Unexpected error refreshing leaderboards")
        return deltas

    def handler_for(self, event: Event) -> Callable[[Event], Awaitable[list[LeaderboardDelta]]]:
        try:
            return self._handlers[type(event)]
        except KeyError:
            raise TypeError(f"unhandled bus event: {type(event).__name__}") from None

    # -------------------------------------------------------------------
    # Per-event handlers
    # -------------------------------------------------------------------
    async def _on_reaction_added(self, event: ReactionAdded) -> list[LeaderboardDelta]:
        engine = require_engine(self.engine)
        if event.author_id is None and self.authors is not None:
            if await run_db(is_tracked, engine, event.guild_id, event.emoji.key):
                author_id = await self.authors.get_message_author(
                    event.channel_id, event.message_id,
                )
                event = replace(event, author_id=author_id)
        return await run_db(apply_reaction_add, engine, event)

    async def _on_reaction_removed(self, event: ReactionRemoved) -> list[LeaderboardDelta]:
        return await run_db(apply_reaction_remove, require_engine(self.engine), event)

    async def _on_reaction_removed_for_emoji(
        self, event: ReactionRemovedForEmoji,
    ) -> list[LeaderboardDelta]:
        return await run_db(
            clear_reactions,
            require_engine(self.engine),
            event.guild_id,
            event.message_id,
            event.emoji.key,
        )

    async def _on_message_cleared(
        self, event: ReactionRemovedAll | MessageDeleted,
    ) -> list[LeaderboardDelta]:
        return await run_db(
            clear_reactions, require_engine(self.engine), event.guild_id, event.message_id,
        )

    async def _on_interaction(self, event: InteractionReceived) -> list[LeaderboardDelta]:
        logger.debug(
            "Interaction %s (%s) from user %s in guild %s",
            event.interaction_id, event.type, event.user_id, event.guild_id,
        )
        return []
