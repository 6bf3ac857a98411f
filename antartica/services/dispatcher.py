"""
antartica.services.dispatcher — Action Dispatcher
==================================================

The single consumer of ``bus.actions``.  Performs each action against the
:class:`Platform` and never lets one failure stop the loop: a failed send
or edit is logged with its target ids and dropped.  The display it was
meant to update stays stale until the next change triggers a new render.

``LogEvent`` actions become log lines on the ``antartica.events`` logger.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import Protocol

import discord

from antartica.engine.bus import EventBus
from antartica.engine.events import Action, EditMessage, LogEvent, LogLevel, SendMessage

logger = logging.getLogger(__name__)
event_logger = logging.getLogger("antartica.events")

LOG_LEVELS: dict[LogLevel, int] = {
    LogLevel.DEBUG: logging.DEBUG,
    LogLevel.INFO: logging.INFO,
    LogLevel.WARN: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
}


class Platform(Protocol):
    """Outbound side effects the dispatcher needs."""

    async def create_message(
        self, channel_id: int, content: str = "", embeds: Sequence[discord.Embed] = (),
    ) -> int: ...

    async def edit_message(
        self,
        channel_id: int,
        message_id: int,
        content: str | None = None,
        embeds: Sequence[discord.Embed] = (),
    ) -> None: ...


def format_log_event(action: LogEvent) -> str:
    """``[category] title — description | k=v k=v`` (empty parts omitted)."""
    text = f"[{action.category}] {action.title}"
    if action.description:
        text += f" — {action.description}"
    pairs = [f"guild_id={action.guild_id}"] if action.guild_id else []
    pairs.extend(f"{f.name}={f.value}" for f in action.fields)
    if pairs:
        text += " | " + " ".join(pairs)
    return text


class ActionDispatcher:
    def __init__(self, platform: Platform) -> None:
        self.platform = platform
        self._handlers: dict[type[Action], Callable[[Action], Awaitable[None]]] = {
            SendMessage: self._send,
            EditMessage: self._edit,
            LogEvent: self._log,
        }

    async def run(self, bus: EventBus, stop: asyncio.Event) -> None:
        """Drain ``bus.actions`` until the bus closes or *stop* is set."""
        logger.info("Action dispatcher started.")
        while True:
            action = await bus.next_action(stop)
            if action is None:
                break
            await self.handle(action)
        logger.info("Action dispatcher stopped.")

    async def handle(self, action: Action) -> None:
        try:
            handler = self._handlers[type(action)]
        except KeyError:
            raise TypeError(f"unhandled bus action: {type(action).__name__}") from None
        await handler(action)

    # -------------------------------------------------------------------
    # Handlers
    # -------------------------------------------------------------------
    async def _send(self, action: SendMessage) -> None:
        if not action.channel_id or not (action.content.strip() or action.embeds):
            logger.debug("Skipping empty SendMessage to channel %s", action.channel_id)
            return
        try:
            await self.platform.create_message(
                action.channel_id, action.content, action.embeds,
            )
        except Exception:
            logger.exception("Failed to send message to channel %s", action.channel_id)

    async def _edit(self, action: EditMessage) -> None:
        if not action.channel_id or not action.message_id:
            logger.debug(
                "Skipping EditMessage with missing ids: channel=%s message=%s",
                action.channel_id, action.message_id,
            )
            return
        try:
            await self.platform.edit_message(
                action.channel_id, action.message_id, action.content, action.embeds,
            )
        except Exception:
            logger.exception(
                "Failed to edit message %s in channel %s",
                action.message_id, action.channel_id,
            )

    async def _log(self, action: LogEvent) -> None:
        level = LOG_LEVELS.get(action.level, logging.INFO)
        event_logger.log(level, "%s", format_log_event(action))
