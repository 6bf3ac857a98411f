"""
antartica.engine.bus — In-Process Event / Action Bus
=====================================================

Two bounded FIFO queues shared by reference:

- ``events``  — gateway cogs publish, the reaction reconciler consumes.
- ``actions`` — the synchronizer and commands publish, the dispatcher consumes.

Publishing awaits while a queue is full, so a slow consumer throttles its
producers instead of losing data.  Order is preserved within a queue only.
Each queue has exactly one consumer.

Shutdown is cooperative: :meth:`EventBus.close` enqueues a sentinel behind
whatever is already queued, and ``next_*`` return ``None`` once they reach
it or once the shared stop signal is set.
"""

from __future__ import annotations

import asyncio
import logging

from antartica.constants import DEFAULT_BUS_CAPACITY
from antartica.engine.events import Action, Event

logger = logging.getLogger(__name__)

_CLOSED = object()


class BusClosedError(RuntimeError):
    """Raised when publishing onto a bus that has been closed."""


class EventBus:
    """Bounded event and action queues with explicit backpressure."""

    def __init__(self, capacity: int = DEFAULT_BUS_CAPACITY) -> None:
        if capacity <= 0:
            capacity = DEFAULT_BUS_CAPACITY
        self.capacity = capacity
        self.events: asyncio.Queue = asyncio.Queue(maxsize=capacity)
        self.actions: asyncio.Queue = asyncio.Queue(maxsize=capacity)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    # -------------------------------------------------------------------
    # Producers
    # -------------------------------------------------------------------
    async def publish_event(self, event: Event) -> None:
        """Enqueue an inbound event, waiting while the queue is full."""
        if not isinstance(event, Event):
            raise TypeError(f"not a bus event: {type(event).__name__}")
        if self._closed:
            raise BusClosedError("event bus is closed")
        await self.events.put(event)

    async def publish_action(self, action: Action) -> None:
        """Enqueue an outbound action, waiting while the queue is full."""
        if not isinstance(action, Action):
            raise TypeError(f"not a bus action: {type(action).__name__}")
        if self._closed:
            raise BusClosedError("event bus is closed")
        await self.actions.put(action)

    # -------------------------------------------------------------------
    # Consumers
    # -------------------------------------------------------------------
    async def next_event(self, stop: asyncio.Event | None = None) -> Event | None:
        """Return the next event, or ``None`` when closed or stopped."""
        return await self._next(self.events, stop)

    async def next_action(self, stop: asyncio.Event | None = None) -> Action | None:
        """Return the next action, or ``None`` when closed or stopped."""
        return await self._next(self.actions, stop)

    async def _next(self, queue: asyncio.Queue, stop: asyncio.Event | None):
        if stop is not None and stop.is_set():
            return None
        if self._closed and queue.empty():
            return None

        if stop is None:
            item = await queue.get()
        else:
            get_task = asyncio.ensure_future(queue.get())
            stop_task = asyncio.ensure_future(stop.wait())
            try:
                done, _ = await asyncio.wait(
                    {get_task, stop_task}, return_when=asyncio.FIRST_COMPLETED,
                )
            finally:
                stop_task.cancel()
            if get_task not in done:
                get_task.cancel()
                return None
            item = get_task.result()

        if item is _CLOSED:
            # Leave the sentinel in place so repeated calls keep returning None
            queue.put_nowait(_CLOSED)
            return None
        return item

    # -------------------------------------------------------------------
    # Shutdown
    # -------------------------------------------------------------------
    async def close(self) -> None:
        """Stop accepting new items and wake both consumers once drained.

        Safe to call more than once.  Never waits on a full queue: a consumer
        that is busy draining sees the closed flag once the queue runs dry.
        """
        if self._closed:
            return
        self._closed = True
        for queue in (self.events, self.actions):
            try:
                queue.put_nowait(_CLOSED)
            except asyncio.QueueFull:
                pass
        logger.info("Event bus closed.")
