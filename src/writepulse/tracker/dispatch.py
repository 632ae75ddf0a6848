"""Single-consumer asyncio queue that serialises tracker events.

Every mutation of the tracking state goes through one consumer task, which
awaits each handler to completion before taking the next event.  This is
what lets :class:`~writepulse.tracker.delta.DeltaTracker` read the previous
word count and write the new one without any locking.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from writepulse.core.defaults import DEFAULT_EVENT_QUEUE_SIZE
from writepulse.core.types import TrackerEvent

logger = logging.getLogger(__name__)

EventHandler = Callable[[TrackerEvent], Awaitable[Any]]

_STOP = object()


class EventDispatcher:
    """Bounded queue feeding a single consumer task.

    Producers (a file watcher, a test) call :meth:`submit`; the consumer
    calls *handler* for each event in arrival order.  A handler that
    raises is logged and the consumer moves on to the next event.

    Args:
        handler: Coroutine function processing one event.
        maxsize: Queue bound; :meth:`submit` waits when it is full.
    """

    def __init__(
        self,
        handler: EventHandler,
        *,
        maxsize: int = DEFAULT_EVENT_QUEUE_SIZE,
    ) -> None:
        self._handler = handler
        self._queue: asyncio.Queue[Any] = asyncio.Queue(maxsize=maxsize)
        self._task: asyncio.Task[None] | None = None
        self.processed = 0
        self.failed = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Spawn the consumer task on the running event loop."""
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._consume())

    async def submit(self, event: TrackerEvent) -> None:
        """Enqueue *event*, waiting for room if the queue is full."""
        await self._queue.put(event)

    def submit_nowait(self, event: TrackerEvent) -> None:
        """Enqueue *event* immediately.

        Raises:
            asyncio.QueueFull: If the queue is at capacity.
        """
        self._queue.put_nowait(event)

    async def join(self) -> None:
        """Wait until every event submitted so far has been handled."""
        await self._queue.join()

    async def stop(self) -> None:
        """Handle everything already queued, then end the consumer task."""
        if self._task is None:
            return
        await self._queue.put(_STOP)
        await self._task
        self._task = None

    async def __aenter__(self) -> EventDispatcher:
        self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()

    async def _consume(self) -> None:
        while True:
            event = await self._queue.get()
            try:
                if event is _STOP:
                    return
                await self._handler(event)
                self.processed += 1
            except Exception:
                self.failed += 1
                logger.warning("Failed to handle %s", event, exc_info=True)
            finally:
                self._queue.task_done()
