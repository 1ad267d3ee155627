"""Server side of cache invalidation: fan a "channel changed" message out to open streams.

Delivery is at-most-once. A subscriber whose queue is full misses the
message; clients recover through their polling fallback.
"""

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator

from .cache import Category

log = logging.getLogger(__name__)

CATEGORY_CHANNELS: dict[Category, tuple[str, ...]] = {
    Category.STORE: ("tasks", "notifications", "agents"),
    Category.IDEAS: ("ideas",),
    Category.MEMORY: ("memory",),
    Category.DRAFTS: ("drafts",),
    Category.BOOKS: ("books",),
    Category.SCHEDULE: ("schedule",),
    Category.RECURRING: ("recurring",),
}


def invalidation_message(channel: str) -> dict:
    return {"type": "invalidate", "channel": channel}


class Broadcaster:
    def __init__(self, queue_size: int = 100):
        self.queue_size = queue_size
        self._queues: set[asyncio.Queue] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._queues)

    @contextlib.asynccontextmanager
    async def subscribe(self) -> AsyncIterator[asyncio.Queue]:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.queue_size)
        self._queues.add(queue)
        log.debug(f"Subscriber joined ({len(self._queues)} open)")
        try:
            yield queue
        finally:
            self._queues.discard(queue)
            log.debug(f"Subscriber left ({len(self._queues)} open)")

    def broadcast(self, channel: str) -> int:
        """Queue the message for every subscriber. Returns how many received it."""
        message = invalidation_message(channel)
        delivered = 0
        for queue in list(self._queues):
            try:
                queue.put_nowait(message)
                delivered += 1
            except asyncio.QueueFull:
                log.debug(f"Dropping {channel} invalidation for a slow subscriber")
        return delivered

    def on_change(self, category: Category) -> list[str]:
        channels = CATEGORY_CHANNELS.get(category, ())
        for channel in channels:
            self.broadcast(channel)
        return list(channels)
