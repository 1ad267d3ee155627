"""Client side of cache invalidation: an SWR-style key cache kept fresh by the event stream.

Keys are API paths (`/api/tasks`, `/api/tasks/task-1`, ...). A channel maps
either to a fixed tuple of keys or to a predicate over keys. While the
stream is down the subscriber reconnects with exponential backoff and polls
every held key at most once per poll interval.
"""

import asyncio
import json
import logging
import time
from collections.abc import Awaitable, Callable

import httpx

from missiondeck.lib import config

log = logging.getLogger(__name__)

EVENTS_PATH = "/api/events"

KeyMatcher = tuple[str, ...] | Callable[[str], bool]


def _path(key: str) -> str:
    return key.split("?", 1)[0]


def _prefixed(prefix: str, *exact: str) -> Callable[[str], bool]:
    def matches(key: str) -> bool:
        path = _path(key)
        return path in exact or path == prefix or path.startswith(prefix + "/")

    return matches


CHANNEL_KEYS: dict[str, KeyMatcher] = {
    "tasks": _prefixed("/api/tasks", "/api/dashboard", "/api/activities"),
    "notifications": ("/api/notifications", "/api/dashboard"),
    "agents": ("/api/agents", "/api/dashboard"),
    "ideas": ("/api/ideas", "/api/ideas/stats", "/api/dashboard"),
    "memory": ("/api/memory",),
    "drafts": ("/api/drafts",),
    "books": _prefixed("/api/books"),
    "schedule": ("/api/schedule",),
    "recurring": ("/api/recurring-tasks",),
}


def keys_for_channel(channel: str, keys) -> list[str]:
    """Held keys affected by a channel. Unknown channels affect nothing."""
    mapping = CHANNEL_KEYS.get(channel)
    if mapping is None:
        return []
    if callable(mapping):
        return [k for k in keys if mapping(k)]
    return [k for k in keys if _path(k) in mapping]


class ClientCache:
    def __init__(self, base_url: str, http_client: httpx.AsyncClient):
        self.base_url = base_url.rstrip("/")
        self.http = http_client
        self._data: dict[str, object] = {}

    def keys(self) -> list[str]:
        return list(self._data)

    def peek(self, key: str):
        return self._data.get(key)

    async def _fetch(self, key: str):
        response = await self.http.get(f"{self.base_url}{key}")
        response.raise_for_status()
        data = response.json()
        self._data[key] = data
        return data

    async def get(self, key: str):
        if key in self._data:
            return self._data[key]
        return await self._fetch(key)

    async def revalidate(self, key: str) -> bool:
        """Refetch a held key. Failures keep the stale value."""
        if key not in self._data:
            return False
        try:
            await self._fetch(key)
        except httpx.HTTPError as e:
            log.debug(f"Revalidating {key} failed: {e}")
            return False
        return True

    async def revalidate_all(self) -> int:
        results = [await self.revalidate(key) for key in self.keys()]
        return sum(results)


class Backoff:
    """Reconnect delay: starts at `floor`, doubles per failure, capped at `cap`."""

    def __init__(self, floor: float = 1.0, cap: float = 30.0):
        self.floor = floor
        self.cap = cap
        self.current = floor

    def next_delay(self) -> float:
        delay = self.current
        self.current = min(self.current * 2, self.cap)
        return delay

    def reset(self) -> None:
        self.current = self.floor


class InvalidationSubscriber:
    def __init__(
        self,
        cache: ClientCache,
        base_url: str,
        http_client: httpx.AsyncClient,
        backoff: Backoff | None = None,
        poll_interval: float = 30.0,
        sleep: Callable[[float], Awaitable] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.cache = cache
        self.url = base_url.rstrip("/") + EVENTS_PATH
        self.http = http_client
        self.backoff = backoff or Backoff()
        self.poll_interval = poll_interval
        self.sleep = sleep
        self.clock = clock
        self.connected = False
        self._stopped = False
        self._last_poll: float | None = None

    @classmethod
    def from_config(
        cls,
        cache: ClientCache,
        base_url: str,
        http_client: httpx.AsyncClient,
        cfg: dict | None = None,
    ) -> "InvalidationSubscriber":
        """Build with backoff and poll settings from the `subscriber` config section."""
        settings = config.section("subscriber", cfg)
        backoff = Backoff(
            floor=float(settings.get("backoff_floor_seconds", 1)),
            cap=float(settings.get("backoff_cap_seconds", 30)),
        )
        return cls(
            cache,
            base_url,
            http_client,
            backoff=backoff,
            poll_interval=float(settings.get("poll_interval_seconds", 30)),
        )

    def stop(self) -> None:
        self._stopped = True

    async def handle_message(self, raw: str) -> list[str]:
        """Revalidate keys for one `invalidate` message. Malformed messages are ignored."""
        try:
            message = json.loads(raw)
        except (TypeError, ValueError):
            return []
        if not isinstance(message, dict) or message.get("type") != "invalidate":
            return []
        channel = message.get("channel")
        if not isinstance(channel, str):
            return []
        keys = keys_for_channel(channel, self.cache.keys())
        for key in keys:
            await self.cache.revalidate(key)
        return keys

    async def poll(self) -> bool:
        now = self.clock()
        if self._last_poll is not None and now - self._last_poll < self.poll_interval:
            return False
        self._last_poll = now
        await self.cache.revalidate_all()
        return True

    async def _listen(self) -> None:
        async with self.http.stream("GET", self.url, timeout=None) as response:
            response.raise_for_status()
            self.connected = True
            self.backoff.reset()
            log.info(f"Subscribed to {self.url}")
            async for line in response.aiter_lines():
                if line.startswith("data:"):
                    await self.handle_message(line[5:].strip())
                if self._stopped:
                    return

    async def run(self) -> None:
        while not self._stopped:
            try:
                await self._listen()
            except httpx.HTTPError as e:
                log.debug(f"Event stream unavailable: {e}")
            finally:
                self.connected = False
            if self._stopped:
                break
            await self.poll()
            await self.sleep(self.backoff.next_delay())
