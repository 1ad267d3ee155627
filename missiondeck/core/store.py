"""Structured store: one JSON document holding tasks, agents, activities, notifications.

Every mutation is load -> mutate -> append activity -> save. Reads go through
the cache region; `save` drops that region so the next `load` re-reads disk.
"""

import asyncio
import json
import logging
import os
import tempfile
from collections.abc import Callable
from pathlib import Path
from typing import Any, TypeVar

from missiondeck.errors import StoreError
from missiondeck.lib.format import iso, utcnow
from missiondeck.lib.uuid7 import uuid7
from missiondeck.models import Activity

from .cache import Cache, Category

log = logging.getLogger(__name__)

T = TypeVar("T")

COLLECTIONS = ("tasks", "agents", "activities", "notifications")


def empty_document() -> dict:
    return {name: [] for name in COLLECTIONS}


def _normalize(document: Any) -> dict:
    if not isinstance(document, dict):
        raise ValueError(f"Store document must be an object, got {type(document).__name__}")
    for name in COLLECTIONS:
        if not isinstance(document.get(name), list):
            document[name] = []
    return document


class Store:
    def __init__(self, path: Path, cache: Cache):
        self.path = Path(path)
        self.cache = cache
        cache.register(Category.STORE, self._read_lenient, default=empty_document())

    def _read(self) -> dict:
        if not self.path.exists():
            return empty_document()
        with open(self.path, encoding="utf-8") as f:
            return _normalize(json.load(f))

    def _read_lenient(self) -> dict:
        try:
            return self._read()
        except (ValueError, UnicodeDecodeError) as e:
            log.warning(f"Store {self.path} unreadable, serving empty document: {e}")
            return empty_document()

    def _read_strict(self) -> dict:
        try:
            return self._read()
        except (ValueError, UnicodeDecodeError) as e:
            raise StoreError(f"Store {self.path} is corrupt: {e}") from e

    def load(self) -> dict:
        """Return the full document, populating the cache region if absent."""
        return self.cache.get(Category.STORE)

    def save(self, document: dict) -> None:
        """Overwrite the document file in one replace, then drop the cached copy."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=".database-", suffix=".tmp", dir=self.path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=2, ensure_ascii=False)
            os.replace(tmp_name, self.path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
        finally:
            self.cache.invalidate(Category.STORE)

    def mutate(self, fn: Callable[[dict], T]) -> T:
        """Read-modify-write. Unguarded: a concurrent writer in another process can clobber."""
        document = self._read_strict()
        result = fn(document)
        self.save(document)
        return result


class StoreWriter:
    """Single-writer actor: applies queued mutations one at a time."""

    def __init__(self, store: Store):
        self.store = store
        self._queue: asyncio.Queue | None = None
        self._task: asyncio.Task | None = None
        self._loop: asyncio.AbstractEventLoop | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        loop = asyncio.get_running_loop()
        if self.running and self._loop is loop:
            return
        self._loop = loop
        self._queue = asyncio.Queue()
        self._task = loop.create_task(self._run())

    async def stop(self) -> None:
        if not self._task:
            return
        if self._loop is not asyncio.get_running_loop():
            self._task = None
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        while self._queue and not self._queue.empty():
            _, future = self._queue.get_nowait()
            if not future.done():
                future.cancel()

    async def submit(self, fn: Callable[[dict], T]) -> T:
        loop = asyncio.get_running_loop()
        if not self.running or self._loop is not loop:
            self.start()
        future = loop.create_future()
        await self._queue.put((fn, future))
        return await future

    async def _run(self) -> None:
        while True:
            fn, future = await self._queue.get()
            if future.cancelled():
                continue
            try:
                result = self.store.mutate(fn)
            except Exception as e:
                future.set_exception(e)
            else:
                future.set_result(result)


def append_activity(
    document: dict,
    activity_type: str,
    agent_id: str,
    description: str,
    task_id: str | None = None,
    metadata: dict | None = None,
    now=None,
) -> dict:
    """Prepend an activity record; newest entries come first."""
    activity = Activity(
        id=f"activity-{uuid7()}",
        timestamp=iso(now or utcnow()),
        type=activity_type,
        agent_id=agent_id,
        description=description,
        task_id=task_id,
        metadata=metadata or {},
    )
    record = activity.to_dict()
    document["activities"].insert(0, record)
    return record
