"""File change watcher: maps filesystem events to cache categories, debounced per category.

The watchdog observer calls back on its own thread. Events hop onto the
asyncio loop via `Debouncer.trigger_threadsafe`, and every timer lives on
that loop, so the debounced callback always runs on the loop thread.
"""

import asyncio
import fnmatch
import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .cache import Category

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class WatchRoute:
    category: Category
    pattern: str

    @property
    def base(self) -> str:
        """Literal directory prefix of the pattern, before any glob character."""
        parts = []
        for part in PurePosixPath(self.pattern).parts[:-1]:
            if any(ch in part for ch in "*?["):
                break
            parts.append(part)
        return "/".join(parts)

    @property
    def recursive(self) -> bool:
        relative = self.pattern[len(self.base) :].lstrip("/")
        return "/" in relative

    def matches(self, relative: str) -> bool:
        """Segment-wise glob match: `*` never crosses a `/`."""
        parts = relative.split("/")
        globs = self.pattern.split("/")
        return len(parts) == len(globs) and all(
            fnmatch.fnmatchcase(part, glob) for part, glob in zip(parts, globs)
        )


def default_routes() -> list[WatchRoute]:
    return [
        WatchRoute(Category.STORE, "mission-control/database.json"),
        WatchRoute(Category.RECURRING, "mission-control/recurring-tasks.json"),
        WatchRoute(Category.IDEAS, "content/ideas-bank.md"),
        WatchRoute(Category.MEMORY, "memory/*.md"),
        WatchRoute(Category.DRAFTS, "philosophers/*/drafts/*.md"),
        WatchRoute(Category.BOOKS, "books/*/PROJECT_TRACKER.md"),
        WatchRoute(Category.BOOKS, "books/*/outline/*.md"),
        WatchRoute(Category.BOOKS, "books/*/chapters/*.md"),
        WatchRoute(Category.SCHEDULE, "POSTING_SCHEDULE.md"),
    ]


def resolve_category(path: str | Path, root: Path, routes: list[WatchRoute]) -> Category | None:
    """Owning category for a changed path, or None for dotfiles and paths outside the root."""
    try:
        relative = Path(path).resolve().relative_to(Path(root).resolve())
    except ValueError:
        return None
    if any(part.startswith(".") for part in relative.parts):
        return None

    rel = relative.as_posix()
    for route in routes:
        if route.matches(rel):
            return route.category
    return None


class Debouncer:
    """Coalesces triggers per key: one callback, `window` seconds after the last trigger."""

    def __init__(
        self, window: float, callback: Callable, loop: asyncio.AbstractEventLoop | None = None
    ):
        self.window = window
        self.callback = callback
        self.loop = loop
        self._pending: dict = {}

    def bind(self, loop: asyncio.AbstractEventLoop) -> None:
        self.loop = loop

    def trigger(self, key) -> None:
        if self.loop is None:
            self.loop = asyncio.get_running_loop()
        handle = self._pending.pop(key, None)
        if handle is not None:
            handle.cancel()
        self._pending[key] = self.loop.call_later(self.window, self._fire, key)

    def trigger_threadsafe(self, key) -> None:
        if self.loop is None or self.loop.is_closed():
            log.debug(f"Dropping change for {key}: no event loop")
            return
        self.loop.call_soon_threadsafe(self.trigger, key)

    def _fire(self, key) -> None:
        self._pending.pop(key, None)
        try:
            self.callback(key)
        except Exception as e:
            log.error(f"Change callback for {key} failed: {e}", exc_info=True)

    def pending(self) -> int:
        return len(self._pending)

    def cancel_all(self) -> None:
        for handle in self._pending.values():
            handle.cancel()
        self._pending.clear()


class ChangeHandler(FileSystemEventHandler):
    def __init__(self, root: Path, routes: list[WatchRoute], debouncer: Debouncer):
        self.root = root
        self.routes = routes
        self.debouncer = debouncer

    def _dispatch_path(self, path) -> None:
        if isinstance(path, bytes):
            path = path.decode(errors="replace")
        category = resolve_category(path, self.root, self.routes)
        if category is not None:
            self.debouncer.trigger_threadsafe(category)

    def on_modified(self, event: FileSystemEvent):
        if not event.is_directory:
            self._dispatch_path(event.src_path)

    def on_created(self, event: FileSystemEvent):
        if not event.is_directory:
            self._dispatch_path(event.src_path)

    def on_deleted(self, event: FileSystemEvent):
        if not event.is_directory:
            self._dispatch_path(event.src_path)

    def on_moved(self, event: FileSystemEvent):
        if not event.is_directory:
            self._dispatch_path(event.dest_path)


class FileWatcher:
    def __init__(
        self,
        root: Path,
        on_change: Callable[[Category], None],
        routes: list[WatchRoute] | None = None,
        debounce_seconds: float = 0.5,
    ):
        self.root = Path(root)
        self.routes = routes if routes is not None else default_routes()
        self.debouncer = Debouncer(debounce_seconds, on_change)
        self._observer = None

    @property
    def running(self) -> bool:
        return self._observer is not None

    def _watch_dirs(self) -> dict[Path, bool]:
        """Directory -> recursive flag. Missing route bases fall back to a recursive root watch."""
        dirs: dict[Path, bool] = {}
        for route in self.routes:
            base = self.root / route.base if route.base else self.root
            recursive = route.recursive
            if not base.is_dir():
                base, recursive = self.root, True
            dirs[base] = dirs.get(base, False) or recursive
        return dirs

    def start(self) -> None:
        """Begin observing. Must be called from a running event loop."""
        if self._observer is not None:
            return
        self.debouncer.bind(asyncio.get_running_loop())
        self.root.mkdir(parents=True, exist_ok=True)
        handler = ChangeHandler(self.root, self.routes, self.debouncer)
        observer = Observer()
        for directory, recursive in self._watch_dirs().items():
            observer.schedule(handler, str(directory), recursive=recursive)
        observer.start()
        self._observer = observer
        log.info(f"Watching {self.root}")

    def stop(self) -> None:
        if self._observer is None:
            return
        self._observer.stop()
        self._observer.join()
        self._observer = None
        self.debouncer.cancel_all()
