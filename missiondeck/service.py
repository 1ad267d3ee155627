"""Service wiring: one explicit object owning the cache, store, watcher, monitor and broadcaster."""

import logging
from datetime import date
from pathlib import Path

from missiondeck.core import sources
from missiondeck.core.broadcast import Broadcaster
from missiondeck.core.cache import Cache, Category
from missiondeck.core.ideas import idea_stats, load_ideas
from missiondeck.core.monitor import StuckTaskMonitor
from missiondeck.core.store import Store, StoreWriter
from missiondeck.core.watcher import FileWatcher
from missiondeck.lib import config as config_mod
from missiondeck.lib import paths
from missiondeck.models import Idea

log = logging.getLogger(__name__)


class DeckService:
    def __init__(self, root: Path | None = None, config: dict | None = None):
        self.root = Path(root) if root is not None else paths.workspace_root()
        self.config = config if config is not None else config_mod.load_config()
        self.thresholds = config_mod.thresholds(self.config)
        max_bytes = int(config_mod.section("content", self.config).get("max_bytes", 1024 * 1024))

        self.cache = Cache()
        self.store = Store(paths.database(self.root), self.cache)
        self.writer = StoreWriter(self.store)

        ideas_path = paths.ideas_bank(self.root)
        self.cache.register(Category.IDEAS, lambda: load_ideas(ideas_path), default=[])
        self.cache.register(
            Category.MEMORY,
            lambda: sources.load_memory_files(paths.memory_dir(self.root), max_bytes),
            default=[],
        )
        self.cache.register(
            Category.DRAFTS,
            lambda: sources.load_drafts(paths.drafts_root(self.root), max_bytes),
            default=[],
        )
        self.cache.register(
            Category.BOOKS, lambda: sources.load_books(paths.books_dir(self.root)), default=[]
        )
        self.cache.register(
            Category.SCHEDULE,
            lambda: sources.load_schedule(paths.posting_schedule(self.root)),
            default={"content": "", "dailySchedule": [], "lastUpdated": None},
        )
        self.cache.register(
            Category.RECURRING,
            lambda: sources.load_recurring_tasks(paths.recurring_tasks(self.root)),
            default={"recurringTasks": []},
        )
        self.max_bytes = max_bytes

        broadcast_cfg = config_mod.section("broadcast", self.config)
        self.broadcaster = Broadcaster(queue_size=int(broadcast_cfg.get("queue_size", 100)))
        self.heartbeat_seconds = float(broadcast_cfg.get("heartbeat_seconds", 15))

        watcher_cfg = config_mod.section("watcher", self.config)
        self.watcher = FileWatcher(
            self.root,
            self.on_change,
            debounce_seconds=float(watcher_cfg.get("debounce_ms", 500)) / 1000,
        )

        monitor_cfg = config_mod.section("monitor", self.config)
        self.monitor = StuckTaskMonitor(
            self.store,
            interval=float(monitor_cfg.get("interval_seconds", 300)),
            initial_delay=float(monitor_cfg.get("initial_delay_seconds", 30)),
            orchestrator=monitor_cfg.get("orchestrator", "lead"),
            thresholds=self.thresholds,
        )

    def on_change(self, category: Category) -> list[str]:
        """Debounced watcher callback: drop the region, then tell subscribers."""
        self.cache.invalidate(category)
        channels = self.broadcaster.on_change(category)
        log.info(f"Invalidated {category.value} -> {', '.join(channels)}")
        return channels

    def document(self) -> dict:
        return self.store.load()

    def tasks(self) -> list[dict]:
        return self.document()["tasks"]

    def ideas(self) -> list[Idea]:
        return self.cache.get(Category.IDEAS)

    def memory_files(self) -> list[dict]:
        return self.cache.get(Category.MEMORY)

    def drafts(self) -> list[dict]:
        return self.cache.get(Category.DRAFTS)

    def books(self) -> list[dict]:
        return self.cache.get(Category.BOOKS)

    def schedule(self) -> dict:
        return self.cache.get(Category.SCHEDULE)

    def recurring_tasks(self) -> dict:
        return self.cache.get(Category.RECURRING)

    def chapter(self, book_id: str, number: int) -> dict:
        return sources.chapter_details(
            paths.books_dir(self.root), book_id, number, self.ideas(), self.max_bytes
        )

    def idea_stats(self, today: date | None = None) -> dict:
        return idea_stats(self.ideas(), today or date.today())

    async def start(self, watch: bool = True, monitor: bool = True) -> None:
        self.writer.start()
        if watch:
            self.watcher.start()
        if monitor:
            self.monitor.start()

    async def stop(self) -> None:
        await self.monitor.stop()
        self.watcher.stop()
        await self.writer.stop()
