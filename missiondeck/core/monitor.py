"""Periodic stuck-task sweep with per-(task, level) notification dedup.

A task that reaches red is announced once. Its key stays in `notified` while
it remains red and is dropped as soon as it falls below red (status change,
completion, reassignment), so a later return to red announces again.
"""

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime, timedelta

from missiondeck.lib.format import parse_timestamp, utcnow
from missiondeck.models import AlertLevel, Task, TimeTracking

from .notifications import add_stuck_alert
from .store import Store
from .tracking import compute_time_in_status

log = logging.getLogger(__name__)


def stuck_tasks(
    tasks: list[dict], now: datetime | None = None, thresholds=None
) -> list[tuple[Task, TimeTracking]]:
    """Active tasks at yellow or red, most elapsed first."""
    now = now or utcnow()
    found = []
    for record in tasks:
        if not isinstance(record, dict):
            continue
        task = Task.from_dict(record)
        if not task.is_active:
            continue
        tracking = compute_time_in_status(task, now, thresholds)
        if tracking.alert_level in (AlertLevel.YELLOW, AlertLevel.RED):
            found.append((task, tracking))
    return sorted(found, key=lambda pair: pair[1].time_in_status_ms, reverse=True)


class StuckTaskMonitor:
    def __init__(
        self,
        store: Store,
        interval: float = 300,
        initial_delay: float = 30,
        orchestrator: str = "lead",
        thresholds: dict[str, tuple[float, float]] | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.interval = interval
        self.initial_delay = initial_delay
        self.orchestrator = orchestrator
        self.thresholds = thresholds
        self.clock = clock
        self.notified: set[tuple[str, AlertLevel]] = set()
        self._task: asyncio.Task | None = None

    def _red(self, document: dict, now: datetime) -> list[tuple[Task, TimeTracking]]:
        return [
            (task, tracking)
            for task, tracking in stuck_tasks(document["tasks"], now, self.thresholds)
            if tracking.alert_level == AlertLevel.RED
        ]

    def restore_notified(self) -> set[tuple[str, AlertLevel]]:
        """Seed `notified` from red alerts already persisted for tasks still red.

        Only alerts raised since the task entered its current status count, so a
        task that left red and came back is announced again.
        """
        now = self.clock()
        document = self.store.load()
        entered = {
            task.id: now - timedelta(milliseconds=tracking.time_in_status_ms)
            for task, tracking in self._red(document, now)
        }
        for notification in document["notifications"]:
            if not isinstance(notification, dict) or notification.get("type") != "stuck_task":
                continue
            metadata = notification.get("metadata") or {}
            task_id = metadata.get("taskId")
            if metadata.get("alertLevel") != AlertLevel.RED.value or task_id not in entered:
                continue
            created = parse_timestamp(notification.get("createdAt"))
            if created and created >= entered[task_id]:
                self.notified.add((task_id, AlertLevel.RED))
        return self.notified

    def sweep(self) -> list[dict]:
        """Run one pass. Returns the notifications created by it."""
        now = self.clock()
        document = self.store.load()
        red = self._red(document, now)
        red_ids = {task.id for task, _ in red}
        fresh = [
            (task, tracking)
            for task, tracking in red
            if (task.id, AlertLevel.RED) not in self.notified
        ]

        created: list[dict] = []
        if fresh:

            def record_alerts(doc: dict) -> list[dict]:
                return [
                    add_stuck_alert(doc, task, tracking, self.orchestrator, now)
                    for task, tracking in fresh
                ]

            try:
                created = self.store.mutate(record_alerts)
            except Exception as e:
                log.error(f"Failed to persist stuck-task alerts: {e}", exc_info=True)
                created = []
            else:
                for task, _ in fresh:
                    self.notified.add((task.id, AlertLevel.RED))
                    log.warning(f"Task stuck: {task.id} ({task.status})")

        self.notified = {key for key in self.notified if key[0] in red_ids}
        return created

    async def run(self) -> None:
        await asyncio.sleep(self.initial_delay)
        while True:
            try:
                self.sweep()
            except Exception as e:
                log.error(f"Stuck-task sweep failed: {e}", exc_info=True)
            await asyncio.sleep(self.interval)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self.run())

    async def stop(self) -> None:
        if not self._task:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
