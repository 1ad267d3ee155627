from datetime import timedelta

import pytest

from missiondeck.core.cache import Category
from missiondeck.core.monitor import StuckTaskMonitor, stuck_tasks
from missiondeck.lib.format import iso
from missiondeck.models import AlertLevel
from tests.conftest import NOW, make_task, read_document, write_document

THRESHOLDS = {"assigned": (3, 6), "in_progress": (6, 8), "review": (2, 4)}


def _started(hours: float) -> str:
    return iso(NOW - timedelta(hours=hours))


@pytest.fixture
def monitor(store):
    return StuckTaskMonitor(store, thresholds=THRESHOLDS, clock=lambda: NOW)


def _reset(deck_root, store, *tasks):
    write_document(deck_root, tasks=list(tasks))
    store.cache.invalidate(Category.STORE)


def test_stuck_tasks_orders_by_elapsed():
    tasks = [
        make_task("yellow", status="in_progress", startedAt=_started(7)),
        make_task("red", status="in_progress", startedAt=_started(12)),
        make_task("fine", status="in_progress", startedAt=_started(1)),
        make_task("done", status="completed", startedAt=_started(40)),
    ]
    found = stuck_tasks(tasks, NOW, THRESHOLDS)
    assert [t.id for t, _ in found] == ["red", "yellow"]
    assert [tr.alert_level for _, tr in found] == [AlertLevel.RED, AlertLevel.YELLOW]


def test_stuck_tasks_skips_blocked():
    tasks = [make_task("b", status="blocked", createdAt=_started(100))]
    assert stuck_tasks(tasks, NOW, THRESHOLDS) == []


def test_sweep_alerts_red_once(deck_root, store, monitor):
    _reset(deck_root, store, make_task(status="in_progress", startedAt=_started(9)))

    created = monitor.sweep()
    assert len(created) == 1
    assert monitor.notified == {("task-1", AlertLevel.RED)}
    assert len(read_document(deck_root)["notifications"]) == 1

    assert monitor.sweep() == []
    assert len(read_document(deck_root)["notifications"]) == 1


def test_yellow_does_not_notify(deck_root, store, monitor):
    _reset(deck_root, store, make_task(status="in_progress", startedAt=_started(7)))
    assert monitor.sweep() == []
    assert read_document(deck_root)["notifications"] == []


def test_dropping_below_red_rearms(deck_root, store, monitor):
    red = make_task(status="in_progress", startedAt=_started(9))
    _reset(deck_root, store, red)
    assert len(monitor.sweep()) == 1

    _reset(deck_root, store, {**red, "status": "completed"})
    assert monitor.sweep() == []
    assert monitor.notified == set()

    _reset(deck_root, store, red)
    assert len(monitor.sweep()) == 1


def test_failed_persist_records_nothing(deck_root, store, monitor, monkeypatch):
    _reset(deck_root, store, make_task(status="in_progress", startedAt=_started(9)))
    real_save = store.save

    def broken_save(document):
        raise OSError("disk full")

    monkeypatch.setattr(store, "save", broken_save)
    assert monitor.sweep() == []
    assert monitor.notified == set()

    monkeypatch.setattr(store, "save", real_save)
    assert len(monitor.sweep()) == 1


def _alert(task_id: str, created_at: str) -> dict:
    return {
        "id": f"notif-stuck-{task_id}",
        "type": "stuck_task",
        "createdAt": created_at,
        "metadata": {"taskId": task_id, "alertLevel": "red"},
    }


def test_restore_notified_skips_already_alerted(deck_root, store, monitor):
    write_document(
        deck_root,
        tasks=[make_task(status="in_progress", startedAt=_started(9))],
        notifications=[_alert("task-1", _started(1))],
    )
    store.cache.invalidate(Category.STORE)

    assert monitor.restore_notified() == {("task-1", AlertLevel.RED)}
    assert monitor.sweep() == []
    assert len(read_document(deck_root)["notifications"]) == 1


def test_restore_notified_ignores_stale_alerts(deck_root, store, monitor):
    write_document(
        deck_root,
        tasks=[
            make_task("back-to-red", status="in_progress", startedAt=_started(9)),
            make_task("finished", status="completed", startedAt=_started(20)),
        ],
        notifications=[_alert("back-to-red", _started(15)), _alert("finished", _started(10))],
    )
    store.cache.invalidate(Category.STORE)

    assert monitor.restore_notified() == set()
    (notification,) = monitor.sweep()
    assert notification["metadata"]["taskId"] == "back-to-red"


def test_alerts_address_orchestrator_first(deck_root, store):
    _reset(
        deck_root,
        store,
        make_task(status="review", completedAt=_started(5), assigneeIds=["writer", "lead"]),
    )
    monitor = StuckTaskMonitor(store, orchestrator="lead", thresholds=THRESHOLDS, clock=lambda: NOW)
    (notification,) = monitor.sweep()
    assert notification["to"] == ["lead", "writer"]


@pytest.mark.asyncio
async def test_start_and_stop(store):
    monitor = StuckTaskMonitor(store, interval=60, initial_delay=60, thresholds=THRESHOLDS)
    monitor.start()
    assert monitor.running
    await monitor.stop()
    assert not monitor.running
