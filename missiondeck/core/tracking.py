"""Time-in-status: how long a task has sat in its current status, and whether to alert.

Anchors per status:
  assigned    -> createdAt
  in_progress -> startedAt
  review      -> completedAt (when the task left in_progress)

Thresholds are compared with `>=`, so a task exactly at its yellow threshold
is yellow. There is no hysteresis here; the stuck-task monitor owns that.
"""

from datetime import datetime, timedelta

from missiondeck.lib import config
from missiondeck.lib.format import format_elapsed, iso, parse_timestamp, utcnow
from missiondeck.models import AlertLevel, DueStatus, Task, TaskStatus, TimeTracking

_ANCHORS = {
    TaskStatus.ASSIGNED.value: "created_at",
    TaskStatus.IN_PROGRESS.value: "started_at",
    TaskStatus.REVIEW.value: "completed_at",
}

NO_TRACKING = "—"
UNKNOWN = "unknown"


def anchor_for(task: Task) -> datetime | None:
    attr = _ANCHORS.get(task.status)
    if attr is None:
        return None
    return parse_timestamp(getattr(task, attr))


def alert_level(
    elapsed: timedelta, status: str, thresholds: dict[str, tuple[float, float]]
) -> AlertLevel:
    limits = thresholds.get(status)
    if limits is None:
        return AlertLevel.NONE
    yellow, red = limits
    if elapsed >= timedelta(hours=red):
        return AlertLevel.RED
    if elapsed >= timedelta(hours=yellow):
        return AlertLevel.YELLOW
    return AlertLevel.NONE


def compute_time_in_status(
    task: Task | dict,
    now: datetime | None = None,
    thresholds: dict[str, tuple[float, float]] | None = None,
) -> TimeTracking:
    if isinstance(task, dict):
        task = Task.from_dict(task)

    if task.is_done:
        return TimeTracking(time_in_status_ms=0, human=NO_TRACKING)

    anchor = anchor_for(task)
    if anchor is None:
        return TimeTracking(time_in_status_ms=0, human=UNKNOWN)

    now = now or utcnow()
    thresholds = thresholds if thresholds is not None else config.thresholds()
    elapsed = max(now - anchor, timedelta(0))

    return TimeTracking(
        time_in_status_ms=int(elapsed.total_seconds() * 1000),
        human=format_elapsed(elapsed.total_seconds()),
        alert_level=alert_level(elapsed, task.status, thresholds),
        status_start_time=iso(anchor),
    )


def compute_due_status(task: Task | dict, now: datetime | None = None) -> DueStatus:
    if isinstance(task, dict):
        task = Task.from_dict(task)

    due = parse_timestamp(task.due_date) or parse_timestamp(task.metadata.get("deadline"))
    if due is None:
        started = parse_timestamp(task.started_at)
        estimate = task.metadata.get("estimatedMinutes")
        if started and isinstance(estimate, (int, float)) and not isinstance(estimate, bool):
            due = started + timedelta(minutes=estimate)
    if due is None:
        return DueStatus()

    now = now or utcnow()
    hours_remaining = (due - now).total_seconds() / 3600
    if hours_remaining < 0:
        urgency = "overdue"
    elif hours_remaining <= 4:
        urgency = "critical"
    elif hours_remaining <= 24:
        urgency = "soon"
    else:
        urgency = "normal"

    return DueStatus(
        due_date=iso(due),
        is_overdue=hours_remaining < 0,
        hours_remaining=round(hours_remaining, 1),
        urgency=urgency,
    )


def with_tracking(task: dict, now: datetime | None = None, thresholds=None) -> dict:
    """Copy of a task record with timeTracking and dueStatus attached."""
    now = now or utcnow()
    return {
        **task,
        "timeTracking": compute_time_in_status(task, now, thresholds).to_dict(),
        "dueStatus": compute_due_status(task, now).to_dict(),
    }
