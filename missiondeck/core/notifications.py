"""Notification records in the store document: read flags and stuck-task alerts."""

from datetime import datetime

from missiondeck.errors import NotificationNotFoundError
from missiondeck.lib.format import iso, utcnow
from missiondeck.lib.uuid7 import uuid7
from missiondeck.models import AlertLevel, Notification, Task, TimeTracking

from .store import append_activity


def find_notification(document: dict, notification_id: str) -> dict:
    for notification in document["notifications"]:
        if isinstance(notification, dict) and notification.get("id") == notification_id:
            return notification
    raise NotificationNotFoundError(f"Notification {notification_id} not found")


def mark_read(
    document: dict, notification_id: str, reader: str = "human", now: datetime | None = None
) -> dict:
    now = now or utcnow()
    notification = find_notification(document, notification_id)
    notification["read"] = True
    notification["readAt"] = iso(now)
    notification["readBy"] = reader

    append_activity(
        document,
        "notification_read",
        reader,
        f"Read notification: {notification.get('title') or notification_id}",
        metadata={"notificationId": notification_id},
        now=now,
    )
    return notification


def mark_all_read(document: dict, reader: str = "human", now: datetime | None = None) -> int:
    now = now or utcnow()
    count = 0
    for notification in document["notifications"]:
        if not isinstance(notification, dict) or notification.get("read"):
            continue
        notification["read"] = True
        notification["readAt"] = iso(now)
        notification["readBy"] = reader
        count += 1

    if count:
        append_activity(
            document,
            "notifications_read",
            reader,
            f"Marked {count} notifications as read",
            metadata={"count": count},
            now=now,
        )
    return count


def add_stuck_alert(
    document: dict,
    task: Task,
    tracking: TimeTracking,
    orchestrator: str,
    now: datetime | None = None,
) -> dict:
    """Record a critical stuck-task notification addressed to the orchestrator and assignees."""
    now = now or utcnow()
    recipients = [orchestrator, *(a for a in task.assignee_ids if a != orchestrator)]
    notification = Notification(
        id=f"notif-stuck-{uuid7()}",
        type="stuck_task",
        title=f"Task Stuck: {task.title or task.id}",
        message=(
            f'"{task.title or task.id}" has been in {task.status} for {tracking.human}. '
            "Consider reassigning or unblocking."
        ),
        to=recipients,
        created_at=iso(now),
        priority="critical",
        action_required=True,
        metadata={
            "taskId": task.id,
            "timeInStatus": tracking.human,
            "alertLevel": AlertLevel.RED.value,
        },
    )
    record = notification.to_dict()
    document["notifications"].append(record)

    append_activity(
        document,
        "stuck_task_alert",
        "system",
        f"Stuck task alert: {task.title or task.id} ({tracking.human} in {task.status})",
        task_id=task.id,
        metadata={"notificationId": notification.id, "timeInStatus": tracking.human},
        now=now,
    )
    return record


def _addressed_to(notification: dict, recipient: str) -> bool:
    if notification.get("recipientId") == recipient:
        return True
    to = notification.get("to")
    return isinstance(to, list) and recipient in to


def filter_notifications(
    notifications: list[dict], recipient: str | None = None, unread: bool = False
) -> list[dict]:
    result = [n for n in notifications if isinstance(n, dict)]
    if recipient:
        result = [n for n in result if _addressed_to(n, recipient)]
    if unread:
        result = [n for n in result if not n.get("read")]
    return result
