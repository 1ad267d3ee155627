"""Task mutations against the store document. Each one appends an activity."""

from datetime import datetime

from missiondeck.errors import AgentNotFoundError, InvalidTransitionError, TaskNotFoundError
from missiondeck.lib.format import iso, parse_timestamp, utcnow
from missiondeck.models import DONE_STATUSES, VALID_STATUSES

from .store import append_activity

_DONE = {s.value for s in DONE_STATUSES}


def find_task(document: dict, task_id: str) -> dict:
    for task in document["tasks"]:
        if isinstance(task, dict) and task.get("id") == task_id:
            return task
    raise TaskNotFoundError(f"Task {task_id} not found")


def find_agent(document: dict, agent_id: str) -> dict:
    for agent in document["agents"]:
        if isinstance(agent, dict) and agent.get("id") == agent_id:
            return agent
    raise AgentNotFoundError(f"Agent {agent_id} not found")


def set_status(
    document: dict, task_id: str, status: str, actor: str = "human", now: datetime | None = None
) -> dict:
    if status not in VALID_STATUSES:
        raise ValueError(f"Invalid status. Must be one of: {', '.join(VALID_STATUSES)}")

    now = now or utcnow()
    task = find_task(document, task_id)
    old_status = task.get("status")
    task["status"] = status

    if status in _DONE:
        task["completedAt"] = iso(now)
    elif old_status in _DONE:
        task["reopenedAt"] = iso(now)
        task.pop("completedAt", None)

    append_activity(
        document,
        "status_changed",
        actor,
        f"Status changed: {task.get('title', task_id)} ({old_status} → {status})",
        task_id=task_id,
        metadata={"oldStatus": old_status, "newStatus": status},
        now=now,
    )
    return task


def complete_task(
    document: dict, task_id: str, completed_by: str = "human", now: datetime | None = None
) -> dict:
    now = now or utcnow()
    task = find_task(document, task_id)
    task["status"] = "completed"
    task["completedAt"] = iso(now)
    task["completedBy"] = completed_by

    append_activity(
        document,
        "task_completed",
        completed_by,
        f"Completed: {task.get('title', task_id)}",
        task_id=task_id,
        metadata={"completedBy": completed_by},
        now=now,
    )
    return task


def reopen_task(
    document: dict, task_id: str, reason: str | None = None, now: datetime | None = None
) -> dict:
    """Send a completed task back to assigned, clearing its completion stamps."""
    now = now or utcnow()
    task = find_task(document, task_id)
    if task.get("status") not in _DONE:
        raise InvalidTransitionError(f"Task {task_id} is not completed")

    previous_completed_at = task.pop("completedAt", None)
    previous_completed_by = task.pop("completedBy", None)
    task["status"] = "assigned"
    task["reopenedAt"] = iso(now)

    append_activity(
        document,
        "task_reopened",
        "human",
        f"Reopened: {task.get('title', task_id)}",
        task_id=task_id,
        metadata={
            "previousCompletedAt": previous_completed_at,
            "previousCompletedBy": previous_completed_by,
            "reason": reason or "Marked as undone",
        },
        now=now,
    )
    return task


def reassign_task(
    document: dict,
    task_id: str,
    new_assignee_id: str,
    reason: str | None = None,
    actor: str = "lead",
    now: datetime | None = None,
) -> dict:
    now = now or utcnow()
    task = find_task(document, task_id)
    find_agent(document, new_assignee_id)

    old_assignees = list(task.get("assigneeIds") or [])
    task["assigneeIds"] = [new_assignee_id]
    metadata = task.setdefault("metadata", {})
    metadata["reassignedAt"] = iso(now)
    metadata["reassignedFrom"] = old_assignees
    if reason:
        metadata["reassignReason"] = reason

    append_activity(
        document,
        "task_reassigned",
        actor,
        f'Reassigned "{task.get("title", task_id)}" '
        f'from {", ".join(old_assignees)} to {new_assignee_id}',
        task_id=task_id,
        metadata={"oldAssignees": old_assignees, "newAssignee": new_assignee_id, "reason": reason},
        now=now,
    )
    return task


def set_due_date(
    document: dict, task_id: str, due_date: str, actor: str = "lead", now: datetime | None = None
) -> dict:
    parsed = parse_timestamp(due_date)
    if parsed is None:
        raise ValueError(f"Invalid due date: {due_date!r}")

    task = find_task(document, task_id)
    task["dueDate"] = iso(parsed)

    append_activity(
        document,
        "due_date_set",
        actor,
        f'Set due date for "{task.get("title", task_id)}" to {parsed.date().isoformat()}',
        task_id=task_id,
        metadata={"dueDate": task["dueDate"]},
        now=now,
    )
    return task
