"""Read-side projections over the store document and idea log."""

import math
from datetime import datetime

from missiondeck.models import AlertLevel, Idea, IdeaStatus, Task

from .monitor import stuck_tasks

SNIPPET_CHARS = 150
SEARCHED_ACTIVITIES = 100
MIN_QUERY, MAX_QUERY = 2, 200


def _records(document: dict, name: str) -> list[dict]:
    return [r for r in document.get(name, []) if isinstance(r, dict)]


def dashboard_summary(
    document: dict, ideas: list[Idea], now: datetime | None = None, thresholds=None
) -> dict:
    agents = _records(document, "agents")
    tasks = _records(document, "tasks")
    notifications = _records(document, "notifications")

    parsed = [Task.from_dict(t) for t in tasks]
    in_progress = sum(t.is_active for t in parsed)
    completed = sum(t.is_done for t in parsed)
    stuck = stuck_tasks(tasks, now, thresholds)

    return {
        "agents": {
            "total": len(agents),
            "active": sum(a.get("status") == "active" for a in agents),
            "idle": sum(a.get("status") == "idle" for a in agents),
        },
        "tasks": {
            "total": len(tasks),
            "inProgress": in_progress,
            "completed": completed,
            "stuck": len(stuck),
            "critical": sum(tr.alert_level == AlertLevel.RED for _, tr in stuck),
            "completionRate": round(completed / len(tasks) * 100) if tasks else 0,
        },
        "ideas": {
            "total": len(ideas),
            **{s.value: sum(i.status == s.value for i in ideas) for s in IdeaStatus},
        },
        "notifications": {
            "total": len(notifications),
            "unread": sum(not n.get("read") for n in notifications),
        },
        "recentActivity": _records(document, "activities")[:5],
    }


def _has(query: str, *values) -> bool:
    return any(isinstance(v, str) and query in v.lower() for v in values)


def search(query: str, document: dict, ideas: list[Idea], drafts: list[dict]) -> list[dict]:
    """Case-insensitive substring search. Queries outside 2..200 chars return nothing."""
    if not isinstance(query, str) or not MIN_QUERY <= len(query) <= MAX_QUERY:
        return []
    q = query.lower()
    results = []

    for task in _records(document, "tasks"):
        if _has(q, task.get("title"), task.get("description")):
            results.append(
                {
                    "type": "task",
                    "id": task.get("id"),
                    "title": task.get("title", ""),
                    "snippet": (task.get("description") or "")[:SNIPPET_CHARS],
                    "status": task.get("status"),
                    "assignees": task.get("assigneeIds") or [],
                    "url": f"/tasks/{task.get('id')}",
                }
            )

    for agent in _records(document, "agents"):
        if _has(q, agent.get("name"), agent.get("role"), agent.get("description")):
            results.append(
                {
                    "type": "agent",
                    "id": agent.get("id"),
                    "title": agent.get("name", ""),
                    "snippet": agent.get("role")
                    or (agent.get("description") or "")[:SNIPPET_CHARS],
                    "status": agent.get("status"),
                    "url": f"/agents/{agent.get('id')}",
                }
            )

    for activity in _records(document, "activities")[:SEARCHED_ACTIVITIES]:
        if _has(q, activity.get("description")):
            results.append(
                {
                    "type": "activity",
                    "id": activity.get("id"),
                    "title": activity.get("description"),
                    "snippet": f"{activity.get('type')} by {activity.get('agentId')}",
                    "url": "/activities",
                }
            )

    for idea in ideas:
        if _has(q, idea.text):
            results.append(
                {
                    "type": "idea",
                    "id": idea.id,
                    "title": f"Idea #{idea.id}",
                    "snippet": idea.text[:SNIPPET_CHARS],
                    "url": f"/ideas/{idea.id}",
                }
            )

    for draft in drafts:
        if _has(q, draft.get("content")):
            results.append(
                {
                    "type": "draft",
                    "id": draft["filename"],
                    "title": f"{draft['philosopher']}: {draft['filename']}",
                    "snippet": draft["content"][:SNIPPET_CHARS],
                    "url": f"/drafts/{draft['philosopher']}/{draft['filename']}",
                }
            )

    return results


def paginate(
    items: list, page: int = 1, limit: int = 50, max_limit: int = 100
) -> tuple[list, dict]:
    page = max(1, page)
    limit = min(max_limit, max(1, limit))
    start = (page - 1) * limit
    return items[start : start + limit], {
        "page": page,
        "limit": limit,
        "total": len(items),
        "pages": math.ceil(len(items) / limit),
    }
