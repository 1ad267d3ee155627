"""Shared data models and types."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class TaskStatus(str, Enum):
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    REVIEW = "review"
    COMPLETED = "completed"
    SHIPPED = "shipped"
    BLOCKED = "blocked"


ACTIVE_STATUSES = frozenset({TaskStatus.ASSIGNED, TaskStatus.IN_PROGRESS, TaskStatus.REVIEW})
DONE_STATUSES = frozenset({TaskStatus.COMPLETED, TaskStatus.SHIPPED})
VALID_STATUSES = tuple(s.value for s in TaskStatus)


class AlertLevel(str, Enum):
    NONE = "none"
    YELLOW = "yellow"
    RED = "red"


class IdeaStatus(str, Enum):
    CAPTURED = "captured"
    ASSIGNED = "assigned"
    DRAFTED = "drafted"
    SHIPPED = "shipped"


def _str_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(v) for v in value if v is not None]


def _opt_str(value: Any) -> str | None:
    return value if isinstance(value, str) and value else None


@dataclass
class Task:
    """A unit of work tracked in the structured store."""

    id: str
    title: str = ""
    description: str = ""
    status: str = TaskStatus.ASSIGNED.value
    assignee_ids: list[str] = field(default_factory=list)
    reviewer_ids: list[str] = field(default_factory=list)
    created_at: str | None = None
    started_at: str | None = None
    completed_at: str | None = None
    due_date: str | None = None
    metadata: dict = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict) -> "Task":
        metadata = data.get("metadata")
        return cls(
            id=str(data.get("id", "")),
            title=str(data.get("title") or ""),
            description=str(data.get("description") or ""),
            status=str(data.get("status") or TaskStatus.ASSIGNED.value),
            assignee_ids=_str_list(data.get("assigneeIds")),
            reviewer_ids=_str_list(data.get("reviewerIds")),
            created_at=_opt_str(data.get("createdAt")),
            started_at=_opt_str(data.get("startedAt")),
            completed_at=_opt_str(data.get("completedAt")),
            due_date=_opt_str(data.get("dueDate")),
            metadata=metadata if isinstance(metadata, dict) else {},
        )

    @property
    def is_active(self) -> bool:
        return self.status in {s.value for s in ACTIVE_STATUSES}

    @property
    def is_done(self) -> bool:
        return self.status in {s.value for s in DONE_STATUSES}


@dataclass
class Agent:
    id: str
    name: str = ""
    role: str = ""
    status: str = "idle"
    current_task_id: str | None = None

    @classmethod
    def from_dict(cls, data: dict) -> "Agent":
        return cls(
            id=str(data.get("id", "")),
            name=str(data.get("name") or ""),
            role=str(data.get("role") or ""),
            status=str(data.get("status") or "idle"),
            current_task_id=_opt_str(data.get("currentTaskId")),
        )


@dataclass
class Activity:
    """An append-only log entry. Never mutated after creation."""

    id: str
    timestamp: str
    type: str
    agent_id: str
    description: str
    task_id: str | None = None
    metadata: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        record = {
            "id": self.id,
            "type": self.type,
            "agentId": self.agent_id,
            "timestamp": self.timestamp,
            "description": self.description,
            "metadata": self.metadata,
        }
        if self.task_id is not None:
            record["taskId"] = self.task_id
        return record


@dataclass
class Notification:
    id: str
    type: str
    message: str
    to: list[str]
    created_at: str
    title: str = ""
    sender: str = "system"
    read: bool = False
    priority: str = "normal"
    action_required: bool = False
    metadata: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "title": self.title,
            "message": self.message,
            "from": self.sender,
            "to": list(self.to),
            "createdAt": self.created_at,
            "read": self.read,
            "priority": self.priority,
            "actionRequired": self.action_required,
            "metadata": self.metadata,
        }


@dataclass
class Idea:
    """A knowledge-base entry parsed from the markdown idea log."""

    id: str
    captured_at: str
    date: str | None = None
    text: str = ""
    quote: str = ""
    quote_original: str = ""
    quote_refined: str = ""
    tags: list[str] = field(default_factory=list)
    status: str = IdeaStatus.CAPTURED.value
    status_detail: str = ""
    chapter: str = ""
    notes: str = ""
    tension: str = ""
    paradox: str = ""
    connections: str = ""
    potential_content: list[str] = field(default_factory=list)

    @property
    def number(self) -> int:
        return int(self.id)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "capturedAt": self.captured_at,
            "date": self.date,
            "text": self.text,
            "quote": self.quote,
            "quoteOriginal": self.quote_original,
            "quoteRefined": self.quote_refined,
            "tags": list(self.tags),
            "status": self.status,
            "statusDetail": self.status_detail,
            "chapter": self.chapter,
            "notes": self.notes,
            "tension": self.tension,
            "paradox": self.paradox,
            "connections": self.connections,
            "potentialContent": list(self.potential_content),
        }


@dataclass
class TimeTracking:
    time_in_status_ms: int
    human: str
    alert_level: AlertLevel = AlertLevel.NONE
    status_start_time: str | None = None

    def to_dict(self) -> dict:
        record = {
            "timeInStatusMs": self.time_in_status_ms,
            "timeInStatusHuman": self.human,
            "alertLevel": self.alert_level.value,
        }
        if self.status_start_time is not None:
            record["statusStartTime"] = self.status_start_time
        return record


@dataclass
class DueStatus:
    due_date: str | None = None
    is_overdue: bool = False
    hours_remaining: float | None = None
    urgency: str = "none"

    def to_dict(self) -> dict:
        return {
            "dueDate": self.due_date,
            "isOverdue": self.is_overdue,
            "hoursRemaining": self.hours_remaining,
            "urgency": self.urgency,
        }
