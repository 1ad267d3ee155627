import pytest

from missiondeck.core import tasks
from missiondeck.core.store import empty_document
from missiondeck.errors import AgentNotFoundError, InvalidTransitionError, TaskNotFoundError
from tests.conftest import NOW, make_task


@pytest.fixture
def document():
    doc = empty_document()
    doc["tasks"].append(make_task("task-1", status="in_progress", startedAt="2026-03-10T09:00:00Z"))
    doc["agents"].extend([{"id": "writer", "name": "Writer"}, {"id": "editor", "name": "Editor"}])
    return doc


def test_set_status_records_activity(document):
    task = tasks.set_status(document, "task-1", "review", now=NOW)
    assert task["status"] == "review"
    activity = document["activities"][0]
    assert activity["type"] == "status_changed"
    assert activity["metadata"] == {"oldStatus": "in_progress", "newStatus": "review"}


def test_set_status_done_stamps_completed_at(document):
    task = tasks.set_status(document, "task-1", "shipped", now=NOW)
    assert task["completedAt"] == "2026-03-10T12:00:00.000Z"


def test_set_status_leaving_done_clears_completion(document):
    tasks.set_status(document, "task-1", "completed", now=NOW)
    task = tasks.set_status(document, "task-1", "in_progress", now=NOW)
    assert "completedAt" not in task
    assert task["reopenedAt"] == "2026-03-10T12:00:00.000Z"


def test_set_status_rejects_unknown(document):
    with pytest.raises(ValueError, match="Invalid status"):
        tasks.set_status(document, "task-1", "done-ish")
    assert document["activities"] == []


def test_unknown_task_raises(document):
    with pytest.raises(TaskNotFoundError):
        tasks.complete_task(document, "nope")


def test_complete_then_reopen(document):
    tasks.complete_task(document, "task-1", completed_by="editor", now=NOW)
    task = tasks.reopen_task(document, "task-1", reason="needs another pass", now=NOW)

    assert task["status"] == "assigned"
    assert "completedAt" not in task
    assert "completedBy" not in task
    reopened = document["activities"][0]
    assert reopened["type"] == "task_reopened"
    assert reopened["metadata"]["previousCompletedBy"] == "editor"
    assert reopened["metadata"]["reason"] == "needs another pass"
    assert document["activities"][1]["type"] == "task_completed"


def test_reopen_requires_done(document):
    with pytest.raises(InvalidTransitionError):
        tasks.reopen_task(document, "task-1")


def test_reassign_replaces_assignees(document):
    task = tasks.reassign_task(document, "task-1", "editor", reason="load", now=NOW)
    assert task["assigneeIds"] == ["editor"]
    assert task["metadata"]["reassignedFrom"] == ["writer"]
    assert task["metadata"]["reassignReason"] == "load"
    assert document["activities"][0]["type"] == "task_reassigned"


def test_reassign_to_unknown_agent(document):
    with pytest.raises(AgentNotFoundError):
        tasks.reassign_task(document, "task-1", "ghost")
    assert document["tasks"][0]["assigneeIds"] == ["writer"]


def test_set_due_date_normalizes(document):
    task = tasks.set_due_date(document, "task-1", "2026-03-12T17:00:00+02:00", now=NOW)
    assert task["dueDate"] == "2026-03-12T15:00:00.000Z"
    assert document["activities"][0]["type"] == "due_date_set"


def test_set_due_date_rejects_garbage(document):
    with pytest.raises(ValueError):
        tasks.set_due_date(document, "task-1", "next tuesday")


def test_unknown_keys_survive(document):
    document["tasks"][0]["customField"] = {"keep": True}
    task = tasks.set_status(document, "task-1", "review", now=NOW)
    assert task["customField"] == {"keep": True}
