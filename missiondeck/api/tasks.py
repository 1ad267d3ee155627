"""Task, agent and activity endpoints."""

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field

from missiondeck.core import tasks as task_ops
from missiondeck.core.tracking import with_tracking
from missiondeck.core.views import paginate
from missiondeck.models import VALID_STATUSES
from missiondeck.service import DeckService

from .deps import check_id, get_service, to_http_error

router = APIRouter(prefix="/api", tags=["tasks"])


class StatusUpdate(BaseModel):
    status: str


class CompleteTask(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    completed_by: str = Field(default="human", alias="completedBy")


class ReopenTask(BaseModel):
    reason: str | None = None


class ReassignTask(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    new_assignee_id: str = Field(alias="newAssigneeId")
    reason: str | None = None


class DueDate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    due_date: str = Field(alias="dueDate")


@router.get("/tasks")
async def list_tasks(
    status: str | None = None,
    assignee: str | None = None,
    reviewer: str | None = None,
    service: DeckService = Depends(get_service),
):
    if status and status not in VALID_STATUSES:
        raise HTTPException(status_code=400, detail="Invalid status filter")
    if assignee:
        check_id(assignee, "assignee filter")
    if reviewer:
        check_id(reviewer, "reviewer filter")

    try:
        records = [t for t in service.tasks() if isinstance(t, dict)]
        if status:
            records = [t for t in records if t.get("status") == status]
        if assignee:
            records = [t for t in records if assignee in (t.get("assigneeIds") or [])]
        if reviewer:
            records = [t for t in records if reviewer in (t.get("reviewerIds") or [])]
        return [with_tracking(t, thresholds=service.thresholds) for t in records]
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e)) from e


@router.get("/tasks/{task_id}")
async def get_task(task_id: str, service: DeckService = Depends(get_service)):
    check_id(task_id, "task ID")
    try:
        task = task_ops.find_task(service.document(), task_id)
        return with_tracking(task, thresholds=service.thresholds)
    except Exception as e:
        raise to_http_error(e) from e


@router.patch("/tasks/{task_id}/status")
async def update_status(
    task_id: str, body: StatusUpdate, service: DeckService = Depends(get_service)
):
    check_id(task_id, "task ID")
    try:
        task = await service.writer.submit(
            lambda doc: task_ops.set_status(doc, task_id, body.status)
        )
        return {"success": True, "task": task}
    except Exception as e:
        raise to_http_error(e) from e


@router.post("/tasks/{task_id}/complete")
async def complete(
    task_id: str, body: CompleteTask | None = None, service: DeckService = Depends(get_service)
):
    check_id(task_id, "task ID")
    completed_by = body.completed_by if body else "human"
    check_id(completed_by, "completedBy")
    try:
        task = await service.writer.submit(
            lambda doc: task_ops.complete_task(doc, task_id, completed_by)
        )
        return {"success": True, "task": task}
    except Exception as e:
        raise to_http_error(e) from e


@router.post("/tasks/{task_id}/reopen")
async def reopen(
    task_id: str, body: ReopenTask | None = None, service: DeckService = Depends(get_service)
):
    check_id(task_id, "task ID")
    reason = body.reason if body else None
    try:
        task = await service.writer.submit(lambda doc: task_ops.reopen_task(doc, task_id, reason))
        return {"success": True, "task": task}
    except Exception as e:
        raise to_http_error(e) from e


@router.post("/tasks/{task_id}/reassign")
async def reassign(
    task_id: str, body: ReassignTask, service: DeckService = Depends(get_service)
):
    check_id(task_id, "task ID")
    check_id(body.new_assignee_id, "assignee ID")
    try:
        task = await service.writer.submit(
            lambda doc: task_ops.reassign_task(doc, task_id, body.new_assignee_id, body.reason)
        )
        return {"success": True, "task": task}
    except Exception as e:
        raise to_http_error(e) from e


@router.post("/tasks/{task_id}/due-date")
async def due_date(task_id: str, body: DueDate, service: DeckService = Depends(get_service)):
    check_id(task_id, "task ID")
    try:
        task = await service.writer.submit(
            lambda doc: task_ops.set_due_date(doc, task_id, body.due_date)
        )
        return {"success": True, "task": task}
    except Exception as e:
        raise to_http_error(e) from e


@router.get("/agents")
async def list_agents(service: DeckService = Depends(get_service)):
    try:
        return [a for a in service.document()["agents"] if isinstance(a, dict)]
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e)) from e


@router.get("/activities")
async def list_activities(
    page: int = 1, limit: int = 50, service: DeckService = Depends(get_service)
):
    try:
        items, pagination = paginate(service.document()["activities"], page, limit)
        return {"activities": items, "pagination": pagination}
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e)) from e
