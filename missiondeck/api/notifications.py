"""Notification endpoints."""

from fastapi import APIRouter, Depends, HTTPException

from missiondeck.core import notifications as notification_ops
from missiondeck.service import DeckService

from .deps import check_id, get_service, to_http_error

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


@router.get("")
async def list_notifications(
    agent: str | None = None, unread: bool = False, service: DeckService = Depends(get_service)
):
    if agent:
        check_id(agent, "agent filter")
    try:
        return notification_ops.filter_notifications(
            service.document()["notifications"], recipient=agent, unread=unread
        )
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e)) from e


@router.post("/mark-all-read")
async def mark_all_read(service: DeckService = Depends(get_service)):
    try:
        count = await service.writer.submit(notification_ops.mark_all_read)
        return {"success": True, "count": count}
    except Exception as e:
        raise to_http_error(e) from e


@router.post("/{notification_id}/read")
async def mark_read(notification_id: str, service: DeckService = Depends(get_service)):
    check_id(notification_id, "notification ID")
    try:
        notification = await service.writer.submit(
            lambda doc: notification_ops.mark_read(doc, notification_id)
        )
        return {"success": True, "notification": notification}
    except Exception as e:
        raise to_http_error(e) from e
