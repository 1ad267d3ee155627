"""Shared route helpers: service lookup, id validation, domain error mapping."""

from fastapi import HTTPException, Request

from missiondeck.errors import (
    AgentNotFoundError,
    InvalidTransitionError,
    NotificationNotFoundError,
    StoreError,
    TaskNotFoundError,
)
from missiondeck.lib.paths import validate_record_id
from missiondeck.service import DeckService

NOT_FOUND = (TaskNotFoundError, AgentNotFoundError, NotificationNotFoundError)


def get_service(request: Request) -> DeckService:
    return request.app.state.service


def check_id(value: str, label: str = "ID") -> str:
    valid, reason = validate_record_id(value)
    if not valid:
        raise HTTPException(status_code=400, detail=f"Invalid {label}: {reason}")
    return value


def to_http_error(e: Exception) -> HTTPException:
    if isinstance(e, HTTPException):
        return e
    if isinstance(e, NOT_FOUND):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, (ValueError, InvalidTransitionError)):
        return HTTPException(status_code=400, detail=str(e))
    if isinstance(e, StoreError):
        return HTTPException(status_code=503, detail=str(e))
    return HTTPException(status_code=500, detail=str(e))
