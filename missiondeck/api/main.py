"""FastAPI app for the missiondeck dashboard."""

import asyncio
import contextlib
import json
import time
from collections.abc import AsyncGenerator

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse
from pydantic import BaseModel

from missiondeck import __version__
from missiondeck.core import views
from missiondeck.core.broadcast import Broadcaster
from missiondeck.lib import config
from missiondeck.service import DeckService

from . import content, notifications, tasks
from .deps import get_service

START_TIME = time.time()

router = APIRouter(prefix="/api", tags=["dashboard"])


class SearchQuery(BaseModel):
    query: str = ""


@router.get("/health")
async def health(service: DeckService = Depends(get_service)):
    return {
        "status": "ok",
        "version": __version__,
        "uptime": round(time.time() - START_TIME, 1),
        "subscribers": service.broadcaster.subscriber_count,
        "lastUpdate": service.cache.last_update,
    }


@router.get("/dashboard")
async def dashboard(service: DeckService = Depends(get_service)):
    try:
        return views.dashboard_summary(
            service.document(), service.ideas(), thresholds=service.thresholds
        )
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e)) from e


@router.post("/search")
async def search(body: SearchQuery, service: DeckService = Depends(get_service)):
    try:
        return views.search(body.query, service.document(), service.ideas(), service.drafts())
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e)) from e


@router.get("/events")
async def stream_events(
    request: Request, service: DeckService = Depends(get_service)
) -> StreamingResponse:
    return StreamingResponse(
        invalidation_events(service.broadcaster, service.heartbeat_seconds, request),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )


async def invalidation_events(
    broadcaster: Broadcaster, heartbeat: float, request: Request | None = None
) -> AsyncGenerator[str, None]:
    async with broadcaster.subscribe() as queue:
        yield ": connected\n\n"
        while True:
            if request is not None and await request.is_disconnected():
                break
            try:
                message = await asyncio.wait_for(queue.get(), timeout=heartbeat)
            except asyncio.TimeoutError:
                yield ": heartbeat\n\n"
                continue
            yield f"data: {json.dumps(message)}\n\n"


def create_app(service: DeckService | None = None, manage_lifecycle: bool = True) -> FastAPI:
    """Build the app around a service. With manage_lifecycle the watcher and monitor run."""
    service = service or DeckService()

    @contextlib.asynccontextmanager
    async def lifespan(app: FastAPI):
        if manage_lifecycle:
            await service.start()
        try:
            yield
        finally:
            if manage_lifecycle:
                await service.stop()

    app = FastAPI(title="Missiondeck API", version=__version__, lifespan=lifespan)
    app.state.service = service

    origins = config.section("api", service.config).get("allowed_origins") or []
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router)
    app.include_router(tasks.router)
    app.include_router(notifications.router)
    app.include_router(content.router)
    return app
