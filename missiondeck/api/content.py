"""Knowledge-side endpoints: ideas, memory notes, drafts, books, schedule."""

from fastapi import APIRouter, Depends, HTTPException, Path

from missiondeck.service import DeckService

from .deps import check_id, get_service, to_http_error

router = APIRouter(prefix="/api", tags=["content"])


@router.get("/ideas")
async def list_ideas(status: str | None = None, service: DeckService = Depends(get_service)):
    try:
        ideas = service.ideas()
        if status:
            ideas = [i for i in ideas if i.status == status]
        return [i.to_dict() for i in ideas]
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e)) from e


@router.get("/ideas/stats")
async def ideas_stats(service: DeckService = Depends(get_service)):
    try:
        return service.idea_stats()
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e)) from e


@router.get("/memory")
async def list_memory(service: DeckService = Depends(get_service)):
    return service.memory_files()


@router.get("/drafts")
async def list_drafts(service: DeckService = Depends(get_service)):
    return service.drafts()


@router.get("/books")
async def list_books(service: DeckService = Depends(get_service)):
    return service.books()


@router.get("/books/{book_id}/chapters/{number}")
async def get_chapter(
    book_id: str,
    number: int = Path(..., ge=0, le=100),
    service: DeckService = Depends(get_service),
):
    check_id(book_id, "book ID")
    try:
        return service.chapter(book_id, number)
    except Exception as e:
        raise to_http_error(e) from e


@router.get("/schedule")
async def get_schedule(service: DeckService = Depends(get_service)):
    return service.schedule()


@router.get("/recurring-tasks")
async def get_recurring_tasks(service: DeckService = Depends(get_service)):
    return service.recurring_tasks()
