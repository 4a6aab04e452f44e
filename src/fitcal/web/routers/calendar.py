"""Calendar and completed day routes."""

from datetime import date

from fastapi import APIRouter, Depends, Query

from ...services.calendar import CalendarService, CompletedDayService
from ..deps import get_calendar_service, get_completed_day_service, get_user_id
from ..schemas import CompletedDayIn

router = APIRouter(prefix="/schedule", tags=["calendar"])


@router.get("/calendar")
async def get_calendar(
    start: date = Query(..., description="First date, YYYY-MM-DD"),
    end: date = Query(..., description="Last date, YYYY-MM-DD"),
    user_id: str = Depends(get_user_id),
    service: CalendarService = Depends(get_calendar_service),
):
    """Materialize active schedules and schedule items between two dates."""
    view = await service.materialize_calendar(user_id, start, end)
    return view.to_dict()


@router.get("/completed-days")
async def list_completed_days(
    user_id: str = Depends(get_user_id),
    service: CompletedDayService = Depends(get_completed_day_service),
):
    """Dates the user marked as done, newest first."""
    days = await service.list_days(user_id)
    return {"completed_days": [d.to_dict() for d in days]}


@router.post("/completed-days")
async def mark_completed_day(
    body: CompletedDayIn,
    user_id: str = Depends(get_user_id),
    service: CompletedDayService = Depends(get_completed_day_service),
):
    """Mark a date as done. Marking it again updates the status and notes."""
    day = await service.mark(user_id, body.date, status=body.status, notes=body.notes)
    return day.to_dict()


@router.delete("/completed-days")
async def unmark_completed_day(
    on: str | None = Query(None, alias="date"),
    body: CompletedDayIn | None = None,
    user_id: str = Depends(get_user_id),
    service: CompletedDayService = Depends(get_completed_day_service),
):
    """Remove a date's record. The date comes from the query or the body."""
    if on is None and body is not None:
        on = body.date
    await service.unmark(user_id, on)
    return {"deleted": True}
