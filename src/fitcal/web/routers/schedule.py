"""Weekly schedule documents and schedule item routes."""

from datetime import date

from fastapi import APIRouter, Depends, Query

from ...errors import ScheduleValidationError
from ...models.items import DeleteScope
from ...services.series import ScheduleItemService
from ..deps import get_item_service, get_user_id
from ..schemas import SaveWeekIn, ScheduleItemIn, item_payload

router = APIRouter(prefix="/schedule", tags=["schedule"])


@router.get("")
async def get_week(
    week_start: date = Query(..., alias="weekStart"),
    user_id: str = Depends(get_user_id),
    service: ScheduleItemService = Depends(get_item_service),
):
    """A week's items, including occurrences of series started earlier."""
    document = await service.get_week(user_id, week_start)
    return document.to_dict()


@router.post("")
async def save_week(
    body: SaveWeekIn,
    user_id: str = Depends(get_user_id),
    service: ScheduleItemService = Depends(get_item_service),
):
    """Replace the items authored in a week."""
    document = await service.save_week(
        user_id,
        body.week_start,
        [item_payload(i) for i in body.items],
        timezone=body.timezone,
    )
    return document.to_dict()


@router.delete("")
async def clear_week(
    week_start: date = Query(..., alias="weekStart"),
    user_id: str = Depends(get_user_id),
    service: ScheduleItemService = Depends(get_item_service),
):
    deleted = await service.clear_week(user_id, week_start)
    return {"deleted": deleted}


@router.post("/items", status_code=201)
async def create_item(
    body: ScheduleItemIn,
    user_id: str = Depends(get_user_id),
    service: ScheduleItemService = Depends(get_item_service),
):
    """Author a single item on the date given in the body."""
    item = await service.create_schedule_item(user_id, item_payload(body))
    return item.to_dict()


@router.get("/items/{ref}")
async def get_item(
    ref: str,
    user_id: str = Depends(get_user_id),
    service: ScheduleItemService = Depends(get_item_service),
):
    item = await service.get_schedule_item(user_id, ref)
    return item.to_dict()


@router.put("/items/{ref}")
async def update_item(
    ref: str,
    body: ScheduleItemIn,
    scope: DeleteScope = Query(DeleteScope.ALL),
    user_id: str = Depends(get_user_id),
    service: ScheduleItemService = Depends(get_item_service),
):
    """Edit an item, one occurrence of it, or the rest of its series."""
    result = await service.update_schedule_item(user_id, ref, item_payload(body), scope=scope)
    return result.to_dict()


@router.delete("/items/{ref}")
async def delete_item(
    ref: str,
    scope: DeleteScope = Query(DeleteScope.THIS),
    start: date | None = Query(None),
    end: date | None = Query(None),
    user_id: str = Depends(get_user_id),
    service: ScheduleItemService = Depends(get_item_service),
):
    """Delete one occurrence, the rest of a series, or the whole series.

    When ``start`` and ``end`` are given the remaining occurrences in that
    window are returned.
    """
    if (start is None) != (end is None):
        raise ScheduleValidationError("start and end must be given together")
    window = (start, end) if start is not None else None
    result = await service.delete_schedule_item(user_id, ref, scope=scope, window=window)
    return result.to_dict()


@router.get("/items/{ref}/occurrences")
async def list_occurrences(
    ref: str,
    start: date = Query(...),
    end: date = Query(...),
    user_id: str = Depends(get_user_id),
    service: ScheduleItemService = Depends(get_item_service),
):
    occurrences = await service.occurrences(user_id, ref, start, end)
    return {"occurrences": [o.to_dict() for o in occurrences]}
