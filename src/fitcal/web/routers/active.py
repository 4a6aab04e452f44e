"""Active schedule routes."""

from fastapi import APIRouter, Depends, Query

from ...services.active import ActiveScheduleService
from ..deps import get_active_service, get_user_id
from ..schemas import ActiveScheduleIn, ActiveSchedulePatch

router = APIRouter(prefix="/schedule/active", tags=["active-schedules"])


@router.get("")
async def list_active_schedules(
    active_only: bool = Query(False, alias="activeOnly"),
    user_id: str = Depends(get_user_id),
    service: ActiveScheduleService = Depends(get_active_service),
):
    """List the user's schedules, optionally only the active ones."""
    schedules = await service.list_schedules(user_id, active_only=active_only)
    return {"schedules": [s.to_dict() for s in schedules]}


@router.post("", status_code=201)
async def activate_schedule(
    body: ActiveScheduleIn,
    user_id: str = Depends(get_user_id),
    service: ActiveScheduleService = Depends(get_active_service),
):
    """Bind a weekly template to a date range."""
    schedule = await service.activate(
        user_id,
        body.weekly_template_id,
        body.start_date,
        end_date=body.end_date,
        name=body.name,
    )
    return schedule.to_dict()


@router.get("/{schedule_id}")
async def get_active_schedule(
    schedule_id: int,
    user_id: str = Depends(get_user_id),
    service: ActiveScheduleService = Depends(get_active_service),
):
    schedule = await service.get(user_id, schedule_id)
    return schedule.to_dict()


@router.put("/{schedule_id}")
async def update_active_schedule(
    schedule_id: int,
    body: ActiveSchedulePatch,
    user_id: str = Depends(get_user_id),
    service: ActiveScheduleService = Depends(get_active_service),
):
    """Change name, range or active flag. Only fields present are changed."""
    schedule = await service.update(user_id, schedule_id, **body.model_dump(exclude_unset=True))
    return schedule.to_dict()


@router.delete("/{schedule_id}")
async def delete_active_schedule(
    schedule_id: int,
    user_id: str = Depends(get_user_id),
    service: ActiveScheduleService = Depends(get_active_service),
):
    """Delete a schedule. The weekly template is kept."""
    await service.delete(user_id, schedule_id)
    return {"deleted": True}
