"""Daily template routes."""

from fastapi import APIRouter, Depends

from ...services.templates import DailyTemplateService
from ..deps import get_daily_service, get_user_id
from ..schemas import DailyTemplateIn, DailyTemplatePatch

router = APIRouter(prefix="/schedule/daily-templates", tags=["daily-templates"])


@router.get("")
async def list_daily_templates(
    user_id: str = Depends(get_user_id),
    service: DailyTemplateService = Depends(get_daily_service),
):
    """List the user's daily templates."""
    templates = await service.list_templates(user_id)
    return {"templates": [t.to_dict() for t in templates]}


@router.post("", status_code=201)
async def create_daily_template(
    body: DailyTemplateIn,
    user_id: str = Depends(get_user_id),
    service: DailyTemplateService = Depends(get_daily_service),
):
    """Create a daily template."""
    template = await service.create(user_id, body.model_dump())
    return template.to_dict()


@router.get("/{template_id}")
async def get_daily_template(
    template_id: int,
    user_id: str = Depends(get_user_id),
    service: DailyTemplateService = Depends(get_daily_service),
):
    template = await service.get(user_id, template_id)
    return template.to_dict()


@router.put("/{template_id}")
async def update_daily_template(
    template_id: int,
    body: DailyTemplatePatch,
    user_id: str = Depends(get_user_id),
    service: DailyTemplateService = Depends(get_daily_service),
):
    """Change fields of a daily template."""
    template = await service.update(user_id, template_id, body.model_dump(exclude_unset=True))
    return template.to_dict()


@router.delete("/{template_id}")
async def delete_daily_template(
    template_id: int,
    user_id: str = Depends(get_user_id),
    service: DailyTemplateService = Depends(get_daily_service),
):
    """Delete a daily template. Weekly slots using it become rest days."""
    cleared = await service.delete(user_id, template_id)
    return {"deleted": True, "cleared_weekly_slots": cleared}
