"""Weekly template routes."""

from fastapi import APIRouter, Depends

from ...services.templates import WeeklyTemplateService
from ..deps import get_user_id, get_weekly_service
from ..schemas import WeeklyTemplateIn, WeeklyTemplatePatch

router = APIRouter(prefix="/schedule/weekly-templates", tags=["weekly-templates"])


@router.get("")
async def list_weekly_templates(
    user_id: str = Depends(get_user_id),
    service: WeeklyTemplateService = Depends(get_weekly_service),
):
    """List the user's weekly templates with their day slots."""
    templates = await service.list_templates(user_id)
    return {"templates": [t.to_dict() for t in templates]}


@router.post("", status_code=201)
async def create_weekly_template(
    body: WeeklyTemplateIn,
    user_id: str = Depends(get_user_id),
    service: WeeklyTemplateService = Depends(get_weekly_service),
):
    """Create a weekly template from seven day slots."""
    template = await service.create(user_id, body.model_dump())
    return template.to_dict()


@router.get("/{template_id}")
async def get_weekly_template(
    template_id: int,
    user_id: str = Depends(get_user_id),
    service: WeeklyTemplateService = Depends(get_weekly_service),
):
    template = await service.get(user_id, template_id)
    return template.to_dict()


@router.put("/{template_id}")
async def update_weekly_template(
    template_id: int,
    body: WeeklyTemplatePatch,
    user_id: str = Depends(get_user_id),
    service: WeeklyTemplateService = Depends(get_weekly_service),
):
    template = await service.update(user_id, template_id, body.model_dump(exclude_unset=True))
    return template.to_dict()


@router.delete("/{template_id}")
async def delete_weekly_template(
    template_id: int,
    user_id: str = Depends(get_user_id),
    service: WeeklyTemplateService = Depends(get_weekly_service),
):
    """Delete a weekly template. Refused while an active schedule uses it."""
    await service.delete(user_id, template_id)
    return {"deleted": True}
