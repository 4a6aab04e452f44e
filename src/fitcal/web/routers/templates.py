"""Schedule template routes, including generation."""

from fastapi import APIRouter, Depends, Query

from ...models.generation import GenerationCriteria
from ...services.templates import ScheduleTemplateService
from ..deps import get_template_service, get_user_id
from ..schemas import ApplyTemplateIn, ScheduleTemplateIn, ScheduleTemplatePatch, item_payload

router = APIRouter(prefix="/schedule/templates", tags=["schedule-templates"])


def _template_payload(body: ScheduleTemplateIn | ScheduleTemplatePatch) -> dict:
    data = body.model_dump(exclude_unset=True, exclude={"items"})
    if body.items is not None:
        data["items"] = [item_payload(i) for i in body.items]
    return data


@router.get("")
async def list_templates(
    user_id: str = Depends(get_user_id),
    service: ScheduleTemplateService = Depends(get_template_service),
):
    """List the user's templates plus public and default ones."""
    templates = await service.list_templates(user_id)
    return {"templates": [t.to_dict() for t in templates]}


@router.post("", status_code=201)
async def create_template(
    body: ScheduleTemplateIn,
    user_id: str = Depends(get_user_id),
    service: ScheduleTemplateService = Depends(get_template_service),
):
    template = await service.create(user_id, _template_payload(body))
    return template.to_dict()


@router.post("/generate")
async def generate_templates(
    criteria: GenerationCriteria,
    save: bool = Query(False),
    user_id: str = Depends(get_user_id),
    service: ScheduleTemplateService = Depends(get_template_service),
):
    """Generate weekly templates from the workout library."""
    result = await service.generate(user_id, criteria, save=save)
    return {
        **result,
        "templates": [t.to_dict() for t in result["templates"]],
        "criteria": result["criteria"].model_dump(),
    }


@router.get("/recommended")
async def recommended_templates(
    count: int = Query(3),
    user_id: str = Depends(get_user_id),
    service: ScheduleTemplateService = Depends(get_template_service),
):
    """Default and popular templates, topped up with generated ones.

    ``count`` is clamped to 1-6.
    """
    templates = await service.recommended(user_id, count=max(1, min(count, 6)))
    return {"templates": [t.to_dict() for t in templates]}


@router.get("/{template_id}")
async def get_template(
    template_id: int,
    user_id: str = Depends(get_user_id),
    service: ScheduleTemplateService = Depends(get_template_service),
):
    template = await service.get(user_id, template_id)
    return template.to_dict()


@router.put("/{template_id}")
async def update_template(
    template_id: int,
    body: ScheduleTemplatePatch,
    user_id: str = Depends(get_user_id),
    service: ScheduleTemplateService = Depends(get_template_service),
):
    template = await service.update(user_id, template_id, _template_payload(body))
    return template.to_dict()


@router.delete("/{template_id}")
async def delete_template(
    template_id: int,
    user_id: str = Depends(get_user_id),
    service: ScheduleTemplateService = Depends(get_template_service),
):
    await service.delete(user_id, template_id)
    return {"deleted": True}


@router.post("/{template_id}/apply")
async def apply_template(
    template_id: int,
    body: ApplyTemplateIn,
    user_id: str = Depends(get_user_id),
    service: ScheduleTemplateService = Depends(get_template_service),
):
    """Copy a template's items into a week."""
    document = await service.apply(user_id, template_id, body.week_start, replace=body.replace)
    return document.to_dict()
