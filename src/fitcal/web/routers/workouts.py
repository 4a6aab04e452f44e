"""Workout library and logged session routes."""

from datetime import date

from fastapi import APIRouter, Depends, Query, Request

from ...db.repositories import WorkoutSessionRepository, WorkoutTemplateRepository
from ...models.workouts import WorkoutSession, WorkoutTemplate
from ...services.calendar import validate_window
from ..deps import get_db_path, get_user_id
from ..schemas import WorkoutSessionIn, WorkoutTemplateIn

router = APIRouter(tags=["workouts"])


@router.get("/workout-templates")
async def list_workout_templates(request: Request, user_id: str = Depends(get_user_id)):
    """Predefined workouts plus the user's own."""
    repo = WorkoutTemplateRepository(get_db_path(request))
    templates = await repo.list_for_user(user_id)
    return {"templates": [t.to_dict() for t in templates]}


@router.post("/workout-templates", status_code=201)
async def create_workout_template(
    body: WorkoutTemplateIn, request: Request, user_id: str = Depends(get_user_id)
):
    repo = WorkoutTemplateRepository(get_db_path(request))
    template = WorkoutTemplate.from_dict({**body.model_dump(), "user_id": user_id})
    template.id = await repo.create(template)
    return template.to_dict()


@router.get("/workout-sessions")
async def list_workout_sessions(
    request: Request,
    start: date = Query(...),
    end: date = Query(...),
    user_id: str = Depends(get_user_id),
):
    validate_window(start, end)
    repo = WorkoutSessionRepository(get_db_path(request))
    sessions = await repo.list_between(user_id, start, end)
    return {"sessions": [s.to_dict() for s in sessions]}


@router.post("/workout-sessions", status_code=201)
async def log_workout_session(
    body: WorkoutSessionIn, request: Request, user_id: str = Depends(get_user_id)
):
    """Log a session. Completed sessions mark matching calendar workouts done."""
    repo = WorkoutSessionRepository(get_db_path(request))
    session = WorkoutSession.from_dict({**body.model_dump(), "user_id": user_id})
    session.id = await repo.create(session)
    return session.to_dict()
