"""Pytest configuration and fixtures."""

import tempfile
from datetime import date
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from fitcal.config import get_settings
from fitcal.data.workout_loader import seed_workout_templates
from fitcal.db import WorkoutTemplateRepository, init_db
from fitcal.models.items import RecurrenceRule, RepeatPattern, ScheduleItem
from fitcal.models.workouts import TemplateExercise, WorkoutTemplate
from fitcal.web import create_app

USER = "user-1"


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Point settings at a scratch data directory for every test."""
    monkeypatch.setenv("FITCAL_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("FITCAL_DEFAULT_USER_ID", USER)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def temp_db_path():
    """Create a temporary database path."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir) / "test.db"


@pytest.fixture
async def db_path(temp_db_path):
    """An initialized, empty database."""
    await init_db(temp_db_path)
    return temp_db_path


@pytest.fixture
async def seeded_db_path(db_path):
    """An initialized database with the starter workout library."""
    await seed_workout_templates(db_path)
    return db_path


@pytest.fixture
async def workout_library(seeded_db_path):
    """Seeded workout templates keyed by name."""
    templates = await WorkoutTemplateRepository(seeded_db_path).list_for_user(USER)
    return {t.name: t for t in templates}


@pytest.fixture
def client(temp_db_path):
    """API client over a fresh database, created and seeded on startup."""
    with TestClient(create_app(db_path=temp_db_path)) as client:
        yield client


@pytest.fixture
def weekly_item():
    """A Tuesday workout repeating every week from 2024-01-02."""
    return ScheduleItem(
        title="Morning Run",
        day=2,
        start_time="06:30",
        end_time="07:15",
        is_recurring=True,
        recurrence_rule=RecurrenceRule(frequency=RepeatPattern.WEEKLY, interval=1),
        occurrence_date=date(2024, 1, 2),
        id=1,
    )


def make_workout(
    template_id: int,
    name: str,
    category: str = "strength",
    difficulty: str = "intermediate",
    equipment: list[str] | None = None,
) -> WorkoutTemplate:
    """Build an in-memory workout template with one exercise."""
    return WorkoutTemplate(
        id=template_id,
        name=name,
        category=category,
        difficulty=difficulty,
        estimated_duration=45,
        exercises=[
            TemplateExercise(
                name=f"{name} main lift",
                equipment=equipment if equipment is not None else ["bodyweight"],
                primary_muscles=["legs"],
            )
        ],
    )
