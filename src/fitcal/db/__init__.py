"""Database layer for fitcal."""

from .engine import connect, get_db_path, init_db
from .repositories import (
    ActiveScheduleRepository,
    CompletedDayRepository,
    DailyTemplateRepository,
    ScheduleRepository,
    ScheduleTemplateRepository,
    WeeklyTemplateRepository,
    WorkoutSessionRepository,
    WorkoutTemplateRepository,
)

__all__ = [
    "ActiveScheduleRepository",
    "CompletedDayRepository",
    "connect",
    "DailyTemplateRepository",
    "get_db_path",
    "init_db",
    "ScheduleRepository",
    "ScheduleTemplateRepository",
    "WeeklyTemplateRepository",
    "WorkoutSessionRepository",
    "WorkoutTemplateRepository",
]
