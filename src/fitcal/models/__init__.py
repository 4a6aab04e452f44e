"""Data models for fitcal."""

from .generation import GenerationCriteria
from .items import DeleteScope, ItemType, OccurrenceRef, RecurrenceRule, RepeatPattern, ScheduleItem
from .schedule import (
    ActiveSchedule,
    CalendarView,
    CalendarWorkout,
    CompletedDay,
    ScheduleDocument,
    ScheduleTemplate,
)
from .templates import DailyTemplate, WeeklyTemplate, WeeklyTemplateDay
from .workouts import SessionStatus, TemplateExercise, WorkoutSession, WorkoutTemplate

__all__ = [
    "ActiveSchedule",
    "CalendarView",
    "CalendarWorkout",
    "CompletedDay",
    "DailyTemplate",
    "DeleteScope",
    "GenerationCriteria",
    "ItemType",
    "OccurrenceRef",
    "RecurrenceRule",
    "RepeatPattern",
    "ScheduleDocument",
    "ScheduleItem",
    "ScheduleTemplate",
    "SessionStatus",
    "TemplateExercise",
    "WeeklyTemplate",
    "WeeklyTemplateDay",
    "WorkoutSession",
    "WorkoutTemplate",
]
