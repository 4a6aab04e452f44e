"""Schedule services: recurrence, calendar, series mutation and templates."""

from .active import ActiveScheduleService
from .calendar import CalendarService, CompletedDayService, materialize_workouts, validate_window
from .generator import generate_templates
from .recurrence import expand_item, expand_items, expand_recurrence
from .series import MutationResult, ScheduleItemService
from .templates import DailyTemplateService, ScheduleTemplateService, WeeklyTemplateService

__all__ = [
    "ActiveScheduleService",
    "CalendarService",
    "CompletedDayService",
    "DailyTemplateService",
    "MutationResult",
    "ScheduleItemService",
    "ScheduleTemplateService",
    "WeeklyTemplateService",
    "expand_item",
    "expand_items",
    "expand_recurrence",
    "generate_templates",
    "materialize_workouts",
    "validate_window",
]
