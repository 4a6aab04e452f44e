"""Request bodies for the schedule API."""

from datetime import date, datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class DailyTemplateIn(BaseModel):
    name: str
    workout_template_id: int | None = None
    cardio_type: str | None = None
    start_time: str | None = None
    duration: int | None = Field(default=None, gt=0)
    color: str | None = None
    is_rest_day: bool = False
    notes: str | None = None


class DailyTemplatePatch(BaseModel):
    name: str | None = None
    workout_template_id: int | None = None
    cardio_type: str | None = None
    start_time: str | None = None
    duration: int | None = Field(default=None, gt=0)
    color: str | None = None
    is_rest_day: bool | None = None
    notes: str | None = None


class WeeklyDayIn(BaseModel):
    day_of_week: int = Field(ge=0, le=6)
    daily_template_id: int | None = None
    override_time: str | None = None


class WeeklyTemplateIn(BaseModel):
    name: str
    description: str = ""
    is_public: bool = False
    days: list[WeeklyDayIn]


class WeeklyTemplatePatch(BaseModel):
    name: str | None = None
    description: str | None = None
    is_public: bool | None = None
    days: list[WeeklyDayIn] | None = None


class ActiveScheduleIn(BaseModel):
    weekly_template_id: int
    start_date: date
    end_date: date | None = None
    name: str | None = None


class ActiveSchedulePatch(BaseModel):
    """Only fields present in the body are changed; ``end_date: null`` clears the end."""

    name: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    is_active: bool | None = None


class ScheduleItemIn(BaseModel):
    """A schedule item as authored by a client.

    The recurrence can be given either as ``recurrence_rule`` or through
    the flat ``repeat_*`` fields.
    """

    model_config = ConfigDict(extra="ignore")

    id: int | None = None
    type: Literal["workout", "meal"] = "workout"
    title: str | None = None
    description: str | None = None
    day: int | None = None
    start_time: str | None = None
    end_time: str | None = None
    category: str | None = None
    calories: int | None = None
    difficulty: str | None = None
    duration: int | None = None
    is_from_generator: bool | None = None
    generator_data: dict[str, Any] | None = None
    is_recurring: bool | None = None
    repeat_pattern: Literal["daily", "weekly", "yearly"] | None = None
    repeat_interval: int | None = None
    repeat_ends_on: date | None = None
    repeat_days_of_week: list[int] | None = None
    recurrence_rule: dict[str, Any] | None = None
    is_virtual: bool | None = None
    date: str | None = None  # YYYY-MM-DD


class CompletedDayIn(BaseModel):
    date: str | None = None  # YYYY-MM-DD
    status: str | None = None
    notes: str | None = None


class SaveWeekIn(BaseModel):
    week_start: date
    timezone: str | None = None
    items: list[ScheduleItemIn] = Field(default_factory=list)


class ScheduleTemplateIn(BaseModel):
    name: str
    description: str = ""
    items: list[ScheduleItemIn] = Field(default_factory=list)
    is_public: bool = False
    metadata: dict[str, Any] = Field(default_factory=dict)


class ScheduleTemplatePatch(BaseModel):
    name: str | None = None
    description: str | None = None
    items: list[ScheduleItemIn] | None = None
    is_public: bool | None = None
    metadata: dict[str, Any] | None = None


class ApplyTemplateIn(BaseModel):
    week_start: date
    replace: bool = False


class TemplateExerciseIn(BaseModel):
    name: str
    sets: int = 3
    reps: str = "10"
    rest_seconds: int = 60
    equipment: list[str] = Field(default_factory=list)
    muscles: list[str] = Field(default_factory=list)
    primary_muscles: list[str] = Field(default_factory=list)


class WorkoutTemplateIn(BaseModel):
    name: str
    description: str = ""
    category: str | None = None
    difficulty: str | None = None
    estimated_duration: int | None = Field(default=None, gt=0)
    exercises: list[TemplateExerciseIn] = Field(default_factory=list)


class WorkoutSessionIn(BaseModel):
    name: str
    start_time: datetime
    status: Literal["planned", "in_progress", "completed", "skipped"] = "completed"


def item_payload(item: ScheduleItemIn) -> dict:
    """Fields the client actually sent."""
    return item.model_dump(exclude_unset=True)
