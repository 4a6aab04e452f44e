"""Active schedules, weekly schedule documents, and calendar rows."""

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta

from ..errors import ScheduleValidationError
from ..utils.dates import format_date, parse_date, parse_optional_date
from .items import ScheduleItem
from .templates import WeeklyTemplate


@dataclass
class ActiveSchedule:
    """A weekly template bound to a date range.

    ``end_date`` of None repeats the weekly pattern indefinitely. Only
    ``is_active`` controls whether the schedule shows on the calendar.
    """

    user_id: str
    weekly_template_id: int
    start_date: date
    end_date: date | None = None
    name: str | None = None
    is_active: bool = True
    id: int | None = None
    weekly_template: WeeklyTemplate | None = None  # resolved on read
    created_at: datetime | None = None

    def validate(self) -> None:
        """Check the date range.

        Raises:
            ScheduleValidationError: If the end date precedes the start date
        """
        if self.end_date is not None and self.end_date < self.start_date:
            raise ScheduleValidationError("End date must be on or after start date")

    def overlap(self, start: date, end: date) -> tuple[date, date] | None:
        """Intersect the schedule's range with a window."""
        lo = max(start, self.start_date)
        hi = end if self.end_date is None else min(end, self.end_date)
        if lo > hi:
            return None
        return lo, hi

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "weekly_template_id": self.weekly_template_id,
            "name": self.name,
            "start_date": format_date(self.start_date),
            "end_date": format_date(self.end_date),
            "is_active": self.is_active,
            "weekly_template": self.weekly_template.to_dict() if self.weekly_template else None,
        }

    @classmethod
    def from_dict(
        cls, data: dict, id: int | None = None, created_at: datetime | None = None
    ) -> "ActiveSchedule":
        """Create from dictionary."""
        return cls(
            id=id if id is not None else data.get("id"),
            user_id=data["user_id"],
            weekly_template_id=data["weekly_template_id"],
            name=data.get("name"),
            start_date=parse_date(data["start_date"]),
            end_date=parse_optional_date(data.get("end_date")),
            is_active=bool(data.get("is_active", True)),
            created_at=created_at,
        )


@dataclass
class CalendarWorkout:
    """One materialized day of an active schedule.

    Derived on every calendar read, never stored. Rest days are emitted as
    rows with ``is_rest_day`` set and no workout.
    """

    date: date
    day_of_week: int
    active_schedule_id: int
    active_schedule_name: str | None
    start_time: str
    duration: int
    color: str
    is_rest_day: bool
    daily_template_id: int | None = None
    daily_template_name: str | None = None
    workout_template_id: int | None = None
    workout_template_name: str | None = None
    workout_category: str | None = None
    workout_difficulty: str | None = None
    cardio_type: str | None = None
    is_completed: bool = False
    completion_status: str | None = None
    completion_notes: str | None = None

    @property
    def title(self) -> str | None:
        """Name used to match logged sessions against this row."""
        return self.workout_template_name or self.daily_template_name or self.cardio_type

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "date": self.date.isoformat(),
            "day_of_week": self.day_of_week,
            "daily_template_id": self.daily_template_id,
            "daily_template_name": self.daily_template_name,
            "workout_template_id": self.workout_template_id,
            "workout_template_name": self.workout_template_name,
            "workout_category": self.workout_category,
            "workout_difficulty": self.workout_difficulty,
            "cardio_type": self.cardio_type,
            "start_time": self.start_time,
            "duration": self.duration,
            "color": self.color,
            "is_rest_day": self.is_rest_day,
            "active_schedule_id": self.active_schedule_id,
            "active_schedule_name": self.active_schedule_name,
            "is_completed": self.is_completed,
            "completion_status": self.completion_status,
            "completion_notes": self.completion_notes,
        }


@dataclass
class CompletedDay:
    """A user's record that a calendar date was done."""

    user_id: str
    date: date
    status: str = "completed"
    notes: str | None = None
    id: int | None = None
    updated_at: datetime | None = None

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "date": self.date.isoformat(),
            "status": self.status,
            "notes": self.notes,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


@dataclass
class CalendarView:
    """Everything scheduled in a date window."""

    start_date: date
    end_date: date
    workouts: list[CalendarWorkout] = field(default_factory=list)
    items: list[ScheduleItem] = field(default_factory=list)
    active_schedule_count: int = 0

    @property
    def total_days(self) -> int:
        return (self.end_date - self.start_date).days + 1

    def on(self, day: date) -> tuple[list[CalendarWorkout], list[ScheduleItem]]:
        """Everything scheduled on one date."""
        return (
            [w for w in self.workouts if w.date == day],
            [i for i in self.items if i.occurrence_date == day],
        )

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "total_days": self.total_days,
            "active_schedule_count": self.active_schedule_count,
            "workouts": [w.to_dict() for w in self.workouts],
            "items": [i.to_dict() for i in self.items],
        }


@dataclass
class ScheduleDocument:
    """A user's authored items for one Sunday-aligned week."""

    user_id: str
    week_start: date
    timezone: str = "UTC"
    items: list[ScheduleItem] = field(default_factory=list)
    id: int | None = None

    @property
    def week_end(self) -> date:
        return self.week_start + timedelta(days=6)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "week_start": self.week_start.isoformat(),
            "timezone": self.timezone,
            "items": [i.to_dict() for i in self.items],
        }


@dataclass
class ScheduleTemplate:
    """A saved, reusable bundle of schedule items not tied to any week."""

    name: str
    items: list[ScheduleItem] = field(default_factory=list)
    description: str = ""
    is_default: bool = False
    is_public: bool = False
    usage_count: int = 0
    metadata: dict = field(default_factory=dict)
    user_id: str | None = None
    id: int | None = None
    created_at: datetime | None = None

    def validate(self) -> None:
        """Check the template and every item in it.

        Raises:
            ScheduleValidationError: If the name is missing or an item is invalid
        """
        if not self.name or not self.name.strip():
            raise ScheduleValidationError("Name is required")
        for item in self.items:
            item.validate()

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        items = sorted(self.items, key=lambda i: (i.day, i.start_time))
        return {
            "id": self.id,
            "user_id": self.user_id,
            "name": self.name,
            "description": self.description,
            "is_default": self.is_default,
            "is_public": self.is_public,
            "usage_count": self.usage_count,
            "metadata": self.metadata,
            "items": [_template_item_dict(i) for i in items],
        }

    @classmethod
    def from_dict(
        cls, data: dict, id: int | None = None, created_at: datetime | None = None
    ) -> "ScheduleTemplate":
        """Create from dictionary."""
        return cls(
            id=id if id is not None else data.get("id"),
            user_id=data.get("user_id"),
            name=data["name"],
            description=data.get("description") or "",
            is_default=bool(data.get("is_default", False)),
            is_public=bool(data.get("is_public", False)),
            usage_count=data.get("usage_count", 0),
            metadata=data.get("metadata") or {},
            items=[
                ScheduleItem.from_dict(i, id=None, schedule_id=None)
                for i in data.get("items", [])
            ],
            created_at=created_at,
        )


def _template_item_dict(item: ScheduleItem) -> dict:
    """Template items have no identity or concrete date."""
    data = item.to_dict()
    for key in ("id", "ref", "schedule_id", "date", "is_virtual", "origin_id"):
        data.pop(key, None)
    return data
