"""Daily and weekly schedule template models."""

from dataclasses import dataclass, field
from datetime import datetime

from ..errors import ScheduleValidationError
from ..utils.dates import WEEKDAY_LABELS, is_valid_time

DEFAULT_START_TIME = "09:00"
DEFAULT_DURATION = 60
DEFAULT_COLOR = "#3b82f6"


@dataclass
class DailyTemplate:
    """A reusable single-day activity: a workout, a cardio session, or rest.

    A non-rest day references exactly one of a workout template or a
    cardio activity. A rest day references neither.
    """

    user_id: str
    name: str
    workout_template_id: int | None = None
    cardio_type: str | None = None
    start_time: str = DEFAULT_START_TIME
    duration: int = DEFAULT_DURATION
    color: str = DEFAULT_COLOR
    is_rest_day: bool = False
    notes: str = ""
    id: int | None = None
    created_at: datetime | None = None

    def validate(self) -> None:
        """Check the template before it is stored.

        Raises:
            ScheduleValidationError: If a required field is missing or the
                activity reference is inconsistent
        """
        if not self.name or not self.name.strip():
            raise ScheduleValidationError("Name is required")
        if not is_valid_time(self.start_time):
            raise ScheduleValidationError(
                f"Invalid start time {self.start_time!r}. Use HH:MM"
            )
        if self.duration <= 0:
            raise ScheduleValidationError("Duration must be a positive number of minutes")

        has_workout = self.workout_template_id is not None
        has_cardio = bool(self.cardio_type)
        if self.is_rest_day:
            if has_workout or has_cardio:
                raise ScheduleValidationError(
                    "Rest days cannot reference a workout template or cardio activity"
                )
        elif has_workout == has_cardio:
            raise ScheduleValidationError(
                "Non-rest days require exactly one of a workout template or cardio activity"
            )

    def to_dict(self) -> dict:
        """Convert to dictionary for storage and API responses."""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "name": self.name,
            "workout_template_id": self.workout_template_id,
            "cardio_type": self.cardio_type,
            "start_time": self.start_time,
            "duration": self.duration,
            "color": self.color,
            "is_rest_day": self.is_rest_day,
            "notes": self.notes,
        }

    @classmethod
    def from_dict(
        cls, data: dict, id: int | None = None, created_at: datetime | None = None
    ) -> "DailyTemplate":
        """Create from dictionary."""
        return cls(
            id=id if id is not None else data.get("id"),
            user_id=data["user_id"],
            name=data["name"],
            workout_template_id=data.get("workout_template_id"),
            cardio_type=data.get("cardio_type"),
            start_time=data.get("start_time") or DEFAULT_START_TIME,
            duration=data.get("duration") or DEFAULT_DURATION,
            color=data.get("color") or DEFAULT_COLOR,
            is_rest_day=bool(data.get("is_rest_day", False)),
            notes=data.get("notes") or "",
            created_at=created_at,
        )


@dataclass
class WeeklyTemplateDay:
    """One day-of-week slot in a weekly template."""

    day_of_week: int
    daily_template_id: int | None = None
    override_time: str | None = None
    daily_template: DailyTemplate | None = None  # resolved on read

    @property
    def is_rest(self) -> bool:
        """Whether this slot resolves to a rest day."""
        return (
            self.daily_template_id is None
            or self.daily_template is None
            or self.daily_template.is_rest_day
        )

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "day_of_week": self.day_of_week,
            "daily_template_id": self.daily_template_id,
            "override_time": self.override_time,
            "daily_template": self.daily_template.to_dict() if self.daily_template else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "WeeklyTemplateDay":
        """Create from dictionary."""
        return cls(
            day_of_week=data["day_of_week"],
            daily_template_id=data.get("daily_template_id"),
            override_time=data.get("override_time"),
        )


@dataclass
class WeeklyTemplate:
    """Seven daily template assignments, one per day of week."""

    user_id: str
    name: str
    days: list[WeeklyTemplateDay] = field(default_factory=list)
    description: str = ""
    is_public: bool = False
    id: int | None = None
    created_at: datetime | None = None

    def validate(self) -> None:
        """Check that there is exactly one slot per day of week.

        Raises:
            ScheduleValidationError: If the name is missing or the slots are
                not exactly days 0-6
        """
        if not self.name or not self.name.strip():
            raise ScheduleValidationError("Name is required")
        if len(self.days) != 7:
            raise ScheduleValidationError(
                "Days must be an array of 7 items (0-6 for each day of week)"
            )
        seen = sorted(day.day_of_week for day in self.days)
        if seen != list(range(7)):
            raise ScheduleValidationError(
                "Days must contain exactly one entry for each day of week 0-6"
            )
        for day in self.days:
            if day.override_time is not None and not is_valid_time(day.override_time):
                raise ScheduleValidationError(
                    f"Invalid override time {day.override_time!r} for "
                    f"{WEEKDAY_LABELS[day.day_of_week]}. Use HH:MM"
                )

    def day(self, day_of_week: int) -> WeeklyTemplateDay | None:
        """Get the slot for a day of week."""
        for slot in self.days:
            if slot.day_of_week == day_of_week:
                return slot
        return None

    @property
    def daily_template_ids(self) -> list[int]:
        """Ids of every daily template referenced by this week."""
        return [d.daily_template_id for d in self.days if d.daily_template_id is not None]

    @property
    def training_days(self) -> int:
        """Number of non-rest slots."""
        return sum(1 for d in self.days if not d.is_rest)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "name": self.name,
            "description": self.description,
            "is_public": self.is_public,
            "days": [d.to_dict() for d in sorted(self.days, key=lambda d: d.day_of_week)],
        }

    @classmethod
    def from_dict(
        cls, data: dict, id: int | None = None, created_at: datetime | None = None
    ) -> "WeeklyTemplate":
        """Create from dictionary."""
        return cls(
            id=id if id is not None else data.get("id"),
            user_id=data["user_id"],
            name=data["name"],
            description=data.get("description") or "",
            is_public=bool(data.get("is_public", False)),
            days=[WeeklyTemplateDay.from_dict(d) for d in data.get("days", [])],
            created_at=created_at,
        )
