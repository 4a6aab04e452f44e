"""Ad-hoc schedule items and their recurrence rules."""

import logging
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from enum import Enum

from ..errors import ScheduleValidationError
from ..utils.dates import day_of_week, format_date, is_valid_time, parse_date, parse_optional_date

logger = logging.getLogger(__name__)

OCCURRENCE_SEPARATOR = "@"


class ItemType(str, Enum):
    """What a schedule item represents."""

    WORKOUT = "workout"
    MEAL = "meal"


class RepeatPattern(str, Enum):
    """Recurrence frequency."""

    DAILY = "daily"
    WEEKLY = "weekly"
    YEARLY = "yearly"


class DeleteScope(str, Enum):
    """How much of a recurring series a mutation applies to."""

    THIS = "this"  # The targeted occurrence only
    FUTURE = "future"  # The targeted occurrence and everything after it
    ALL = "all"  # The whole series


@dataclass
class RecurrenceRule:
    """How a single authored item repeats.

    ``interval`` counts weeks for weekly rules, days for daily rules and
    years for yearly rules. ``ends_on`` is an inclusive boundary.
    """

    frequency: RepeatPattern = RepeatPattern.WEEKLY
    interval: int = 1
    ends_on: date | None = None
    days_of_week: list[int] = field(default_factory=list)
    meta: dict = field(default_factory=dict)

    def validate(self, fallback_day: int | None = None) -> None:
        """Reject rules that cannot be expanded.

        Args:
            fallback_day: Day of week used when ``days_of_week`` is empty

        Raises:
            ScheduleValidationError: On a non-positive interval, an out of
                range day, or an empty weekly day set with no fallback
        """
        if not isinstance(self.interval, int) or isinstance(self.interval, bool) or self.interval < 1:
            raise ScheduleValidationError(
                f"Repeat interval must be a positive integer, got {self.interval!r}"
            )
        for day in self.days_of_week:
            if not isinstance(day, int) or isinstance(day, bool) or not 0 <= day <= 6:
                raise ScheduleValidationError(f"Invalid day of week {day!r}. Use 0-6")
        if (
            self.frequency == RepeatPattern.WEEKLY
            and not self.days_of_week
            and fallback_day is None
        ):
            raise ScheduleValidationError(
                "Weekly recurrence needs days of week or an item day to fall back on"
            )

    def effective_days(self, origin_day: int) -> list[int]:
        """Days of week the rule fires on, falling back to the origin's day."""
        if self.days_of_week:
            return sorted(set(self.days_of_week))
        return [origin_day]

    def with_end(self, ends_on: date | None) -> "RecurrenceRule":
        """Copy of this rule ending on the given date."""
        return replace(self, ends_on=ends_on, days_of_week=list(self.days_of_week), meta=dict(self.meta))

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "frequency": self.frequency.value,
            "interval": self.interval,
            "ends_on": format_date(self.ends_on),
            "days_of_week": list(self.days_of_week),
            "meta": self.meta,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "RecurrenceRule":
        """Create from dictionary.

        Raises:
            ValueError: If the frequency or end date cannot be parsed
        """
        interval = data.get("interval")
        return cls(
            frequency=RepeatPattern(data.get("frequency") or "weekly"),
            interval=1 if interval is None else interval,
            ends_on=parse_optional_date(data.get("ends_on")),
            days_of_week=list(data.get("days_of_week") or []),
            meta=data.get("meta") or {},
        )


@dataclass(frozen=True)
class OccurrenceRef:
    """Reference to one occurrence of a schedule item.

    Concrete items are referenced by their id (``"12"``). Virtual
    occurrences add the occurrence date (``"12@2024-01-16"``).
    """

    origin_id: int
    occurrence_date: date | None = None

    @classmethod
    def parse(cls, value: str | int) -> "OccurrenceRef":
        """Parse an item reference.

        Raises:
            ScheduleValidationError: If the reference is malformed
        """
        text = str(value).strip()
        origin_part, _, date_part = text.partition(OCCURRENCE_SEPARATOR)
        try:
            origin_id = int(origin_part)
        except ValueError:
            raise ScheduleValidationError(f"Invalid schedule item reference {text!r}") from None
        occurrence_date = None
        if date_part:
            try:
                occurrence_date = parse_date(date_part)
            except ValueError as e:
                raise ScheduleValidationError(str(e)) from None
        return cls(origin_id=origin_id, occurrence_date=occurrence_date)

    def __str__(self) -> str:
        if self.occurrence_date is None:
            return str(self.origin_id)
        return f"{self.origin_id}{OCCURRENCE_SEPARATOR}{self.occurrence_date.isoformat()}"


@dataclass
class ScheduleItem:
    """A calendar entry authored in a weekly schedule document.

    The persisted item is the origin of its series. Virtual occurrences are
    copies produced by expanding ``recurrence_rule``; they carry
    ``origin_id`` and are never stored.
    """

    title: str
    day: int
    start_time: str
    end_time: str
    type: ItemType = ItemType.WORKOUT
    description: str = ""
    category: str | None = None
    calories: int | None = None
    difficulty: str | None = None
    duration: int | None = None
    is_from_generator: bool = False
    generator_data: dict | None = None
    is_recurring: bool = False
    recurrence_rule: RecurrenceRule | None = None
    is_virtual: bool = False
    origin_id: int | None = None
    occurrence_date: date | None = None  # The schedule's week start + day
    schedule_id: int | None = None
    id: int | None = None

    # Mirrors of the recurrence rule, kept for clients that read flat fields

    @property
    def repeat_pattern(self) -> RepeatPattern | None:
        return self.recurrence_rule.frequency if self.recurrence_rule else None

    @property
    def repeat_interval(self) -> int | None:
        return self.recurrence_rule.interval if self.recurrence_rule else None

    @property
    def repeat_ends_on(self) -> date | None:
        return self.recurrence_rule.ends_on if self.recurrence_rule else None

    @property
    def repeat_days_of_week(self) -> list[int] | None:
        return list(self.recurrence_rule.days_of_week) if self.recurrence_rule else None

    @property
    def ref(self) -> str:
        """Reference string used to target this item or occurrence."""
        if self.is_virtual:
            return str(OccurrenceRef(self.origin_id, self.occurrence_date))
        return str(self.id)

    @property
    def signature(self) -> str:
        """Identity used to avoid showing the same entry twice in one day."""
        return f"{self.title}-{self.start_time}-{self.day}".lower()

    def validate(self) -> None:
        """Check the item before it is written.

        Raises:
            ScheduleValidationError: On a missing title, bad day or times,
                or a recurring item without a usable rule
        """
        if not self.title or not self.title.strip():
            raise ScheduleValidationError("Title is required")
        if not isinstance(self.day, int) or not 0 <= self.day <= 6:
            raise ScheduleValidationError(f"Invalid day {self.day!r}. Use 0-6")
        for label, value in (("start time", self.start_time), ("end time", self.end_time)):
            if not is_valid_time(value):
                raise ScheduleValidationError(f"Invalid {label} {value!r}. Use HH:MM")
        if self.is_recurring:
            if self.recurrence_rule is None:
                raise ScheduleValidationError("Recurring items require a recurrence rule")
            self.recurrence_rule.validate(fallback_day=self.day)
            ends_on = self.recurrence_rule.ends_on
            if ends_on and self.occurrence_date and ends_on < self.occurrence_date:
                raise ScheduleValidationError("Repeat end date cannot be before the item's date")

    def occurrence(self, on: date) -> "ScheduleItem":
        """Build the virtual occurrence of this item on a date."""
        return replace(
            self,
            id=None,
            is_virtual=True,
            origin_id=self.id,
            day=day_of_week(on),
            occurrence_date=on,
        )

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "ref": self.ref,
            "schedule_id": self.schedule_id,
            "type": self.type.value,
            "title": self.title,
            "description": self.description,
            "day": self.day,
            "date": format_date(self.occurrence_date),
            "start_time": self.start_time,
            "end_time": self.end_time,
            "category": self.category,
            "calories": self.calories,
            "difficulty": self.difficulty,
            "duration": self.duration,
            "is_from_generator": self.is_from_generator,
            "generator_data": self.generator_data,
            "is_recurring": self.is_recurring,
            "repeat_pattern": self.repeat_pattern.value if self.repeat_pattern else None,
            "repeat_interval": self.repeat_interval,
            "repeat_ends_on": format_date(self.repeat_ends_on),
            "repeat_days_of_week": self.repeat_days_of_week,
            "recurrence_rule": self.recurrence_rule.to_dict() if self.recurrence_rule else None,
            "is_virtual": self.is_virtual,
            "origin_id": self.origin_id if self.is_virtual else self.id,
        }

    @classmethod
    def from_dict(cls, data: dict, strict: bool = True, **overrides) -> "ScheduleItem":
        """Create from dictionary.

        The recurrence rule comes from ``recurrence_rule`` when present,
        otherwise from the flat ``repeat_*`` fields.

        Args:
            data: Item fields
            strict: Raise on a malformed rule. When False the rule is
                dropped with a warning so the item still loads and is
                expanded as a single occurrence.
            **overrides: Fields that take precedence over ``data``

        Raises:
            ScheduleValidationError: In strict mode, if the rule is malformed
                or disagrees with the flat repeat fields
        """
        data = {**data, **overrides}
        is_recurring = bool(data.get("is_recurring", False))
        try:
            rule = _rule_from_fields(data)
        except (ScheduleValidationError, ValueError, TypeError) as e:
            if strict:
                if isinstance(e, ScheduleValidationError):
                    raise
                raise ScheduleValidationError(f"Invalid recurrence rule: {e}") from None
            logger.warning(
                "Ignoring malformed recurrence rule on schedule item %s: %s",
                data.get("id"),
                e,
            )
            rule = None
        if rule is not None and not data.get("is_recurring") and "is_recurring" not in data:
            is_recurring = True
        if not is_recurring:
            rule = None

        item_date = data.get("date")
        if isinstance(item_date, (str, datetime)):
            try:
                item_date = parse_date(item_date)
            except ValueError as e:
                raise ScheduleValidationError(str(e)) from None

        return cls(
            id=data.get("id"),
            schedule_id=data.get("schedule_id"),
            type=ItemType(data.get("type") or "workout"),
            title=data.get("title") or "",
            description=data.get("description") or "",
            day=data.get("day"),
            occurrence_date=item_date,
            start_time=data.get("start_time") or "",
            end_time=data.get("end_time") or "",
            category=data.get("category"),
            calories=data.get("calories"),
            difficulty=data.get("difficulty"),
            duration=data.get("duration"),
            is_from_generator=bool(data.get("is_from_generator", False)),
            generator_data=data.get("generator_data"),
            is_recurring=is_recurring,
            recurrence_rule=rule,
            is_virtual=bool(data.get("is_virtual", False)),
            origin_id=data.get("origin_id"),
        )


def _rule_from_fields(data: dict) -> RecurrenceRule | None:
    """Resolve the recurrence rule from nested or flat item fields."""
    raw_rule = data.get("recurrence_rule")
    has_flat = any(
        data.get(key) is not None
        for key in ("repeat_pattern", "repeat_interval", "repeat_ends_on", "repeat_days_of_week")
    )

    if raw_rule:
        rule = raw_rule if isinstance(raw_rule, RecurrenceRule) else RecurrenceRule.from_dict(raw_rule)
        if has_flat:
            _check_flat_fields(rule, data)
        return rule

    if has_flat or data.get("is_recurring"):
        return RecurrenceRule(
            frequency=RepeatPattern(data.get("repeat_pattern") or "weekly"),
            interval=data.get("repeat_interval") or 1,
            ends_on=parse_optional_date(data.get("repeat_ends_on")),
            days_of_week=list(data.get("repeat_days_of_week") or []),
        )
    return None


def _check_flat_fields(rule: RecurrenceRule, data: dict) -> None:
    """Reject flat repeat fields that contradict the nested rule."""
    mismatches = []
    if data.get("repeat_interval") is not None and data["repeat_interval"] != rule.interval:
        mismatches.append("repeat_interval")
    if (
        data.get("repeat_days_of_week") is not None
        and sorted(set(data["repeat_days_of_week"])) != sorted(set(rule.days_of_week))
    ):
        mismatches.append("repeat_days_of_week")
    if (
        data.get("repeat_pattern") is not None
        and RepeatPattern(data["repeat_pattern"]) != rule.frequency
    ):
        mismatches.append("repeat_pattern")
    if (
        data.get("repeat_ends_on") is not None
        and parse_optional_date(data["repeat_ends_on"]) != rule.ends_on
    ):
        mismatches.append("repeat_ends_on")
    if mismatches:
        raise ScheduleValidationError(
            "Recurrence rule disagrees with " + ", ".join(mismatches)
        )
