"""Date and time helpers shared by the schedule layers.

Day-of-week numbering follows the calendar convention used throughout
fitcal: 0 = Sunday, 1 = Monday, ... 6 = Saturday. Weeks start on Sunday.
"""

import re
from datetime import date, datetime, timedelta

TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")

WEEKDAY_LABELS = [
    "Sunday",
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
]


def parse_date(value: str | date | datetime) -> date:
    """Parse a YYYY-MM-DD string (or date/datetime) into a date.

    Raises:
        ValueError: If the value is not a valid calendar date
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not re.match(r"^\d{4}-\d{2}-\d{2}$", value):
        raise ValueError(f"Invalid date {value!r}. Use YYYY-MM-DD")
    return date.fromisoformat(value)


def parse_optional_date(value: str | date | None) -> date | None:
    """Parse a date that may be missing."""
    if value is None or value == "":
        return None
    return parse_date(value)


def format_date(value: date | None) -> str | None:
    """Format a date as YYYY-MM-DD."""
    return value.isoformat() if value else None


def is_valid_time(value: str | None) -> bool:
    """Check that a value is an HH:MM 24-hour time."""
    return isinstance(value, str) and TIME_PATTERN.match(value) is not None


def day_of_week(value: date) -> int:
    """Get the Sunday-based day of week (0 = Sunday)."""
    return (value.weekday() + 1) % 7


def week_start_for(value: date) -> date:
    """Get the Sunday on or before the given date."""
    return value - timedelta(days=day_of_week(value))


def date_range(start: date, end: date):
    """Yield every date from start to end inclusive."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def add_minutes(start_time: str, minutes: int) -> str:
    """Add minutes to an HH:MM time, wrapping around midnight."""
    hour, minute = (int(part) for part in start_time.split(":"))
    total = (hour * 60 + minute + minutes) % (24 * 60)
    return f"{total // 60:02d}:{total % 60:02d}"


def normalize_time(value: str | None, default: str) -> str:
    """Clamp a loosely formatted H:MM time into HH:MM, or use the default."""
    if not value or not isinstance(value, str):
        return default
    parts = value.split(":")
    if len(parts) != 2:
        return default
    try:
        hour = min(max(int(parts[0]), 0), 23)
        minute = min(max(int(parts[1]), 0), 59)
    except ValueError:
        return default
    return f"{hour:02d}:{minute:02d}"
