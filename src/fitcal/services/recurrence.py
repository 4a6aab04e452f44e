"""Expansion of recurring schedule items into concrete occurrence dates.

Only origin items are stored. Everything here is a pure function of the
origin item, its suppressed dates and the query window, so virtual
occurrences are rebuilt on every read and can never drift from storage.
"""

import logging
from datetime import date, datetime, time
from typing import Iterable

from dateutil.rrule import DAILY, FR, MO, SA, SU, TH, TU, WE, WEEKLY, YEARLY, rrule

from ..errors import ScheduleValidationError
from ..models.items import RecurrenceRule, RepeatPattern, ScheduleItem
from ..utils.dates import day_of_week, week_start_for

logger = logging.getLogger(__name__)

# Indexed by Sunday-based day of week
RRULE_WEEKDAYS = [SU, MO, TU, WE, TH, FR, SA]

RRULE_FREQUENCIES = {
    RepeatPattern.DAILY: DAILY,
    RepeatPattern.WEEKLY: WEEKLY,
    RepeatPattern.YEARLY: YEARLY,
}


def _midnight(value: date) -> datetime:
    return datetime.combine(value, time.min)


def _build_rrule(rule: RecurrenceRule, origin_date: date, until: date) -> rrule:
    """Translate a rule into a dateutil rrule anchored on the origin."""
    if rule.frequency == RepeatPattern.WEEKLY:
        days = rule.effective_days(day_of_week(origin_date))
        # Interval counting starts from the Sunday of the origin's week
        return rrule(
            WEEKLY,
            interval=rule.interval,
            wkst=SU,
            byweekday=[RRULE_WEEKDAYS[d] for d in days],
            dtstart=_midnight(week_start_for(origin_date)),
            until=_midnight(until),
        )
    return rrule(
        RRULE_FREQUENCIES[rule.frequency],
        interval=rule.interval,
        dtstart=_midnight(origin_date),
        until=_midnight(until),
    )


def expand_recurrence(
    rule: RecurrenceRule | None,
    origin_date: date,
    start: date,
    end: date,
    exceptions: Iterable[date] = (),
) -> list[date]:
    """List the dates a rule fires on within [start, end].

    Dates are ascending and unique. A date is emitted only when it is on
    or after ``origin_date``, on or before the rule's ``ends_on`` and not
    one of ``exceptions``.

    A missing or malformed rule never raises. It degrades to the origin
    date alone.

    Args:
        rule: The recurrence rule, or None for a one-off item
        origin_date: Date of the persisted origin item
        start: First date of the window (inclusive)
        end: Last date of the window (inclusive)
        exceptions: Suppressed occurrence dates

    Returns:
        Occurrence dates inside the window
    """
    suppressed = set(exceptions)

    def single() -> list[date]:
        if start <= origin_date <= end and origin_date not in suppressed:
            return [origin_date]
        return []

    if rule is None:
        return single()

    try:
        rule.validate(fallback_day=day_of_week(origin_date))
    except ScheduleValidationError as e:
        logger.warning(
            "Malformed recurrence rule for item dated %s, using a single occurrence: %s",
            origin_date,
            e.message,
        )
        return single()

    lower = max(start, origin_date)
    upper = end if rule.ends_on is None else min(end, rule.ends_on)
    if lower > upper:
        return []

    try:
        fired = _build_rrule(rule, origin_date, upper).between(
            _midnight(lower), _midnight(upper), inc=True
        )
    except (ValueError, TypeError, KeyError) as e:
        logger.warning(
            "Could not expand recurrence rule for item dated %s, using a single occurrence: %s",
            origin_date,
            e,
        )
        return single()

    dates = sorted({occurrence.date() for occurrence in fired})
    return [d for d in dates if d not in suppressed]


def expand_item(
    item: ScheduleItem, start: date, end: date, exceptions: Iterable[date] = ()
) -> list[ScheduleItem]:
    """Expand one persisted item into the entries it contributes to a window.

    The entry on the origin date is the origin item itself. Every other
    date becomes a virtual occurrence pointing back at the origin.
    """
    if item.occurrence_date is None:
        return []

    rule = item.recurrence_rule if item.is_recurring else None
    entries = []
    for on in expand_recurrence(rule, item.occurrence_date, start, end, exceptions):
        if on == item.occurrence_date:
            entries.append(item)
        else:
            entries.append(item.occurrence(on))
    return entries


def expand_items(
    items: Iterable[ScheduleItem],
    start: date,
    end: date,
    exceptions: dict[int, set[date]] | None = None,
) -> list[ScheduleItem]:
    """Expand many items over a window, ordered by date then start time."""
    exceptions = exceptions or {}
    entries = []
    for item in items:
        entries.extend(expand_item(item, start, end, exceptions.get(item.id, ())))
    entries.sort(key=lambda e: (e.occurrence_date, e.start_time, e.origin_id or e.id or 0))
    return entries


def is_occurrence(item: ScheduleItem, on: date) -> bool:
    """Whether a series fires on a date, ignoring suppressed dates."""
    if item.occurrence_date is None:
        return False
    rule = item.recurrence_rule if item.is_recurring else None
    return bool(expand_recurrence(rule, item.occurrence_date, on, on))
