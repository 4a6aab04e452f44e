"""Tests for recurrence expansion."""

from dataclasses import replace
from datetime import date, timedelta

from fitcal.models.items import RecurrenceRule, RepeatPattern
from fitcal.services.recurrence import expand_item, expand_items, expand_recurrence, is_occurrence

MONDAY = date(2024, 1, 1)


def weekly(days=None, interval=1, ends_on=None) -> RecurrenceRule:
    return RecurrenceRule(
        frequency=RepeatPattern.WEEKLY,
        interval=interval,
        ends_on=ends_on,
        days_of_week=days or [],
    )


class TestWeeklyExpansion:
    """Tests for weekly rules."""

    def test_days_of_week_over_four_weeks(self):
        """Mon/Wed/Fri for four weeks gives twelve dates."""
        dates = expand_recurrence(weekly([1, 3, 5]), MONDAY, MONDAY, date(2024, 1, 27))
        assert len(dates) == 12
        assert dates[:3] == [date(2024, 1, 1), date(2024, 1, 3), date(2024, 1, 5)]
        assert all(d.weekday() in (0, 2, 4) for d in dates)

    def test_interval_skips_weeks(self):
        """Every second week over eight weeks fires in four of them."""
        end = MONDAY + timedelta(weeks=8) - timedelta(days=1)
        dates = expand_recurrence(weekly([1, 3, 5], interval=2), MONDAY, MONDAY, end)
        assert len(dates) == 12
        assert dates[0] == MONDAY
        weeks = sorted({(d - date(2023, 12, 31)).days // 7 for d in dates})
        assert weeks == [0, 2, 4, 6]

    def test_interval_counts_from_origin_week(self):
        """A window starting mid-series keeps the origin's week parity."""
        dates = expand_recurrence(
            weekly([1], interval=2), MONDAY, date(2024, 1, 7), date(2024, 1, 31)
        )
        assert dates == [date(2024, 1, 15), date(2024, 1, 29)]

    def test_ends_on_is_inclusive(self):
        """The end date itself fires, nothing after it does."""
        dates = expand_recurrence(
            weekly([1, 3, 5], ends_on=date(2024, 1, 10)), MONDAY, MONDAY, date(2024, 1, 31)
        )
        assert dates == [
            date(2024, 1, 1),
            date(2024, 1, 3),
            date(2024, 1, 5),
            date(2024, 1, 8),
            date(2024, 1, 10),
        ]

    def test_falls_back_to_origin_day(self):
        """Without days of week the origin's day is used."""
        tuesday = date(2024, 1, 2)
        dates = expand_recurrence(weekly(), tuesday, MONDAY, date(2024, 1, 21))
        assert dates == [date(2024, 1, 2), date(2024, 1, 9), date(2024, 1, 16)]

    def test_nothing_before_origin(self):
        """Days earlier in the origin's week are not emitted."""
        wednesday = date(2024, 1, 3)
        dates = expand_recurrence(weekly([1, 3]), wednesday, MONDAY, date(2024, 1, 9))
        assert dates == [date(2024, 1, 3), date(2024, 1, 8)]

    def test_exceptions_suppressed(self):
        """Suppressed dates are left out."""
        dates = expand_recurrence(
            weekly([1]), MONDAY, MONDAY, date(2024, 1, 21), exceptions=[date(2024, 1, 8)]
        )
        assert dates == [date(2024, 1, 1), date(2024, 1, 15)]

    def test_window_after_end(self):
        """A window entirely after the series ends is empty."""
        rule = weekly([1], ends_on=date(2024, 1, 15))
        assert expand_recurrence(rule, MONDAY, date(2024, 2, 1), date(2024, 2, 29)) == []


class TestOtherFrequencies:
    """Tests for daily and yearly rules."""

    def test_daily_interval(self):
        """Every other day."""
        rule = RecurrenceRule(frequency=RepeatPattern.DAILY, interval=2)
        dates = expand_recurrence(rule, MONDAY, MONDAY, date(2024, 1, 7))
        assert dates == [date(2024, 1, 1), date(2024, 1, 3), date(2024, 1, 5), date(2024, 1, 7)]

    def test_yearly(self):
        """Same date every year."""
        rule = RecurrenceRule(frequency=RepeatPattern.YEARLY)
        dates = expand_recurrence(rule, date(2023, 3, 15), date(2023, 1, 1), date(2025, 12, 31))
        assert dates == [date(2023, 3, 15), date(2024, 3, 15), date(2025, 3, 15)]


class TestDegradedRules:
    """Tests for missing and malformed rules."""

    def test_no_rule_is_single_occurrence(self):
        """One-off items occur only on their own date."""
        assert expand_recurrence(None, MONDAY, MONDAY, date(2024, 1, 31)) == [MONDAY]
        assert expand_recurrence(None, MONDAY, date(2024, 1, 2), date(2024, 1, 31)) == []

    def test_bad_interval_degrades(self):
        """A zero interval yields just the origin instead of raising."""
        rule = RecurrenceRule(frequency=RepeatPattern.DAILY, interval=0)
        assert expand_recurrence(rule, MONDAY, MONDAY, date(2024, 1, 31)) == [MONDAY]

    def test_bad_day_degrades(self):
        """An out of range weekday yields just the origin."""
        assert expand_recurrence(weekly([9]), MONDAY, MONDAY, date(2024, 1, 31)) == [MONDAY]


class TestExpandItems:
    """Tests for item level expansion."""

    def test_origin_is_concrete(self, weekly_item):
        """The origin date returns the stored item, later dates are virtual."""
        entries = expand_item(weekly_item, date(2024, 1, 1), date(2024, 1, 14))
        assert [e.occurrence_date for e in entries] == [date(2024, 1, 2), date(2024, 1, 9)]
        assert entries[0] is weekly_item
        assert entries[1].is_virtual
        assert entries[1].origin_id == weekly_item.id

    def test_sorted_by_date_and_time(self, weekly_item):
        """Entries from several items are ordered by date then start time."""
        early = replace(weekly_item, id=2, title="Yoga", start_time="05:00", end_time="05:30")
        entries = expand_items(
            [weekly_item, early], date(2024, 1, 1), date(2024, 1, 10), {1: {date(2024, 1, 9)}}
        )
        assert [(e.occurrence_date, e.title) for e in entries] == [
            (date(2024, 1, 2), "Yoga"),
            (date(2024, 1, 2), "Morning Run"),
            (date(2024, 1, 9), "Yoga"),
        ]

    def test_is_occurrence(self, weekly_item):
        """Only dates the rule fires on are occurrences."""
        assert is_occurrence(weekly_item, date(2024, 1, 16))
        assert not is_occurrence(weekly_item, date(2024, 1, 17))
        assert not is_occurrence(weekly_item, date(2023, 12, 26))
