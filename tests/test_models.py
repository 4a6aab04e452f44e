"""Tests for data models."""

from datetime import date

import pytest

from fitcal.errors import NotFoundError, ScheduleValidationError
from fitcal.models.generation import GenerationCriteria
from fitcal.models.items import OccurrenceRef, RecurrenceRule, RepeatPattern, ScheduleItem
from fitcal.models.schedule import ActiveSchedule, ScheduleTemplate
from fitcal.models.templates import DailyTemplate, WeeklyTemplate, WeeklyTemplateDay
from fitcal.models.workouts import SessionStatus, WorkoutSession

from .conftest import make_workout


class TestDailyTemplate:
    """Tests for DailyTemplate validation."""

    def test_workout_day_is_valid(self):
        """A day with exactly one activity passes."""
        DailyTemplate(user_id="u", name="Push", workout_template_id=3).validate()

    def test_needs_exactly_one_activity(self):
        """Non-rest days need a workout or a cardio activity, not both."""
        with pytest.raises(ScheduleValidationError):
            DailyTemplate(user_id="u", name="Nothing").validate()
        with pytest.raises(ScheduleValidationError):
            DailyTemplate(user_id="u", name="Both", workout_template_id=3, cardio_type="run").validate()

    def test_rest_day_has_no_activity(self):
        """Rest days cannot reference an activity."""
        DailyTemplate(user_id="u", name="Rest", is_rest_day=True).validate()
        with pytest.raises(ScheduleValidationError):
            DailyTemplate(user_id="u", name="Rest", is_rest_day=True, cardio_type="walk").validate()

    def test_rejects_bad_time_and_duration(self):
        """Start time must be HH:MM and duration positive."""
        with pytest.raises(ScheduleValidationError):
            DailyTemplate(user_id="u", name="x", cardio_type="run", start_time="7am").validate()
        with pytest.raises(ScheduleValidationError):
            DailyTemplate(user_id="u", name="x", cardio_type="run", duration=0).validate()


class TestWeeklyTemplate:
    """Tests for WeeklyTemplate validation."""

    def _days(self, count=7):
        return [WeeklyTemplateDay(day_of_week=d) for d in range(count)]

    def test_seven_distinct_days(self):
        """Exactly days 0-6 are accepted."""
        WeeklyTemplate(user_id="u", name="Week", days=self._days()).validate()

    def test_wrong_day_count(self):
        """Six slots is not a week."""
        with pytest.raises(ScheduleValidationError, match="7 items"):
            WeeklyTemplate(user_id="u", name="Week", days=self._days(6)).validate()

    def test_duplicate_day(self):
        """Seven slots with a repeated day are rejected."""
        days = self._days(6) + [WeeklyTemplateDay(day_of_week=3)]
        with pytest.raises(ScheduleValidationError):
            WeeklyTemplate(user_id="u", name="Week", days=days).validate()

    def test_override_time_checked(self):
        """Override times must be HH:MM."""
        days = self._days()
        days[1].override_time = "25:00"
        with pytest.raises(ScheduleValidationError, match="Monday"):
            WeeklyTemplate(user_id="u", name="Week", days=days).validate()

    def test_rest_slots(self):
        """Empty slots and rest templates both count as rest."""
        days = self._days()
        days[1] = WeeklyTemplateDay(
            day_of_week=1,
            daily_template_id=5,
            daily_template=DailyTemplate(user_id="u", name="Push", workout_template_id=1, id=5),
        )
        days[2] = WeeklyTemplateDay(
            day_of_week=2,
            daily_template_id=6,
            daily_template=DailyTemplate(user_id="u", name="Off", is_rest_day=True, id=6),
        )
        template = WeeklyTemplate(user_id="u", name="Week", days=days)
        assert template.training_days == 1
        assert template.daily_template_ids == [5, 6]


class TestActiveSchedule:
    """Tests for ActiveSchedule ranges."""

    def test_end_before_start_rejected(self):
        """An end date before the start date is invalid."""
        schedule = ActiveSchedule(
            user_id="u", weekly_template_id=1, start_date=date(2024, 2, 1), end_date=date(2024, 1, 1)
        )
        with pytest.raises(ScheduleValidationError):
            schedule.validate()

    def test_open_ended_overlap(self):
        """Without an end date the overlap runs to the end of the window."""
        schedule = ActiveSchedule(user_id="u", weekly_template_id=1, start_date=date(2024, 1, 1))
        assert schedule.overlap(date(2030, 6, 1), date(2030, 6, 7)) == (
            date(2030, 6, 1),
            date(2030, 6, 7),
        )
        assert schedule.overlap(date(2023, 12, 1), date(2023, 12, 31)) is None

    def test_overlap(self):
        """The overlap is the intersection of the range and the window."""
        schedule = ActiveSchedule(
            user_id="u", weekly_template_id=1, start_date=date(2024, 1, 10), end_date=date(2024, 1, 20)
        )
        assert schedule.overlap(date(2024, 1, 1), date(2024, 1, 15)) == (
            date(2024, 1, 10),
            date(2024, 1, 15),
        )
        assert schedule.overlap(date(2024, 2, 1), date(2024, 2, 5)) is None


class TestScheduleItem:
    """Tests for ScheduleItem parsing and validation."""

    def test_flat_fields_build_rule(self):
        """Flat repeat fields produce a recurrence rule."""
        item = ScheduleItem.from_dict(
            {
                "title": "Swim",
                "day": 1,
                "start_time": "07:00",
                "end_time": "08:00",
                "repeat_pattern": "weekly",
                "repeat_interval": 2,
                "repeat_days_of_week": [1, 4],
                "repeat_ends_on": "2024-03-01",
            }
        )
        assert item.is_recurring
        assert item.recurrence_rule.interval == 2
        assert item.recurrence_rule.days_of_week == [1, 4]
        assert item.repeat_ends_on == date(2024, 3, 1)

    def test_not_recurring_drops_rule(self):
        """An explicit is_recurring false wins over a rule."""
        item = ScheduleItem.from_dict(
            {
                "title": "Swim",
                "day": 1,
                "start_time": "07:00",
                "end_time": "08:00",
                "is_recurring": False,
                "recurrence_rule": {"frequency": "weekly"},
            }
        )
        assert not item.is_recurring
        assert item.recurrence_rule is None

    def test_conflicting_flat_fields_rejected(self):
        """Flat fields that disagree with the nested rule are an error."""
        with pytest.raises(ScheduleValidationError, match="repeat_interval"):
            ScheduleItem.from_dict(
                {
                    "title": "Swim",
                    "day": 1,
                    "start_time": "07:00",
                    "end_time": "08:00",
                    "recurrence_rule": {"frequency": "weekly", "interval": 1},
                    "repeat_interval": 3,
                }
            )

    def test_lenient_parse_drops_bad_rule(self):
        """Non-strict parsing keeps the item and discards a broken rule."""
        item = ScheduleItem.from_dict(
            {
                "title": "Swim",
                "day": 1,
                "start_time": "07:00",
                "end_time": "08:00",
                "is_recurring": True,
                "recurrence_rule": {"frequency": "fortnightly"},
            },
            strict=False,
        )
        assert item.recurrence_rule is None

    def test_bad_date_rejected(self):
        """An unparseable date is a validation error."""
        with pytest.raises(ScheduleValidationError):
            ScheduleItem.from_dict({"title": "Swim", "date": "next tuesday"})

    def test_validate_requires_title_and_times(self):
        """Title, day and HH:MM times are required."""
        with pytest.raises(ScheduleValidationError, match="Title"):
            ScheduleItem(title=" ", day=1, start_time="07:00", end_time="08:00").validate()
        with pytest.raises(ScheduleValidationError, match="day"):
            ScheduleItem(title="Swim", day=7, start_time="07:00", end_time="08:00").validate()
        with pytest.raises(ScheduleValidationError, match="end time"):
            ScheduleItem(title="Swim", day=1, start_time="07:00", end_time="8").validate()

    def test_rejects_bad_interval(self):
        """A non-positive interval cannot be expanded."""
        item = ScheduleItem(
            title="Swim",
            day=1,
            start_time="07:00",
            end_time="08:00",
            is_recurring=True,
            recurrence_rule=RecurrenceRule(frequency=RepeatPattern.DAILY, interval=0),
        )
        with pytest.raises(ScheduleValidationError, match="interval"):
            item.validate()

    def test_end_before_origin_rejected(self):
        """A series cannot end before it starts."""
        item = ScheduleItem(
            title="Swim",
            day=2,
            start_time="07:00",
            end_time="08:00",
            is_recurring=True,
            recurrence_rule=RecurrenceRule(ends_on=date(2024, 1, 1)),
            occurrence_date=date(2024, 1, 2),
        )
        with pytest.raises(ScheduleValidationError):
            item.validate()

    def test_occurrence_points_at_origin(self, weekly_item):
        """Virtual occurrences reference their origin and date."""
        occurrence = weekly_item.occurrence(date(2024, 1, 16))
        assert occurrence.is_virtual
        assert occurrence.id is None
        assert occurrence.ref == "1@2024-01-16"
        data = occurrence.to_dict()
        assert data["origin_id"] == 1
        assert data["date"] == "2024-01-16"
        assert data["repeat_pattern"] == "weekly"


class TestOccurrenceRef:
    """Tests for OccurrenceRef parsing."""

    def test_plain_id(self):
        """A bare id targets the origin."""
        ref = OccurrenceRef.parse("12")
        assert ref.origin_id == 12
        assert ref.occurrence_date is None
        assert str(ref) == "12"

    def test_with_date(self):
        """id@date targets one occurrence."""
        ref = OccurrenceRef.parse("12@2024-01-16")
        assert ref.occurrence_date == date(2024, 1, 16)
        assert str(ref) == "12@2024-01-16"

    @pytest.mark.parametrize("value", ["abc", "12@tomorrow", "@2024-01-16"])
    def test_malformed(self, value):
        """Malformed references are validation errors."""
        with pytest.raises(ScheduleValidationError):
            OccurrenceRef.parse(value)


class TestScheduleTemplate:
    """Tests for ScheduleTemplate."""

    def test_items_lose_placement(self):
        """Template items carry no id or concrete date."""
        template = ScheduleTemplate.from_dict(
            {
                "name": "Plan",
                "items": [
                    {"id": 4, "title": "Swim", "day": 3, "start_time": "07:00", "end_time": "08:00"},
                    {"id": 5, "title": "Lift", "day": 1, "start_time": "07:00", "end_time": "08:00"},
                ],
            }
        )
        data = template.to_dict()
        assert [i["title"] for i in data["items"]] == ["Lift", "Swim"]
        assert all("id" not in i and "date" not in i for i in data["items"])


class TestWorkouts:
    """Tests for workout templates and sessions."""

    def test_required_equipment_skips_bodyweight(self):
        """Bodyweight and none are not equipment."""
        workout = make_workout(1, "Mixed", equipment=["Dumbbell", "bodyweight", "none"])
        assert workout.required_equipment == {"dumbbell"}

    def test_cardio_heuristic(self):
        """Category, name, exercise and muscle keywords mark cardio."""
        assert make_workout(1, "Anything", category="HIIT").is_cardio
        assert make_workout(2, "Tempo Run", category="misc").is_cardio
        assert not make_workout(3, "Leg Day").is_cardio

    def test_session_match_is_fuzzy(self):
        """Either name containing the other counts as a match."""
        session = WorkoutSession(
            user_id="u", name="Push Day (heavy)", start_time=date(2024, 1, 8), status=SessionStatus.COMPLETED
        )
        assert session.matches("push day")
        assert not session.matches("Pull Day")
        assert not session.matches(None)


class TestGenerationCriteria:
    """Tests for GenerationCriteria normalization."""

    def test_cleans_inputs(self):
        """Days, tags, equipment and time are normalized."""
        criteria = GenerationCriteria(
            days_per_week=3,
            preferred_days=[1, 1, 9, 3],
            focus=[" strength ", ""],
            allowed_equipment=["Dumbbell", "dumbbell ", ""],
            difficulty=" Beginner ",
            preferred_start_time="6:5",
        )
        assert criteria.preferred_days == [1, 3]
        assert criteria.focus == ["strength"]
        assert criteria.allowed_equipment == ["dumbbell"]
        assert criteria.difficulty == "beginner"
        assert criteria.preferred_start_time == "06:05"

    def test_training_days_fill_from_defaults(self):
        """Preferred days come first, defaults fill the rest."""
        criteria = GenerationCriteria(days_per_week=4, preferred_days=[6])
        assert criteria.training_days == [6, 1, 3, 5]


def test_error_bodies():
    """Errors render their message and details."""
    error = NotFoundError("Weekly template 3 not found", details={"id": 3})
    assert error.status_code == 404
    assert error.to_dict() == {"error": "Weekly template 3 not found", "id": 3}
