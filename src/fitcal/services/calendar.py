"""Calendar materialization of active schedules and schedule items."""

import logging
from datetime import date
from pathlib import Path

from ..config import get_settings
from ..db.repositories import (
    ActiveScheduleRepository,
    CompletedDayRepository,
    ScheduleRepository,
    WeeklyTemplateRepository,
    WorkoutSessionRepository,
    WorkoutTemplateRepository,
)
from ..errors import NotFoundError, ScheduleValidationError
from ..models.schedule import ActiveSchedule, CalendarView, CalendarWorkout, CompletedDay
from ..models.templates import DEFAULT_DURATION, DEFAULT_START_TIME
from ..models.workouts import WorkoutSession, WorkoutTemplate
from ..utils.dates import date_range, day_of_week, parse_date
from .recurrence import expand_items

logger = logging.getLogger(__name__)

DEFAULT_REST_COLOR = "#6b7280"


def validate_window(start: date, end: date, max_days: int | None = None) -> None:
    """Reject reversed or oversized date windows.

    Raises:
        ScheduleValidationError: If end precedes start or the window is too long
    """
    if end < start:
        raise ScheduleValidationError("End date must be after start date")
    if max_days is not None and (end - start).days > max_days:
        raise ScheduleValidationError(f"Date range cannot exceed {max_days} days")


def materialize_workouts(
    schedules: list[ActiveSchedule],
    start: date,
    end: date,
    workout_templates: dict[int, WorkoutTemplate] | None = None,
    sessions: list[WorkoutSession] | None = None,
    rest_color: str = DEFAULT_REST_COLOR,
    completed_days: dict[date, CompletedDay] | None = None,
) -> list[CalendarWorkout]:
    """Repeat each schedule's weekly pattern over the window.

    Schedules must have ``weekly_template`` resolved. Inactive schedules
    are skipped. Overlapping schedules each contribute their own rows for
    the same date.

    A workout row is completed when a logged session on its date matches
    its title, or when the user marked the whole date as done. Rest rows
    are never completed.

    Args:
        schedules: Active schedules with their weekly templates
        start: First date of the window
        end: Last date of the window
        workout_templates: Workout templates referenced by daily templates
        sessions: Logged sessions in the window, used for completion
        rest_color: Color for slots without a daily template
        completed_days: Dates the user marked as done, keyed by date

    Returns:
        Rows ordered by date, then schedule
    """
    workout_templates = workout_templates or {}
    completed_days = completed_days or {}
    completed_by_date: dict[date, list[WorkoutSession]] = {}
    for session in sessions or []:
        if session.is_completed:
            completed_by_date.setdefault(session.start_time.date(), []).append(session)

    rows = []
    for position, schedule in enumerate(schedules):
        if not schedule.is_active or schedule.weekly_template is None:
            continue
        window = schedule.overlap(start, end)
        if window is None:
            continue

        for day in date_range(*window):
            dow = day_of_week(day)
            slot = schedule.weekly_template.day(dow)
            if slot is None:
                continue

            daily = slot.daily_template
            workout = None
            if daily is not None and daily.workout_template_id is not None:
                workout = workout_templates.get(daily.workout_template_id)

            row = CalendarWorkout(
                date=day,
                day_of_week=dow,
                active_schedule_id=schedule.id,
                active_schedule_name=schedule.name,
                start_time=slot.override_time
                or (daily.start_time if daily else None)
                or DEFAULT_START_TIME,
                duration=(daily.duration if daily else None) or DEFAULT_DURATION,
                color=(daily.color if daily else None) or rest_color,
                is_rest_day=daily.is_rest_day if daily else True,
                daily_template_id=daily.id if daily else None,
                daily_template_name=daily.name if daily else None,
                workout_template_id=workout.id if workout else None,
                workout_template_name=workout.name if workout else None,
                workout_category=workout.category if workout else None,
                workout_difficulty=workout.difficulty if workout else None,
                cardio_type=daily.cardio_type if daily else None,
            )
            if not row.is_rest_day:
                marked = completed_days.get(day)
                if marked is not None:
                    row.is_completed = True
                    row.completion_status = marked.status
                    row.completion_notes = marked.notes
                else:
                    row.is_completed = any(
                        s.matches(row.title) for s in completed_by_date.get(day, [])
                    )
            rows.append((day, position, row))

    rows.sort(key=lambda r: (r[0], r[1]))
    return [row for _, _, row in rows]


class CalendarService:
    """Builds calendar views from stored schedules and items."""

    def __init__(self, db_path: Path | None = None):
        self.settings = get_settings()
        self.active = ActiveScheduleRepository(db_path)
        self.weekly = WeeklyTemplateRepository(db_path)
        self.workouts = WorkoutTemplateRepository(db_path)
        self.sessions = WorkoutSessionRepository(db_path)
        self.schedule = ScheduleRepository(db_path)
        self.completed = CompletedDayRepository(db_path)

    async def materialize_calendar(self, user_id: str, start: date, end: date) -> CalendarView:
        """Everything on a user's calendar between two dates (inclusive).

        Raises:
            ScheduleValidationError: If the window is reversed or too long
        """
        validate_window(start, end, self.settings.max_calendar_range_days)

        schedules = await self.active.list_overlapping(user_id, start, end)
        weekly = await self.weekly.get_many(
            sorted({s.weekly_template_id for s in schedules})
        )
        for schedule in schedules:
            schedule.weekly_template = weekly.get(schedule.weekly_template_id)
            if schedule.weekly_template is None:
                logger.warning(
                    "Active schedule %s references missing weekly template %s",
                    schedule.id,
                    schedule.weekly_template_id,
                )

        workout_ids = set()
        for template in weekly.values():
            for slot in template.days:
                if slot.daily_template and slot.daily_template.workout_template_id:
                    workout_ids.add(slot.daily_template.workout_template_id)
        workout_templates = await self.workouts.get_many(sorted(workout_ids))
        sessions = await self.sessions.list_between(user_id, start, end)
        completed_days = await self.completed.list_between(user_id, start, end)

        workouts = materialize_workouts(
            schedules,
            start,
            end,
            workout_templates=workout_templates,
            sessions=sessions,
            rest_color=self.settings.rest_color,
            completed_days=completed_days,
        )

        items = await self.schedule.list_items_for_window(user_id, start, end)
        exceptions = await self.schedule.list_exceptions(
            [i.id for i in items if i.is_recurring]
        )

        return CalendarView(
            start_date=start,
            end_date=end,
            workouts=workouts,
            items=expand_items(items, start, end, exceptions),
            active_schedule_count=len(schedules),
        )


class CompletedDayService:
    """Marking whole calendar dates as done."""

    def __init__(self, db_path: Path | None = None):
        self.repo = CompletedDayRepository(db_path)

    async def list_days(self, user_id: str) -> list[CompletedDay]:
        return await self.repo.list_for_user(user_id)

    async def mark(
        self, user_id: str, on, status: str | None = None, notes: str | None = None
    ) -> CompletedDay:
        """Mark a date as done, or update the record already there.

        Leaving ``notes`` out keeps the notes stored earlier.

        Raises:
            ScheduleValidationError: If the date is missing or malformed
        """
        day = CompletedDay(
            user_id=user_id,
            date=_required_date(on),
            status=(status or "").strip() or "completed",
            notes=notes,
        )
        record = await self.repo.upsert(day)
        logger.info("Marked %s as %s for user %s", record.date, record.status, user_id)
        return record

    async def unmark(self, user_id: str, on) -> None:
        """Remove the record for a date.

        Raises:
            ScheduleValidationError: If the date is missing or malformed
            NotFoundError: If the date was never marked
        """
        day = _required_date(on)
        if not await self.repo.delete(user_id, day):
            raise NotFoundError("Day not found")
        logger.info("Unmarked %s for user %s", day, user_id)


def _required_date(value) -> date:
    if value is None or value == "":
        raise ScheduleValidationError("Date is required")
    try:
        return parse_date(value)
    except ValueError as e:
        raise ScheduleValidationError(str(e)) from None
