"""Activating weekly templates onto date ranges."""

import logging
from datetime import date
from pathlib import Path

from ..db.repositories import ActiveScheduleRepository, WeeklyTemplateRepository
from ..errors import NotFoundError, ScheduleValidationError
from ..models.schedule import ActiveSchedule
from ..utils.dates import parse_optional_date

logger = logging.getLogger(__name__)

UNSET = object()


def _as_date(value, label: str) -> date | None:
    try:
        return parse_optional_date(value)
    except ValueError as e:
        raise ScheduleValidationError(f"Invalid {label}: {e}") from None


class ActiveScheduleService:
    """Create, change and remove active schedules."""

    def __init__(self, db_path: Path | None = None):
        self.schedules = ActiveScheduleRepository(db_path)
        self.weekly = WeeklyTemplateRepository(db_path)

    async def activate(
        self,
        user_id: str,
        weekly_template_id: int,
        start_date: date | str,
        end_date: date | str | None = None,
        name: str | None = None,
    ) -> ActiveSchedule:
        """Bind a weekly template to a date range.

        The range is checked before anything is written. The schedule's
        name defaults to the weekly template's name.

        Raises:
            ScheduleValidationError: If a date is missing or end precedes start
            NotFoundError: If the weekly template is not the user's
        """
        start = _as_date(start_date, "start date")
        if start is None:
            raise ScheduleValidationError("Start date is required")
        schedule = ActiveSchedule(
            user_id=user_id,
            weekly_template_id=weekly_template_id,
            start_date=start,
            end_date=_as_date(end_date, "end date"),
            name=name,
        )
        schedule.validate()

        template = await self.weekly.get(weekly_template_id, user_id)
        if template is None:
            raise NotFoundError(f"Weekly template {weekly_template_id} not found")
        if not schedule.name:
            schedule.name = template.name

        schedule.id = await self.schedules.create(schedule)
        schedule.weekly_template = template
        logger.info(
            "Activated weekly template %s as schedule %s (%s to %s) for user %s",
            weekly_template_id,
            schedule.id,
            schedule.start_date,
            schedule.end_date or "open",
            user_id,
        )
        return schedule

    async def get(self, user_id: str, schedule_id: int) -> ActiveSchedule:
        """Get a schedule with its weekly template.

        Raises:
            NotFoundError: If the schedule is not the user's
        """
        schedule = await self.schedules.get(schedule_id, user_id)
        if schedule is None:
            raise NotFoundError(f"Active schedule {schedule_id} not found")
        schedule.weekly_template = await self.weekly.get(schedule.weekly_template_id, user_id)
        return schedule

    async def list_schedules(self, user_id: str, active_only: bool = False) -> list[ActiveSchedule]:
        """List a user's schedules with their weekly templates."""
        schedules = await self.schedules.list_for_user(user_id, active_only=active_only)
        weekly = await self.weekly.get_many(sorted({s.weekly_template_id for s in schedules}))
        for schedule in schedules:
            schedule.weekly_template = weekly.get(schedule.weekly_template_id)
        return schedules

    async def update(
        self,
        user_id: str,
        schedule_id: int,
        name=UNSET,
        start_date=UNSET,
        end_date=UNSET,
        is_active=UNSET,
    ) -> ActiveSchedule:
        """Change a schedule's name, range or active flag.

        Only the arguments that are passed are changed, so ``end_date=None``
        makes the schedule open-ended.

        Raises:
            ScheduleValidationError: If the resulting range is invalid
            NotFoundError: If the schedule is not the user's
        """
        schedule = await self.get(user_id, schedule_id)
        if name is not UNSET:
            schedule.name = name or schedule.name
        if start_date is not UNSET:
            schedule.start_date = _as_date(start_date, "start date") or schedule.start_date
        if end_date is not UNSET:
            schedule.end_date = _as_date(end_date, "end date")
        if is_active is not UNSET:
            schedule.is_active = bool(is_active)
        schedule.validate()

        await self.schedules.update(schedule)
        logger.info("Updated active schedule %s for user %s", schedule_id, user_id)
        return schedule

    async def set_active(self, user_id: str, schedule_id: int, is_active: bool) -> ActiveSchedule:
        """Pause or resume a schedule."""
        return await self.update(user_id, schedule_id, is_active=is_active)

    async def delete(self, user_id: str, schedule_id: int) -> None:
        """Delete a schedule. Its weekly template is kept.

        Raises:
            NotFoundError: If the schedule is not the user's
        """
        schedule = await self.schedules.get(schedule_id, user_id)
        if schedule is None:
            raise NotFoundError(f"Active schedule {schedule_id} not found")
        await self.schedules.delete(schedule_id, user_id)
        logger.info("Deleted active schedule %s for user %s", schedule_id, user_id)
