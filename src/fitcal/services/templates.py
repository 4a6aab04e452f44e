"""Daily, weekly and schedule template management."""

import logging
import random
from datetime import date
from pathlib import Path

from ..config import get_settings
from ..db.repositories import (
    ActiveScheduleRepository,
    DailyTemplateRepository,
    ScheduleRepository,
    ScheduleTemplateRepository,
    WeeklyTemplateRepository,
    WorkoutTemplateRepository,
)
from ..errors import NotFoundError, ScheduleValidationError
from ..models.generation import GenerationCriteria
from ..models.schedule import ScheduleDocument, ScheduleTemplate
from ..models.templates import DailyTemplate, WeeklyTemplate
from ..utils.dates import week_start_for
from .generator import describe_pool, generate_templates
from .series import ScheduleItemService

logger = logging.getLogger(__name__)

DAILY_FIELDS = (
    "name",
    "workout_template_id",
    "cardio_type",
    "start_time",
    "duration",
    "color",
    "is_rest_day",
    "notes",
)


class DailyTemplateService:
    """CRUD for daily templates."""

    def __init__(self, db_path: Path | None = None):
        self.settings = get_settings()
        self.repo = DailyTemplateRepository(db_path)
        self.workouts = WorkoutTemplateRepository(db_path)

    async def create(self, user_id: str, data: dict) -> DailyTemplate:
        """Create a daily template.

        Raises:
            ScheduleValidationError: If the template is invalid
            NotFoundError: If the referenced workout template does not exist
        """
        fields = {k: data[k] for k in DAILY_FIELDS if data.get(k) is not None}
        fields.setdefault("start_time", self.settings.default_start_time)
        fields.setdefault("duration", self.settings.default_duration)
        fields.setdefault("color", self.settings.default_color)
        template = DailyTemplate.from_dict({**fields, "user_id": user_id, "name": data.get("name")})
        await self._check(template)

        template.id = await self.repo.create(template)
        logger.info("Created daily template %s for user %s", template.id, user_id)
        return template

    async def get(self, user_id: str, template_id: int) -> DailyTemplate:
        template = await self.repo.get(template_id, user_id)
        if template is None:
            raise NotFoundError(f"Daily template {template_id} not found")
        return template

    async def list_templates(self, user_id: str) -> list[DailyTemplate]:
        return await self.repo.list_for_user(user_id)

    async def update(self, user_id: str, template_id: int, changes: dict) -> DailyTemplate:
        """Apply field changes to a daily template.

        Raises:
            ScheduleValidationError: If the result is invalid
            NotFoundError: If the template is not the user's
        """
        template = await self.get(user_id, template_id)
        data = template.to_dict()
        data.update({k: changes[k] for k in DAILY_FIELDS if k in changes})
        updated = DailyTemplate.from_dict(data, id=template.id, created_at=template.created_at)
        await self._check(updated)

        await self.repo.update(updated)
        logger.info("Updated daily template %s for user %s", template_id, user_id)
        return updated

    async def delete(self, user_id: str, template_id: int) -> int:
        """Delete a daily template. Weekly slots that used it become rest days.

        Returns:
            Number of weekly slots cleared
        """
        await self.get(user_id, template_id)
        cleared = await self.repo.delete(template_id, user_id)
        logger.info(
            "Deleted daily template %s for user %s (%d weekly slots cleared)",
            template_id,
            user_id,
            cleared,
        )
        return cleared

    async def _check(self, template: DailyTemplate) -> None:
        # Rest days never carry an activity
        if template.is_rest_day:
            template.workout_template_id = None
            template.cardio_type = None
        template.validate()
        if template.workout_template_id is not None:
            if await self.workouts.get(template.workout_template_id) is None:
                raise NotFoundError(
                    f"Workout template {template.workout_template_id} not found"
                )


class WeeklyTemplateService:
    """CRUD for weekly templates."""

    def __init__(self, db_path: Path | None = None):
        self.repo = WeeklyTemplateRepository(db_path)
        self.daily = DailyTemplateRepository(db_path)
        self.active = ActiveScheduleRepository(db_path)

    async def create(self, user_id: str, data: dict) -> WeeklyTemplate:
        """Create a weekly template from seven day slots.

        Raises:
            ScheduleValidationError: If the slots are not exactly days 0-6
            NotFoundError: If a slot references another user's or a missing daily template
        """
        template = WeeklyTemplate.from_dict({**data, "user_id": user_id})
        await self._check(template)

        template_id = await self.repo.create(template)
        logger.info("Created weekly template %s for user %s", template_id, user_id)
        return await self.get(user_id, template_id)

    async def get(self, user_id: str, template_id: int) -> WeeklyTemplate:
        template = await self.repo.get(template_id, user_id)
        if template is None:
            raise NotFoundError(f"Weekly template {template_id} not found")
        return template

    async def list_templates(self, user_id: str) -> list[WeeklyTemplate]:
        return await self.repo.list_for_user(user_id)

    async def update(self, user_id: str, template_id: int, changes: dict) -> WeeklyTemplate:
        """Update name, description, visibility and (optionally) all seven slots."""
        current = await self.get(user_id, template_id)
        data = current.to_dict()
        for key in ("name", "description", "is_public", "days"):
            if key in changes and changes[key] is not None:
                data[key] = changes[key]
        template = WeeklyTemplate.from_dict(data, id=template_id)
        await self._check(template)

        await self.repo.update(template)
        logger.info("Updated weekly template %s for user %s", template_id, user_id)
        return await self.get(user_id, template_id)

    async def delete(self, user_id: str, template_id: int) -> None:
        """Delete a weekly template that no active schedule uses.

        Raises:
            ScheduleValidationError: If active schedules still use the template
            NotFoundError: If the template is not the user's
        """
        await self.get(user_id, template_id)
        in_use = await self.active.list_active_using(template_id)
        if in_use:
            names = ", ".join(s.name or f"#{s.id}" for s in in_use)
            raise ScheduleValidationError(
                f"Weekly template is used by active schedules: {names}",
                details={"active_schedule_ids": [s.id for s in in_use]},
            )
        await self.repo.delete(template_id, user_id)
        logger.info("Deleted weekly template %s for user %s", template_id, user_id)

    async def _check(self, template: WeeklyTemplate) -> None:
        template.validate()
        wanted = set(template.daily_template_ids)
        found = await self.daily.get_many(sorted(wanted), template.user_id)
        missing = sorted(wanted - set(found))
        if missing:
            raise NotFoundError(
                "Daily templates not found: " + ", ".join(str(m) for m in missing)
            )


class ScheduleTemplateService:
    """Saved schedule templates: CRUD, apply to a week and generation."""

    def __init__(self, db_path: Path | None = None):
        self.settings = get_settings()
        self.repo = ScheduleTemplateRepository(db_path)
        self.schedule = ScheduleRepository(db_path)
        self.workouts = WorkoutTemplateRepository(db_path)
        self.items = ScheduleItemService(db_path)

    async def create(self, user_id: str, data: dict) -> ScheduleTemplate:
        """Save a template owned by the user."""
        template = ScheduleTemplate.from_dict({**data, "user_id": user_id})
        template.is_default = False
        template.usage_count = 0
        template.validate()

        template.id = await self.repo.create(template)
        logger.info("Created schedule template %s for user %s", template.id, user_id)
        return template

    async def get(self, user_id: str, template_id: int) -> ScheduleTemplate:
        template = await self.repo.get(template_id, user_id)
        if template is None:
            raise NotFoundError(f"Schedule template {template_id} not found")
        return template

    async def list_templates(self, user_id: str) -> list[ScheduleTemplate]:
        return await self.repo.list_for_user(user_id)

    async def update(self, user_id: str, template_id: int, changes: dict) -> ScheduleTemplate:
        """Change one of the user's own templates."""
        current = await self._owned(user_id, template_id)
        data = current.to_dict()
        for key in ("name", "description", "items", "is_public", "metadata"):
            if key in changes and changes[key] is not None:
                data[key] = changes[key]
        template = ScheduleTemplate.from_dict(data, id=template_id)
        template.validate()

        await self.repo.update(template)
        logger.info("Updated schedule template %s for user %s", template_id, user_id)
        return await self.get(user_id, template_id)

    async def delete(self, user_id: str, template_id: int) -> None:
        await self._owned(user_id, template_id)
        await self.repo.delete(template_id, user_id)
        logger.info("Deleted schedule template %s for user %s", template_id, user_id)

    async def apply(
        self, user_id: str, template_id: int, week_start: date, replace: bool = False
    ) -> ScheduleDocument:
        """Copy a template's items into a week and count the use.

        Args:
            user_id: Owner of the week
            template_id: Template to apply
            week_start: Any date in the target week
            replace: Drop the week's existing items instead of keeping them
        """
        template = await self.get(user_id, template_id)
        payload = list(template.to_dict()["items"])
        if not replace:
            document = await self.schedule.get_document(user_id, week_start_for(week_start))
            if document is not None:
                payload = [i.to_dict() for i in document.items] + payload

        result = await self.items.save_week(user_id, week_start, payload)
        await self.repo.increment_usage(template_id)
        logger.info("Applied schedule template %s to week of %s", template_id, result.week_start)
        return result

    async def generate(
        self,
        user_id: str,
        criteria: GenerationCriteria,
        save: bool = False,
        rng: random.Random | None = None,
    ) -> dict:
        """Generate templates from the user's workout library.

        Returns:
            ``templates`` plus the categories, difficulties and equipment
            the library offers
        """
        if criteria.count > self.settings.max_generated_templates:
            criteria = criteria.model_copy(update={"count": self.settings.max_generated_templates})
        pool = await self.workouts.list_for_user(user_id)
        templates = generate_templates(criteria, pool, rng=rng)

        if save:
            for template in templates:
                template.user_id = user_id
                template.id = await self.repo.create(template)

        return {
            "templates": templates,
            "criteria": criteria,
            **describe_pool(pool),
        }

    async def recommended(
        self, user_id: str, count: int = 3, rng: random.Random | None = None
    ) -> list[ScheduleTemplate]:
        """Templates to suggest to a user, up to ``count`` of them.

        Default and public templates come first, most used first. Any
        remaining places are filled with unsaved templates generated from
        the user's workout library with default criteria.
        """
        shared = await self.repo.list_shared(count)
        missing = min(count - len(shared), self.settings.max_generated_templates)
        if missing <= 0:
            return shared

        pool = await self.workouts.list_for_user(user_id)
        generated = generate_templates(GenerationCriteria(count=missing), pool, rng=rng)
        for template in generated:
            template.metadata = {**template.metadata, "source": "recommended"}
        return shared + generated

    async def _owned(self, user_id: str, template_id: int) -> ScheduleTemplate:
        template = await self.get(user_id, template_id)
        if template.user_id != user_id:
            raise NotFoundError(f"Schedule template {template_id} not found")
        return template
