"""Heuristic generation of schedule templates from workout templates.

Hard constraints are never relaxed: the number of training days, excluded
templates and the equipment restriction. Difficulty, focus, cardio quota
and back-to-back avoidance are preferences that give way when the pool
cannot satisfy them.
"""

import logging
import random
from datetime import datetime, timezone

from ..models.generation import DEFAULT_GENERATED_START_TIME, GenerationCriteria
from ..models.items import ItemType, RecurrenceRule, RepeatPattern, ScheduleItem
from ..models.schedule import ScheduleTemplate
from ..models.workouts import NO_EQUIPMENT, WorkoutTemplate
from ..utils.dates import WEEKDAY_LABELS, add_minutes

logger = logging.getLogger(__name__)

GENERATOR_SOURCE = "auto-generator"
DEFAULT_WORKOUT_DURATION = 60


def matches_equipment(template: WorkoutTemplate, allowed: set[str]) -> bool:
    """Whether every piece of equipment a template needs is allowed.

    No restriction means everything qualifies. Bodyweight work always does.
    """
    if not allowed:
        return True
    return all(name in allowed or name in NO_EQUIPMENT for name in template.required_equipment)


def matches_preferences(template: WorkoutTemplate, criteria: GenerationCriteria) -> bool:
    """Soft match on difficulty and focus category."""
    if criteria.difficulty and (template.difficulty or "").lower() != criteria.difficulty:
        return False
    if criteria.focus:
        category = (template.category or "").lower()
        return any(category == focus.lower() for focus in criteria.focus)
    return True


def describe_pool(templates: list[WorkoutTemplate]) -> dict:
    """Categories, difficulties and equipment available to the generator."""
    categories, difficulties, equipment = [], [], set()
    for template in templates:
        if template.category and template.category not in categories:
            categories.append(template.category)
        if template.difficulty and template.difficulty not in difficulties:
            difficulties.append(template.difficulty)
        equipment |= template.required_equipment
    return {
        "available_categories": categories,
        "available_difficulties": difficulties,
        "available_equipment": sorted(equipment),
    }


def _item_description(template: WorkoutTemplate) -> str:
    muscles = []
    for exercise in template.exercises:
        for muscle in exercise.primary_muscles:
            if muscle not in muscles:
                muscles.append(muscle)
    parts = [f"{len(template.exercises)} exercises"]
    if muscles:
        parts.append(", ".join(muscles[:3]))
    if template.difficulty:
        parts.append(template.difficulty)
    return " - ".join(parts)


def _generator_data(template: WorkoutTemplate) -> dict:
    return {
        "workout_template_id": template.id,
        "name": template.name,
        "duration": template.estimated_duration or DEFAULT_WORKOUT_DURATION,
        "difficulty": template.difficulty or "mixed",
        "exercises": [
            {
                "name": e.name,
                "sets": e.sets,
                "reps": e.reps,
                "rest": f"{e.rest_seconds}s",
                "target_muscles": e.muscles,
                "equipment": e.equipment,
            }
            for e in template.exercises
        ],
    }


def build_item(template: WorkoutTemplate, day: int, criteria: GenerationCriteria) -> ScheduleItem:
    """A weekly recurring item running a workout template on one day."""
    start_time = criteria.preferred_start_time or DEFAULT_GENERATED_START_TIME
    duration = template.estimated_duration or DEFAULT_WORKOUT_DURATION
    return ScheduleItem(
        type=ItemType.WORKOUT,
        title=template.name,
        description=template.description or _item_description(template),
        day=day,
        start_time=start_time,
        end_time=add_minutes(start_time, duration),
        category=template.category,
        difficulty=template.difficulty,
        duration=duration,
        is_from_generator=True,
        generator_data=_generator_data(template),
        is_recurring=True,
        recurrence_rule=RecurrenceRule(
            frequency=RepeatPattern.WEEKLY,
            interval=criteria.repeat_interval_weeks,
            days_of_week=[day],
            meta={"source": GENERATOR_SOURCE},
        ),
    )


def _template_name(criteria: GenerationCriteria, iteration: int, categories: list[str]) -> str:
    difficulty = (criteria.difficulty or "balanced").capitalize()
    focus = " / ".join(categories) if categories else "mixed focus"
    return f"{difficulty} {criteria.days_per_week}-Day {focus.title()} Plan #{iteration + 1}"


def _template_description(criteria: GenerationCriteria, days: list[int], categories: list[str]) -> str:
    day_names = ", ".join(WEEKDAY_LABELS[d] for d in days)
    focus = ", ".join(categories) if categories else "mixed focus"
    if criteria.repeat_interval_weeks > 1:
        cadence = f"Repeats every {criteria.repeat_interval_weeks} weeks"
    else:
        cadence = "Repeats weekly"
    return f"{len(days)} workouts on {day_names}. Focus: {focus}. {cadence}."


def _insights(workouts: list[WorkoutTemplate], days: list[int]) -> list[str]:
    pool = describe_pool(workouts)
    categories = pool["available_categories"]
    difficulties = pool["available_difficulties"]
    return [
        f"Focus areas: {', '.join(categories)}" if categories else "Balanced focus",
        f"Difficulty mix: {', '.join(difficulties)}" if difficulties else "Varied difficulty",
        "Training days: " + ", ".join(WEEKDAY_LABELS[d] for d in days),
    ]


class _Pool:
    """A shuffled draw pile that refills from a backup list when empty."""

    def __init__(self, primary: list[WorkoutTemplate], backup: list[WorkoutTemplate], rng: random.Random):
        self.backup = backup
        self.rng = rng
        self.pile = self._shuffled(primary)

    def _shuffled(self, templates: list[WorkoutTemplate]) -> list[WorkoutTemplate]:
        pile = list(templates)
        self.rng.shuffle(pile)
        return pile

    def take(self) -> WorkoutTemplate | None:
        if not self.pile:
            self.pile = self._shuffled(self.backup)
        return self.pile.pop(0) if self.pile else None

    def put_back(self, template: WorkoutTemplate) -> None:
        self.pile.append(template)
        self.rng.shuffle(self.pile)

    def discard(self, template: WorkoutTemplate) -> None:
        self.pile = [t for t in self.pile if t.id != template.id]


def generate_templates(
    criteria: GenerationCriteria,
    workout_templates: list[WorkoutTemplate],
    rng: random.Random | None = None,
) -> list[ScheduleTemplate]:
    """Build up to ``criteria.count`` schedule templates.

    Args:
        criteria: Validated generation criteria
        workout_templates: Candidate workouts
        rng: Random source, seeded in tests

    Returns:
        Generated templates (unsaved). Empty when no workout satisfies the
        hard constraints.
    """
    rng = rng or random.Random()
    allowed = set(criteria.allowed_equipment)
    excluded = set(criteria.excluded_template_ids)

    eligible = [
        t for t in workout_templates if t.id not in excluded and matches_equipment(t, allowed)
    ]
    if not eligible:
        logger.info("No workout templates satisfy the generation constraints")
        return []

    primary = [t for t in eligible if matches_preferences(t, criteria)] or eligible
    cardio_primary = [t for t in primary if t.is_cardio]
    cardio_backup = [t for t in eligible if t.is_cardio]

    days = criteria.training_days
    cardio_needed = 0
    if criteria.include_cardio:
        cardio_needed = min(len(days), max(1, round(criteria.days_per_week / 3)))

    generated_at = datetime.now(timezone.utc).isoformat()
    templates = []
    for iteration in range(criteria.count):
        pool = _Pool(primary, eligible, rng)
        cardio = _Pool(cardio_primary, cardio_backup, rng)
        assignments: list[tuple[int, WorkoutTemplate]] = []
        cardio_assigned = 0

        for day in days:
            workout = None
            if cardio_assigned < cardio_needed:
                workout = cardio.take()
                if workout is not None:
                    cardio_assigned += 1
                    pool.discard(workout)
            if workout is None:
                workout = pool.take()

            if (
                not criteria.allow_back_to_back
                and assignments
                and assignments[-1][1].id == workout.id
            ):
                alternative = pool.take()
                if alternative is not None and alternative.id != workout.id:
                    pool.put_back(workout)
                    workout = alternative

            assignments.append((day, workout))

        workouts = [w for _, w in assignments]
        assigned_days = [d for d, _ in assignments]
        categories = []
        for workout in workouts:
            if workout.category and workout.category not in categories:
                categories.append(workout.category)

        tags = [criteria.difficulty] if criteria.difficulty else []
        tags += [c for c in categories if c not in tags]
        if criteria.include_cardio and "cardio" not in tags:
            tags.append("cardio")

        templates.append(
            ScheduleTemplate(
                name=_template_name(criteria, iteration, categories),
                description=_template_description(criteria, assigned_days, categories),
                items=[build_item(w, d, criteria) for d, w in assignments],
                metadata={
                    "source": "generated",
                    "generated_at": generated_at,
                    "criteria": criteria.model_dump(),
                    "tags": tags,
                    "insights": _insights(workouts, assigned_days),
                    "allowed_equipment": sorted(allowed),
                },
            )
        )

    logger.info(
        "Generated %d schedule templates from %d eligible workouts", len(templates), len(eligible)
    )
    return templates
