"""Generate schedule templates command."""

import random

import click

from ..models.generation import DEFAULT_GENERATED_START_TIME, GenerationCriteria
from ..services.templates import ScheduleTemplateService
from ..utils.dates import WEEKDAY_LABELS
from .base import (
    async_command,
    echo_info,
    echo_success,
    echo_warning,
    ensure_initialized,
    user_option,
)


@click.command()
@click.option(
    "--days",
    "-d",
    type=click.IntRange(1, 7),
    default=3,
    help="Training days per week (1-7, default: 3)",
)
@click.option("--day", "preferred_days", type=click.IntRange(0, 6), multiple=True, help="Preferred day, 0=Sunday (repeatable)")
@click.option("--difficulty", default=None, help="Preferred difficulty, e.g. beginner")
@click.option("--focus", multiple=True, help="Preferred category, e.g. strength (repeatable)")
@click.option("--equipment", "-e", multiple=True, help="Equipment you have (repeatable)")
@click.option("--exclude", type=int, multiple=True, help="Workout template id to skip (repeatable)")
@click.option(
    "--time",
    "start_time",
    default=None,
    help=f"Start time, HH:MM (default: {DEFAULT_GENERATED_START_TIME})",
)
@click.option("--every", type=click.IntRange(1, 52), default=1, help="Repeat every N weeks")
@click.option("--cardio", is_flag=True, help="Reserve some days for cardio")
@click.option("--back-to-back", is_flag=True, help="Allow the same workout on consecutive days")
@click.option("--count", "-n", type=click.IntRange(1, 4), default=1, help="Number of alternatives")
@click.option("--seed", type=int, default=None, help="Random seed for repeatable output")
@click.option("--save", is_flag=True, help="Save the generated templates")
@user_option
@click.pass_context
@async_command
async def generate(
    ctx,
    days: int,
    preferred_days: tuple[int, ...],
    difficulty: str | None,
    focus: tuple[str, ...],
    equipment: tuple[str, ...],
    exclude: tuple[int, ...],
    start_time: str | None,
    every: int,
    cardio: bool,
    back_to_back: bool,
    count: int,
    seed: int | None,
    save: bool,
    user_id: str,
):
    """Generate weekly schedule templates from the workout library.

    Examples:

        # Three days with dumbbells only
        fitcal generate --days 3 -e dumbbell

        # Monday/Wednesday/Friday beginner plan with cardio, saved
        fitcal generate --day 1 --day 3 --day 5 --difficulty beginner --cardio --save
    """
    ensure_initialized(ctx)

    criteria = GenerationCriteria(
        days_per_week=days,
        preferred_days=list(preferred_days),
        difficulty=difficulty,
        focus=list(focus),
        allowed_equipment=list(equipment),
        excluded_template_ids=list(exclude),
        preferred_start_time=start_time,
        repeat_interval_weeks=every,
        include_cardio=cardio,
        allow_back_to_back=back_to_back,
        count=count,
    )
    rng = random.Random(seed) if seed is not None else None
    result = await ScheduleTemplateService().generate(user_id, criteria, save=save, rng=rng)

    templates = result["templates"]
    if not templates:
        echo_warning("No workouts match that equipment and exclusion list")
        if result["available_equipment"]:
            echo_info("Equipment in the library: " + ", ".join(result["available_equipment"]))
        return

    for template in templates:
        click.echo()
        header = template.name if template.id is None else f"{template.name} (ID: {template.id})"
        click.echo(click.style(header, bold=True))
        click.echo(template.description)
        for item in sorted(template.items, key=lambda i: i.day):
            click.echo(f"  {WEEKDAY_LABELS[item.day]:<10} {item.start_time}-{item.end_time}  {item.title}")
        for insight in template.metadata.get("insights", []):
            click.echo(f"  - {insight}")

    click.echo()
    if save:
        echo_success(f"Saved {len(templates)} template(s)")
    else:
        echo_info("Run again with --save to keep these templates")
