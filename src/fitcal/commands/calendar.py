"""Calendar and completed day commands."""

from datetime import date, timedelta

import click

from ..errors import ScheduleError
from ..services.calendar import CalendarService, CompletedDayService
from ..utils.dates import WEEKDAY_LABELS, date_range, day_of_week
from .base import (
    async_command,
    echo_error,
    echo_info,
    echo_success,
    ensure_initialized,
    format_table,
    user_option,
)


@click.command()
@click.option(
    "--start",
    type=click.DateTime(formats=["%Y-%m-%d"]),
    default=None,
    help="First date (default: today)",
)
@click.option("--days", "-d", default=14, type=int, help="Number of days to show (default: 14)")
@click.option("--rest/--no-rest", default=False, help="Include rest days")
@user_option
@click.pass_context
@async_command
async def calendar(ctx, start, days: int, rest: bool, user_id: str):
    """Show scheduled workouts and items for the coming days."""
    ensure_initialized(ctx)

    first = start.date() if start else date.today()
    last = first + timedelta(days=max(days, 1) - 1)

    try:
        view = await CalendarService().materialize_calendar(user_id, first, last)
    except ScheduleError as e:
        echo_error(e.message)
        ctx.exit(1)

    rows = []
    for day in date_range(first, last):
        workouts, items = view.on(day)
        label = f"{day.isoformat()} {WEEKDAY_LABELS[day_of_week(day)][:3]}"
        for workout in workouts:
            if workout.is_rest_day and not rest:
                continue
            rows.append([
                label,
                workout.start_time,
                workout.title or "Rest",
                workout.active_schedule_name or "",
                (workout.completion_status or "done") if workout.is_completed else "",
            ])
        for item in items:
            rows.append([
                label,
                item.start_time,
                item.title,
                f"item {item.ref}",
                "",
            ])

    if not rows:
        echo_info(f"Nothing scheduled between {first} and {last}")
        return

    click.echo()
    click.echo(format_table(["Date", "Time", "Title", "From", "Status"], rows))
    click.echo()
    click.echo(f"{view.active_schedule_count} active schedule(s), {view.total_days} day(s)")


@click.command()
@click.argument("day", type=click.DateTime(formats=["%Y-%m-%d"]))
@click.option("--status", "-s", default=None, help="Status to record (default: completed)")
@click.option("--notes", "-n", default=None, help="Notes for the day")
@click.option("--undo", is_flag=True, help="Remove the day's record instead")
@user_option
@click.pass_context
@async_command
async def done(ctx, day, status: str | None, notes: str | None, undo: bool, user_id: str):
    """Mark DAY (YYYY-MM-DD) as done on the calendar."""
    ensure_initialized(ctx)
    service = CompletedDayService()

    try:
        if undo:
            await service.unmark(user_id, day.date())
            echo_success(f"Cleared {day.date()}")
            return
        record = await service.mark(user_id, day.date(), status=status, notes=notes)
    except ScheduleError as e:
        echo_error(e.message)
        ctx.exit(1)

    echo_success(f"Marked {record.date} as {record.status}")
