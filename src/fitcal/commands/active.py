"""Active schedule commands."""

import click

from ..errors import ScheduleError
from ..services.active import ActiveScheduleService
from ..utils.dates import format_date
from .base import (
    async_command,
    echo_error,
    echo_info,
    echo_success,
    ensure_initialized,
    format_table,
    user_option,
)


@click.group()
@click.pass_context
def active(ctx):
    """Manage active schedules.

    An active schedule repeats a weekly template over a date range.
    """
    ensure_initialized(ctx)


@active.command(name="list")
@click.option("--active-only", is_flag=True, help="Hide paused schedules")
@user_option
@async_command
async def list_schedules(active_only: bool, user_id: str):
    """List schedules."""
    schedules = await ActiveScheduleService().list_schedules(user_id, active_only=active_only)

    if not schedules:
        echo_info("No schedules found. Create one with 'fitcal active activate'")
        return

    rows = [
        [
            str(s.id),
            s.name or "",
            str(s.weekly_template_id),
            format_date(s.start_date),
            format_date(s.end_date) or "open",
            "active" if s.is_active else "paused",
        ]
        for s in schedules
    ]
    click.echo()
    click.echo(format_table(["ID", "Name", "Weekly", "Start", "End", "State"], rows))
    click.echo()
    click.echo(f"Total: {len(schedules)} schedule(s)")


@active.command()
@click.argument("weekly_template_id", type=int)
@click.option("--start", required=True, help="Start date, YYYY-MM-DD")
@click.option("--end", default=None, help="End date, YYYY-MM-DD (default: open-ended)")
@click.option("--name", default=None, help="Schedule name (default: the template's name)")
@user_option
@click.pass_context
@async_command
async def activate(ctx, weekly_template_id: int, start: str, end: str | None, name: str | None, user_id: str):
    """Activate a weekly template from START onwards."""
    try:
        schedule = await ActiveScheduleService().activate(
            user_id, weekly_template_id, start, end_date=end, name=name
        )
    except ScheduleError as e:
        echo_error(e.message)
        ctx.exit(1)
    echo_success(f"Activated schedule {schedule.id} ({schedule.name})")


async def _set_active(ctx, schedule_id: int, user_id: str, is_active: bool) -> None:
    try:
        schedule = await ActiveScheduleService().set_active(user_id, schedule_id, is_active)
    except ScheduleError as e:
        echo_error(e.message)
        ctx.exit(1)
    echo_success(f"Schedule {schedule.id} {'resumed' if is_active else 'paused'}")


@active.command()
@click.argument("schedule_id", type=int)
@user_option
@click.pass_context
@async_command
async def pause(ctx, schedule_id: int, user_id: str):
    """Hide a schedule from the calendar without deleting it."""
    await _set_active(ctx, schedule_id, user_id, False)


@active.command()
@click.argument("schedule_id", type=int)
@user_option
@click.pass_context
@async_command
async def resume(ctx, schedule_id: int, user_id: str):
    """Show a paused schedule on the calendar again."""
    await _set_active(ctx, schedule_id, user_id, True)


@active.command()
@click.argument("schedule_id", type=int)
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation")
@user_option
@click.pass_context
@async_command
async def delete(ctx, schedule_id: int, yes: bool, user_id: str):
    """Delete a schedule. Its weekly template is kept."""
    if not yes:
        click.confirm(f"Delete schedule {schedule_id}?", abort=True)
    try:
        await ActiveScheduleService().delete(user_id, schedule_id)
    except ScheduleError as e:
        echo_error(e.message)
        ctx.exit(1)
    echo_success(f"Deleted schedule {schedule_id}")
