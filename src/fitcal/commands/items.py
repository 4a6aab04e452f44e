"""Schedule item commands."""

from datetime import date, timedelta

import click

from ..errors import ScheduleError
from ..models.items import DeleteScope
from ..services.series import ScheduleItemService
from .base import (
    async_command,
    echo_error,
    echo_info,
    echo_success,
    ensure_initialized,
    format_table,
    user_option,
)

SCOPES = [s.value for s in DeleteScope]


@click.group()
@click.pass_context
def items(ctx):
    """Inspect and delete schedule items.

    REF is an item id such as ``12``, or an occurrence such as
    ``12@2024-01-16``.
    """
    ensure_initialized(ctx)


@items.command()
@click.argument("ref")
@click.option(
    "--start",
    type=click.DateTime(formats=["%Y-%m-%d"]),
    default=None,
    help="First date (default: today)",
)
@click.option("--weeks", "-w", default=4, type=int, help="Number of weeks to show (default: 4)")
@user_option
@click.pass_context
@async_command
async def occurrences(ctx, ref: str, start, weeks: int, user_id: str):
    """List the dates an item occurs on."""
    first = start.date() if start else date.today()
    last = first + timedelta(weeks=max(weeks, 1)) - timedelta(days=1)
    try:
        found = await ScheduleItemService().occurrences(user_id, ref, first, last)
    except ScheduleError as e:
        echo_error(e.message)
        ctx.exit(1)

    if not found:
        echo_info(f"No occurrences between {first} and {last}")
        return

    rows = [[o.ref, o.occurrence_date.isoformat(), o.start_time, o.end_time, o.title] for o in found]
    click.echo()
    click.echo(format_table(["Ref", "Date", "Start", "End", "Title"], rows))


@items.command()
@click.argument("ref")
@click.option(
    "--scope",
    type=click.Choice(SCOPES),
    default=DeleteScope.THIS.value,
    show_default=True,
    help="this: one occurrence; future: this and later; all: the whole series",
)
@user_option
@click.pass_context
@async_command
async def delete(ctx, ref: str, scope: str, user_id: str):
    """Delete an occurrence, the rest of a series, or a whole series."""
    try:
        result = await ScheduleItemService().delete_schedule_item(
            user_id, ref, scope=DeleteScope(scope)
        )
    except ScheduleError as e:
        echo_error(e.message)
        ctx.exit(1)

    if not result.changed:
        echo_info(f"Nothing to delete for {ref}")
    elif result.action == "series_ended":
        echo_success(f"Series {ref} now ends on {result.ends_on}")
    elif result.action == "exception_added":
        echo_success(f"Skipped occurrence {ref}")
    else:
        echo_success(f"Deleted {ref}")
