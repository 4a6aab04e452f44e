"""Initialize project command."""

import click

from ..data.template_loader import seed_default_templates
from ..data.workout_loader import seed_workout_templates
from ..db import get_db_path, init_db
from .base import async_command, echo_info, echo_success, get_data_dir


@click.command()
@async_command
async def init():
    """Create the database and load the starter workout library.

    Safe to run again: existing data is kept and the workout library is
    only seeded when it is empty. The same goes for the default schedule
    templates.
    """
    data_dir = get_data_dir()
    db_path = get_db_path(data_dir)

    echo_info(f"Initializing fitcal in {data_dir}")
    await init_db(db_path)
    echo_success("Database initialized")

    count = await seed_workout_templates(db_path)
    if count:
        echo_success(f"Workout library populated ({count} templates)")
    else:
        echo_info("Workout library already populated")

    count = await seed_default_templates(db_path)
    if count:
        echo_success(f"Default schedule templates added ({count} templates)")

    click.echo()
    click.echo("fitcal is ready to use!")
    click.echo()
    click.echo("Next steps:")
    click.echo("  1. Start the API:")
    click.echo("     fitcal serve")
    click.echo()
    click.echo("  2. Generate a weekly plan from the workout library:")
    click.echo("     fitcal generate --days 3 --equipment dumbbell")
    click.echo()
    click.echo("  3. See what is coming up:")
    click.echo("     fitcal calendar")
