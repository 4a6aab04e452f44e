"""CLI entry point for fitcal."""

import click

from . import __version__
from .commands import active, calendar, done, generate, init, items, serve
from .config import configure_logging, get_settings


@click.group()
@click.version_option(version=__version__, prog_name="fitcal")
@click.option("--verbose", "-v", is_flag=True, help="Log at DEBUG level")
def main(verbose: bool):
    """fitcal: recurring workout schedules.

    Bind weekly templates to date ranges, author repeating schedule items
    and generate weekly plans from a workout library.

    Example usage:

        # Create the database and workout library
        fitcal init

        # Show the next two weeks
        fitcal calendar

        # Generate a plan and keep it
        fitcal generate --days 4 --save

        # Start the API
        fitcal serve
    """
    configure_logging("DEBUG" if verbose else get_settings().log_level)


main.add_command(init)
main.add_command(serve)
main.add_command(calendar)
main.add_command(done)
main.add_command(active)
main.add_command(items)
main.add_command(generate)


def run():
    """Run the CLI."""
    main()


if __name__ == "__main__":
    run()
