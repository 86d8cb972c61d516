# ABOUTME: CLI package for Lectern, built on Click.
# ABOUTME: Defines the root command group, logging setup, and registers subcommands.

import logging

import click
from rich.logging import RichHandler

from lectern.cli.commands import covers_cmd, import_cmd, inspect_cmd


def _configure_logging(verbosity: int) -> None:
    """Route log records through Rich: -v for INFO, -vv for DEBUG."""
    if verbosity <= 0:
        return
    logging.basicConfig(
        level=logging.DEBUG if verbosity > 1 else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
        force=True,
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


@click.group()
@click.version_option(package_name="lectern")
@click.option("-v", "--verbose", count=True, help="Show log output (-vv for debug).")
def cli(verbose: int) -> None:
    """Lectern - ebook metadata enrichment from Google Books and Open Library."""
    _configure_logging(verbose)


cli.add_command(import_cmd.import_command)
cli.add_command(inspect_cmd.inspect)
cli.add_command(covers_cmd.covers)
