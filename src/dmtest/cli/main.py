"""dmtest CLI - dmtest command."""

import click

from dmtest.cli.config import config_command
from dmtest.cli.discover import discover_command
from dmtest.cli.run import run_command
from dmtest.core.logging import configure_logging


@click.group()
@click.version_option(version="0.1.0", prog_name="dmtest")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """dmtest - Run BYOND/DM unit tests from the command line."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    configure_logging(level="DEBUG" if verbose else "INFO")


cli.add_command(run_command, name="run")
cli.add_command(discover_command, name="discover")
cli.add_command(config_command, name="config")


if __name__ == "__main__":
    cli()
