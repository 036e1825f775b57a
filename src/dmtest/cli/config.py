"""dmtest config command - show the resolved configuration."""

from pathlib import Path

import click
import yaml

from dmtest.cli.utils import load_workspace_config, resolve_workspace


@click.command()
@click.option(
    "--workspace",
    "-w",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Workspace root (default: current directory)",
)
@click.pass_context
def config_command(ctx: click.Context, workspace: Path | None) -> None:
    """Print the resolved configuration as YAML.

    Shows defaults merged with the global and workspace config files and
    DMTEST__* environment variables.
    """
    workspace_root = resolve_workspace(workspace)
    config = load_workspace_config(ctx, workspace_root)
    click.echo(yaml.safe_dump(config.model_dump(mode="json"), sort_keys=False), nl=False)
