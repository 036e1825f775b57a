"""dmtest discover command - list unit tests in the workspace."""

import json
from pathlib import Path

import click
from rich.table import Table

from dmtest.cli.utils import format_error, load_workspace_config, resolve_workspace
from dmtest.core.errors import DmTestError
from dmtest.core.progress import get_console, pluralize
from dmtest.testing.discovery import discover_tests


@click.command()
@click.option(
    "--workspace",
    "-w",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Workspace root (default: current directory)",
)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def discover_command(ctx: click.Context, workspace: Path | None, as_json: bool) -> None:
    """List unit tests found in the workspace, grouped by file."""
    workspace_root = resolve_workspace(workspace)
    config = load_workspace_config(ctx, workspace_root)
    project = config.project

    try:
        suites = discover_tests(
            workspace_root, project.unit_tests_definition_regex, project.unit_tests_glob
        )
    except DmTestError as e:
        raise click.ClickException(format_error(e)) from e

    if as_json:
        payload = [
            {
                "suite": suite.name,
                "file": str(suite.file.relative_to(workspace_root)),
                "tests": [{"id": t.id, "line": t.line} for t in suite.tests],
            }
            for suite in suites
        ]
        click.echo(json.dumps(payload, indent=2))
        return

    if not suites:
        click.echo(f"No unit tests found matching {project.unit_tests_glob}")
        return

    table = Table(show_header=True, header_style="bold", box=None)
    table.add_column("Suite", style="cyan")
    table.add_column("Test")
    table.add_column("Location", style="dim")
    for suite in suites:
        for test in suite.tests:
            location = f"{test.file.relative_to(workspace_root)}:{test.line}"
            table.add_row(suite.name, test.id, location)

    console = get_console()
    console.print(table)
    total = sum(len(s.tests) for s in suites)
    console.print(
        f"{pluralize(total, 'test')} in {pluralize(len(suites), 'suite')}", highlight=False
    )
