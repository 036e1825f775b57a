"""dmtest run command - compile the project and run unit tests."""

import asyncio
import contextlib
import signal
from pathlib import Path

import click

from dmtest.cli.utils import format_error, load_workspace_config, resolve_workspace
from dmtest.core.errors import DmTestError
from dmtest.core.progress import pluralize, status
from dmtest.testing.discovery import all_test_ids, discover_tests
from dmtest.testing.models import RunReport
from dmtest.testing.pipeline import PipelineOrchestrator

# Exit code for a run stopped by SIGINT/SIGTERM
EXIT_CANCELLED = 130

_STATE_STYLES = {
    "passed": "success",
    "failed": "error",
    "errored": "error",
    "skipped": "warning",
}


async def _run_with_signals(
    orchestrator: PipelineOrchestrator, test_ids: list[str], workspace_root: Path
) -> RunReport:
    """Run the pipeline with SIGINT/SIGTERM wired to its cancellation signal."""
    loop = asyncio.get_running_loop()
    installed: list[signal.Signals] = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        # Not available on Windows event loops
        with contextlib.suppress(NotImplementedError, RuntimeError):
            loop.add_signal_handler(sig, orchestrator.cancel)
            installed.append(sig)
    try:
        return await orchestrator.run(test_ids, workspace_root)
    finally:
        for sig in installed:
            loop.remove_signal_handler(sig)


def _print_report(report: RunReport) -> None:
    for test_id, state in report.states.items():
        status(f"{test_id} ({state})", style=_STATE_STYLES[state])
        message = report.messages.get(test_id)
        if message and state == "failed":
            for line in message.splitlines():
                status(line, style="none", indent=4)

    if report.outcome is not None and report.outcome.ignored:
        status(
            f"{pluralize(len(report.outcome.ignored), 'test')} missing from the results",
            style="warning",
        )
    status(f"{report.summary()} ({report.duration_seconds:.1f}s)", style="none")


@click.command()
@click.argument("test_ids", nargs=-1)
@click.option(
    "--workspace",
    "-w",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Workspace root (default: current directory)",
)
@click.pass_context
def run_command(ctx: click.Context, test_ids: tuple[str, ...], workspace: Path | None) -> None:
    """Compile the project and run unit tests.

    TEST_IDS are unit test names such as ``reagent_recipe_collisions``. Without
    any, every test found in the workspace runs. Ctrl+C cancels the run and
    cleans up the generated build.
    """
    workspace_root = resolve_workspace(workspace)
    config = load_workspace_config(ctx, workspace_root)

    requested = list(test_ids)
    if not requested:
        project = config.project
        try:
            suites = discover_tests(
                workspace_root, project.unit_tests_definition_regex, project.unit_tests_glob
            )
        except DmTestError as e:
            raise click.ClickException(format_error(e)) from e
        requested = all_test_ids(suites)

    status(f"Running {pluralize(len(requested), 'test')} in {workspace_root}", style="none")
    orchestrator = PipelineOrchestrator(config)
    try:
        report = asyncio.run(_run_with_signals(orchestrator, requested, workspace_root))
    except DmTestError as e:
        raise click.ClickException(format_error(e)) from e

    _print_report(report)
    if report.status == "failed" and report.error is not None:
        raise click.ClickException(format_error(report.error))
    if report.cancelled:
        ctx.exit(EXIT_CANCELLED)
    if not report.ok:
        ctx.exit(1)
