"""Tests for dmtest run command.

The pipeline itself is covered in tests/testing; here PipelineOrchestrator is
replaced so only argument handling, reporting and exit codes are exercised.
"""

from __future__ import annotations

from collections.abc import Callable, Generator
from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from dmtest.cli.main import cli
from dmtest.cli.run import EXIT_CANCELLED
from dmtest.core.errors import CancelError, ConfigError, UserError
from dmtest.testing.models import ReconciledOutcome, RunReport, TestResult, TestStatus

runner = CliRunner()


class FakeOrchestrator:
    """Stands in for PipelineOrchestrator and returns a canned report."""

    instances: list[FakeOrchestrator] = []
    report_factory: Callable[[tuple[str, ...]], RunReport]
    raises: Exception | None = None

    def __init__(self, config: Any) -> None:
        self.config = config
        self.requested: list[str] | None = None
        self.workspace_root: Path | None = None
        FakeOrchestrator.instances.append(self)

    async def run(self, requested: list[str], workspace_root: Path) -> RunReport:
        self.requested = list(requested)
        self.workspace_root = workspace_root
        if self.raises is not None:
            raise self.raises
        return type(self).report_factory(tuple(requested))

    def cancel(self) -> None:
        pass


@pytest.fixture
def fake_orchestrator() -> Generator[type[FakeOrchestrator], None, None]:
    FakeOrchestrator.instances = []
    FakeOrchestrator.raises = None
    FakeOrchestrator.report_factory = staticmethod(_all_passed)  # type: ignore[assignment]
    with patch("dmtest.cli.run.PipelineOrchestrator", FakeOrchestrator):
        yield FakeOrchestrator


def _all_passed(requested: tuple[str, ...]) -> RunReport:
    outcome = ReconciledOutcome(
        passed={tid: TestResult(tid, TestStatus.PASSED) for tid in requested}
    )
    return RunReport(
        run_id="abcd1234",
        status="completed",
        requested=requested,
        outcome=outcome,
        states=dict.fromkeys(requested, "passed"),
        duration_seconds=1.5,
    )


def _one_failed(requested: tuple[str, ...]) -> RunReport:
    first, *rest = requested
    outcome = ReconciledOutcome(
        passed={tid: TestResult(tid, TestStatus.PASSED) for tid in rest},
        failed={first: TestResult(first, TestStatus.FAILED, "expected 1\ngot 2")},
    )
    return RunReport(
        run_id="abcd1234",
        status="completed",
        requested=requested,
        outcome=outcome,
        states={first: "failed", **dict.fromkeys(rest, "passed")},
        messages={first: "expected 1\ngot 2"},
    )


def _with_missing(requested: tuple[str, ...]) -> RunReport:
    outcome = ReconciledOutcome(ignored=frozenset(requested))
    return RunReport(
        run_id="abcd1234",
        status="completed",
        requested=requested,
        outcome=outcome,
        states=dict.fromkeys(requested, "skipped"),
    )


def _cancelled(requested: tuple[str, ...]) -> RunReport:
    return RunReport(
        run_id="abcd1234",
        status="cancelled",
        requested=requested,
        error=CancelError.cancelled("compile"),
        states=dict.fromkeys(requested, "skipped"),
    )


def _config_failure(requested: tuple[str, ...]) -> RunReport:
    return RunReport(
        run_id="abcd1234",
        status="failed",
        requested=requested,
        error=ConfigError.missing_required("apps.dreammaker", "Dreammaker (dm) path"),
        states=dict.fromkeys(requested, "errored"),
    )


class TestRunCommand:
    def test_given_ids_then_runs_exactly_those(
        self, workspace: Path, fake_orchestrator: type[FakeOrchestrator]
    ) -> None:
        result = runner.invoke(cli, ["run", "-w", str(workspace), "mob_spawn"])

        assert result.exit_code == 0, result.output
        (instance,) = fake_orchestrator.instances
        assert instance.requested == ["mob_spawn"]
        assert instance.workspace_root == workspace.resolve()
        assert "mob_spawn (passed)" in result.output
        assert "1/1 tests passed." in result.output

    def test_given_no_ids_then_runs_every_discovered_test(
        self, workspace: Path, fake_orchestrator: type[FakeOrchestrator]
    ) -> None:
        result = runner.invoke(cli, ["run", "-w", str(workspace)])

        assert result.exit_code == 0, result.output
        (instance,) = fake_orchestrator.instances
        assert instance.requested == ["mob_spawn", "reagent_recipes", "reagent_transfer"]
        assert "Running 3 tests" in result.output

    def test_failed_test_exits_one_and_shows_message(
        self, workspace: Path, fake_orchestrator: type[FakeOrchestrator]
    ) -> None:
        fake_orchestrator.report_factory = staticmethod(_one_failed)  # type: ignore[assignment]

        result = runner.invoke(cli, ["run", "-w", str(workspace), "a", "b"])

        assert result.exit_code == 1
        assert "a (failed)" in result.output
        assert "expected 1" in result.output
        assert "got 2" in result.output
        assert "1/2 tests passed." in result.output

    def test_missing_results_are_reported_as_skipped(
        self, workspace: Path, fake_orchestrator: type[FakeOrchestrator]
    ) -> None:
        fake_orchestrator.report_factory = staticmethod(_with_missing)  # type: ignore[assignment]

        result = runner.invoke(cli, ["run", "-w", str(workspace), "a", "b"])

        assert result.exit_code == 0, result.output
        assert "a (skipped)" in result.output
        assert "2 tests missing from the results" in result.output

    def test_cancelled_run_exits_with_cancel_code(
        self, workspace: Path, fake_orchestrator: type[FakeOrchestrator]
    ) -> None:
        fake_orchestrator.report_factory = staticmethod(_cancelled)  # type: ignore[assignment]

        result = runner.invoke(cli, ["run", "-w", str(workspace), "a"])

        assert result.exit_code == EXIT_CANCELLED
        assert "Run cancelled." in result.output

    def test_failed_run_prints_error_and_hint(
        self, workspace: Path, fake_orchestrator: type[FakeOrchestrator]
    ) -> None:
        fake_orchestrator.report_factory = staticmethod(_config_failure)  # type: ignore[assignment]

        result = runner.invoke(cli, ["run", "-w", str(workspace), "a"])

        assert result.exit_code == 1
        assert "a (errored)" in result.output
        assert "Dreammaker (dm) path not set" in result.output
        assert "DMTEST__" in result.output

    def test_run_in_progress_is_reported(
        self, workspace: Path, fake_orchestrator: type[FakeOrchestrator]
    ) -> None:
        fake_orchestrator.raises = UserError.run_in_progress("abcd1234")

        result = runner.invoke(cli, ["run", "-w", str(workspace), "a"])

        assert result.exit_code == 1
        assert "already in progress" in result.output

    def test_missing_workspace_fails_before_running(
        self, tmp_path: Path, fake_orchestrator: type[FakeOrchestrator]
    ) -> None:
        result = runner.invoke(cli, ["run", "-w", str(tmp_path / "missing"), "a"])

        assert result.exit_code == 1
        assert fake_orchestrator.instances == []
