"""Test discovery, the run pipeline and results reconciliation."""

from dmtest.testing.artifacts import TestBuildArtifacts, write_test_build
from dmtest.testing.discovery import all_test_ids, discover_tests
from dmtest.testing.models import (
    ProcessOutput,
    ReconciledOutcome,
    ResultSet,
    RunReport,
    TestCase,
    TestResult,
    TestStatus,
    TestSuite,
)
from dmtest.testing.pipeline import PipelineOrchestrator
from dmtest.testing.process import run_process
from dmtest.testing.results import (
    decode_json_results,
    decode_log_results,
    read_results,
    reconcile,
    results_path,
)

__all__ = [
    "PipelineOrchestrator",
    "RunReport",
    "ReconciledOutcome",
    "ResultSet",
    "TestResult",
    "TestStatus",
    "TestCase",
    "TestSuite",
    "ProcessOutput",
    "TestBuildArtifacts",
    "write_test_build",
    "run_process",
    "discover_tests",
    "all_test_ids",
    "decode_json_results",
    "decode_log_results",
    "read_results",
    "reconcile",
    "results_path",
]
