"""Tests for unit test discovery."""

from pathlib import Path

import pytest

from dmtest.config.models import ProjectConfig
from dmtest.core.errors import ConfigError, ErrorCode
from dmtest.testing.discovery import (
    all_test_ids,
    compile_definition_pattern,
    discover_tests,
    locate_tests_in_file,
)

DEFAULTS = ProjectConfig()


def _write(root: Path, relative: str, text: str) -> Path:
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)
    return path


class TestCompileDefinitionPattern:
    def test_default_pattern_compiles(self) -> None:
        assert compile_definition_pattern(DEFAULTS.unit_tests_definition_regex).groups == 1

    def test_invalid_regex_is_config_error(self) -> None:
        with pytest.raises(ConfigError) as exc_info:
            compile_definition_pattern("([")
        assert exc_info.value.code is ErrorCode.CONFIG_INVALID_VALUE

    def test_wrong_group_count_is_config_error(self) -> None:
        with pytest.raises(ConfigError):
            compile_definition_pattern(r"datum/unit_test/\w+/Run")


class TestLocateTestsInFile:
    def test_finds_tests_with_line_numbers(self, tmp_path: Path) -> None:
        # Given
        path = _write(
            tmp_path,
            "reagents.dm",
            "// reagent tests\n"
            "/datum/unit_test/reagent_recipes/Run()\n"
            "\tTEST_ASSERT(TRUE)\n"
            "\n"
            "datum/unit_test/reagent/mob_transfer/Run()\n",
        )
        pattern = compile_definition_pattern(DEFAULTS.unit_tests_definition_regex)

        # When
        suite = locate_tests_in_file(path, pattern)

        # Then
        assert suite.name == "reagents"
        assert [(t.id, t.line) for t in suite.tests] == [
            ("reagent_recipes", 2),
            ("reagent/mob_transfer", 5),
        ]

    def test_reserved_proc_name_is_skipped(self, tmp_path: Path) -> None:
        path = _write(tmp_path, "base.dm", "/datum/unit_test/proc/Run()\n")
        pattern = compile_definition_pattern(DEFAULTS.unit_tests_definition_regex)

        assert locate_tests_in_file(path, pattern).tests == []


class TestDiscoverTests:
    def test_given_tree_then_sorted_non_empty_suites(self, tmp_path: Path) -> None:
        # Given
        base = "code/modules/unit_tests"
        _write(tmp_path, f"{base}/zebra.dm", "/datum/unit_test/zebra/Run()\n")
        _write(tmp_path, f"{base}/Alpha.dm", "/datum/unit_test/alpha/Run()\n")
        _write(tmp_path, f"{base}/nested/beta.dm", "/datum/unit_test/beta/Run()\n")
        _write(tmp_path, f"{base}/_unit_tests.dm", '#include "zebra.dm"\n')
        _write(tmp_path, "code/other/gamma.dm", "/datum/unit_test/gamma/Run()\n")

        # When
        suites = discover_tests(
            tmp_path, DEFAULTS.unit_tests_definition_regex, DEFAULTS.unit_tests_glob
        )

        # Then
        assert [s.name for s in suites] == ["Alpha", "beta", "zebra"]
        assert all_test_ids(suites) == ["alpha", "beta", "zebra"]

    def test_empty_workspace_finds_nothing(self, tmp_path: Path) -> None:
        assert (
            discover_tests(
                tmp_path, DEFAULTS.unit_tests_definition_regex, DEFAULTS.unit_tests_glob
            )
            == []
        )

    def test_all_test_ids_dedupes(self, tmp_path: Path) -> None:
        _write(tmp_path, "a.dm", "/datum/unit_test/same/Run()\n")
        _write(tmp_path, "b.dm", "/datum/unit_test/same/Run()\n")

        suites = discover_tests(tmp_path, DEFAULTS.unit_tests_definition_regex, "*.dm")

        assert all_test_ids(suites) == ["same"]
