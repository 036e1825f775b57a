"""Shared fixtures for CLI tests."""

from __future__ import annotations

import logging
import os
from collections.abc import Generator
from pathlib import Path
from unittest.mock import patch

import pytest
import structlog

from dmtest.core.logging import clear_run_id


@pytest.fixture(autouse=True)
def reset_state(tmp_path: Path) -> Generator[None, None, None]:
    """Isolate logging, env vars and the global config file between tests."""
    structlog.reset_defaults()
    logging.getLogger().handlers.clear()
    clear_run_id()
    orig = {k: v for k, v in os.environ.items() if k.startswith("DMTEST__")}
    for k in orig:
        del os.environ[k]
    with patch("dmtest.config.loader.GLOBAL_CONFIG_PATH", tmp_path / "no-global.yaml"):
        yield
    structlog.reset_defaults()
    logging.getLogger().handlers.clear()
    clear_run_id()
    for k in list(os.environ.keys()):
        if k.startswith("DMTEST__"):
            del os.environ[k]
    os.environ.update(orig)


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """A workspace with a .dme and two unit test files."""
    root = tmp_path / "ws"
    tests_dir = root / "code" / "modules" / "unit_tests"
    tests_dir.mkdir(parents=True)
    (root / "tgstation.dme").write_text('#include "code\\world.dm"\n')
    (tests_dir / "reagents.dm").write_text(
        "/datum/unit_test/reagent_recipes/Run()\n\tTEST_ASSERT(TRUE)\n"
        "/datum/unit_test/reagent_transfer/Run()\n"
    )
    (tests_dir / "mobs.dm").write_text("/datum/unit_test/mob_spawn/Run()\n")
    return root
