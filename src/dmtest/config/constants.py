"""Configuration constants.

This module contains truly constant values that should NOT be user-configurable.
These are file-format and naming constraints shared with the DM test harness.

For configurable values, see models.py (ProjectConfig, DaemonConfig, etc.).
"""

# =============================================================================
# Unit test naming
# =============================================================================

UNIT_TEST_TYPE_PREFIX = "/datum/unit_test/"
"""Typepath prefix of every unit test datum. Stripped to get the test id."""

FOCUS_PLACEHOLDER = "$0"
"""Substituted with the test typepath in the focus define template."""

RESERVED_TEST_NAMES = frozenset({"proc"})
"""Names matched by the definition regex that are not tests."""

# =============================================================================
# Generated test build
# =============================================================================
# All generated files share this infix so they can never collide with the
# project's own files (tgstation.dme -> tgstation.mdme.dme).

TEST_BUILD_INFIX = ".mdme"

FOCUS_FILE_SUFFIX = ".focus.dm"

COMPILED_SUFFIXES = (".dmb", ".rsc", ".dyn.rsc")
"""Compiler outputs next to the patched .dme, removed after every run."""

COMPILE_SUCCESS_TEMPLATE = "{name}.dmb - 0 errors"
"""Compiler output line marking a clean build of ``{name}.dme``."""

# =============================================================================
# Daemon invocation
# =============================================================================

DAEMON_PARAMS_FLAG = "-params"

CORRELATION_PARAM = "test-id"
"""World parameter carrying the run correlation token."""

LOG_DIRECTORY_PARAM = "log-directory=unit_test"
"""Extra world parameter used by the log results format."""

CORRELATION_TOKEN_LIMIT = 10**10
"""Correlation tokens are drawn uniformly from [0, CORRELATION_TOKEN_LIMIT)."""

# =============================================================================
# Results artifacts (relative to the workspace root)
# =============================================================================

DATA_DIR = "data"
LOGS_DIR = "data/logs"
LOG_RESULTS_DIR = "data/logs/unit_test"
LOG_RESULTS_FILE = "data/logs/unit_test/tests.log"
JSON_RESULTS_FILE = "data/unit_tests.json"

# =============================================================================
# Config discovery
# =============================================================================

CONFIG_DIR = ".dmtest"
CONFIG_FILE = "config.yaml"
