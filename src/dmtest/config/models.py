"""Pydantic configuration models with env var support.

Configuration Hierarchy (highest to lowest precedence):
1. Direct kwargs to load_config()
2. Environment variables (DMTEST__SECTION__KEY)
3. Workspace YAML (.dmtest/config.yaml)
4. Global YAML (~/.config/dmtest/config.yaml)
5. Built-in defaults (this file)

Environment Variable Format:
    DMTEST__<SECTION>__<KEY>=<VALUE>

Examples:
    DMTEST__LOGGING__LEVEL=DEBUG
    DMTEST__APPS__DREAMMAKER=/opt/byond/bin/DreamMaker
    DMTEST__PROJECT__RESULTS_TYPE=log
    DMTEST__DAEMON__TIMEOUT_SEC=900
"""

import re
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from dmtest.config.constants import FOCUS_PLACEHOLDER

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
ResultsType = Literal["log", "json"]


class LogOutputConfig(BaseModel):
    """Single logging output configuration.

    Env vars: Not directly configurable via env (use YAML for multi-output).
    """

    format: Literal["json", "console"] = "console"
    destination: str = "stderr"  # stderr, stdout, or absolute file path
    level: LogLevel | None = None  # Inherits from parent if None

    @field_validator("destination")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        if v in ("stderr", "stdout"):
            return v
        path = Path(v).expanduser()
        if not path.is_absolute():
            raise ValueError(f"File destination must be absolute path: {v}")
        return str(path)


class LoggingConfig(BaseModel):
    """Logging configuration.

    Env vars:
        DMTEST__LOGGING__LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    level: LogLevel = Field(
        default="INFO",
        description="Root log level. DEBUG includes every watcher tick.",
    )
    outputs: list[LogOutputConfig] = Field(default_factory=lambda: [LogOutputConfig()])


class AppsConfig(BaseModel):
    """External executables.

    Env vars:
        DMTEST__APPS__DREAMMAKER: Path to the DM compiler (dm.exe / DreamMaker)
        DMTEST__APPS__DREAMDAEMON: Path to the server daemon (dreamdaemon.exe / DreamDaemon)
    """

    dreammaker: str | None = Field(
        default=None,
        description="Path to the DM compiler. Required for test runs.",
    )
    dreamdaemon: str | None = Field(
        default=None,
        description="Path to the server daemon. Required for test runs.",
    )


class ProjectConfig(BaseModel):
    """Project layout and test build configuration.

    Env vars:
        DMTEST__PROJECT__DME_NAME: Name of the .dme build descriptor
        DMTEST__PROJECT__RESULTS_TYPE: How test results are read (log | json)
    """

    dme_name: str = Field(
        default="tgstation.dme",
        description="Name of the .dme project file in the workspace root.",
    )
    defines: list[str] = Field(
        default_factory=lambda: ["#define CIBUILDING"],
        description="Lines injected at the beginning of the .dme before compiling.",
    )
    unit_tests_definition_regex: str = Field(
        default=r"/?datum/unit_test/([\w/]+)/Run\s*\(",
        description="Pattern locating unit test definitions. "
        "Must contain one capture group returning the test id.",
    )
    unit_tests_glob: str = Field(
        default="code/modules/unit_tests/**/*.dm",
        description="Files scanned for unit test definitions, relative to the workspace.",
    )
    unit_tests_focus_define: str = Field(
        default=f"TEST_FOCUS({FOCUS_PLACEHOLDER})",
        description="Line written to the focus file for every test in the run. "
        f"Must contain {FOCUS_PLACEHOLDER} for the test typepath.",
    )
    results_type: ResultsType = Field(
        default="json",
        description="log: parse data/logs/unit_test/tests.log; json: parse data/unit_tests.json.",
    )
    pre_compile: list[str] = Field(
        default_factory=list,
        description="Commands run before the compiler starts, from the workspace root.",
    )

    @field_validator("unit_tests_focus_define")
    @classmethod
    def validate_focus_define(cls, v: str) -> str:
        if FOCUS_PLACEHOLDER not in v:
            raise ValueError(
                f"Focus definition must contain {FOCUS_PLACEHOLDER} for unit test "
                "typepath substitution"
            )
        return v

    @field_validator("unit_tests_definition_regex")
    @classmethod
    def validate_definition_regex(cls, v: str) -> str:
        try:
            pattern = re.compile(v)
        except re.error as e:
            raise ValueError(f"Invalid regex: {e}") from e
        if pattern.groups != 1:
            raise ValueError(
                f"Pattern must contain exactly one capture group, has {pattern.groups}"
            )
        return v

    @property
    def project_name(self) -> str:
        """``tgstation`` for ``tgstation.dme``."""
        return Path(self.dme_name).stem


class DaemonConfig(BaseModel):
    """Server daemon invocation and completion detection.

    Env vars:
        DMTEST__DAEMON__PROCESS_NAME: OS process name used to find the daemon on cancel
        DMTEST__DAEMON__TIMEOUT_SEC: Upper bound for a daemon run
        DMTEST__DAEMON__POLL_INTERVAL_SEC: Watcher safety-net interval
    """

    process_name: str | None = Field(
        default=None,
        description="Process name to match when killing the daemon. "
        "Defaults to the file name of apps.dreamdaemon.",
    )
    args: list[str] = Field(
        default_factory=lambda: ["-close", "-trusted", "-verbose"],
        description="Flags passed after the compiled .dmb path.",
    )
    log_directory: str = Field(
        default="data/logs/unit_test",
        description="Directory, relative to the workspace, where the daemon writes its log.",
    )
    log_file: str = Field(
        default="game.log",
        description="Log file watched for the finish marker.",
    )
    finish_pattern: str = Field(
        default=r"Rebooting World\. Round ended\.",
        description="Pattern in the log file that marks the end of the test round.",
    )
    poll_interval_sec: float = Field(
        default=1.0,
        description="How often the watcher re-checks its condition without an event. "
        "Lower values react faster on filesystems with unreliable notifications.",
    )
    debounce_ms: int = Field(
        default=50,
        description="Window used to batch filesystem events.",
    )
    timeout_sec: float | None = Field(
        default=None,
        description="Kill the daemon and fail the run after this many seconds. "
        "Unset means wait indefinitely (cancellation still works).",
    )

    @field_validator("finish_pattern")
    @classmethod
    def validate_finish_pattern(cls, v: str) -> str:
        try:
            re.compile(v)
        except re.error as e:
            raise ValueError(f"Invalid regex: {e}") from e
        return v

    @field_validator("poll_interval_sec")
    @classmethod
    def validate_poll_interval(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"Poll interval must be positive, got {v}")
        return v

    @field_validator("timeout_sec")
    @classmethod
    def validate_timeout(cls, v: float | None) -> float | None:
        if v is not None and v <= 0:
            raise ValueError(f"Timeout must be positive, got {v}")
        return v


class DmTestConfig(BaseModel):
    """Root configuration for dmtest.

    All settings can be configured via:
    1. Environment variables: DMTEST__SECTION__KEY
    2. YAML config files (workspace or global)
    3. Direct kwargs to load_config()
    """

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    apps: AppsConfig = Field(default_factory=AppsConfig)
    project: ProjectConfig = Field(default_factory=ProjectConfig)
    daemon: DaemonConfig = Field(default_factory=DaemonConfig)
