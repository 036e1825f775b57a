"""dmtest error types with typed error codes.

Error code ranges:
- 1xxx: User (caller environment)
- 2xxx: Config
- 3xxx: Run (external tool failed on its own terms)
- 4xxx: Cancel
- 9xxx: Internal

Nothing in the pipeline is retried, so ``retryable`` is always False. The
field is kept so serialized errors have a stable shape.
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, ClassVar, Literal

ErrorKind = Literal["user", "config", "run", "cancel", "internal"]


class ErrorCode(IntEnum):
    """Typed error codes for programmatic handling."""

    # User (1xxx)
    USER_NO_WORKSPACE = 1001
    USER_RUN_IN_PROGRESS = 1002

    # Config (2xxx)
    CONFIG_PARSE_ERROR = 2001
    CONFIG_INVALID_VALUE = 2002
    CONFIG_MISSING_REQUIRED = 2003
    CONFIG_FILE_NOT_FOUND = 2004
    CONFIG_RESULTS_MISSING = 2005
    CONFIG_RESULTS_INVALID = 2006

    # Run (3xxx)
    RUN_PREBUILD_FAILED = 3001
    RUN_COMPILE_FAILED = 3002
    RUN_ARTIFACT_MISSING = 3003
    RUN_SPAWN_FAILED = 3004
    RUN_WATCH_FAILED = 3005
    RUN_DUPLICATE_PROCESS = 3006
    RUN_TIMEOUT = 3007

    # Cancel (4xxx)
    RUN_CANCELLED = 4001

    # Internal (9xxx)
    INTERNAL_ERROR = 9001


@dataclass(frozen=True, slots=True)
class DmTestError(Exception):
    """Base error with structured context."""

    kind: ClassVar[ErrorKind] = "internal"

    code: ErrorCode
    message: str
    retryable: bool = False
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def error_name(self) -> str:
        """String identifier for logging (e.g., 'RUN_COMPILE_FAILED')."""
        return self.code.name

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code.value,
            "error": self.error_name,
            "kind": self.kind,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.error_name}: {self.message}"


class UserError(DmTestError):
    """The caller's environment is wrong (no workspace, run already going)."""

    kind: ClassVar[ErrorKind] = "user"

    @classmethod
    def no_workspace(cls, path: str | None) -> "UserError":
        if path is None:
            message = "No workspace is open. Open a folder containing a .dme project first."
        else:
            message = f"Workspace folder does not exist: {path}"
        return cls(
            code=ErrorCode.USER_NO_WORKSPACE,
            message=message,
            details={"path": path},
        )

    @classmethod
    def run_in_progress(cls, run_id: str) -> "UserError":
        return cls(
            code=ErrorCode.USER_RUN_IN_PROGRESS,
            message=f"A test run is already in progress ({run_id})",
            details={"run_id": run_id},
        )


class ConfigError(DmTestError):
    """Configuration-related errors."""

    kind: ClassVar[ErrorKind] = "config"

    @classmethod
    def parse_error(cls, path: str, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_PARSE_ERROR,
            message=f"Failed to parse config at {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def invalid_value(cls, field: str, value: Any, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_INVALID_VALUE,
            message=f"Invalid value for '{field}': {reason}",
            details={"field": field, "value": str(value), "reason": reason},
        )

    @classmethod
    def missing_required(cls, field: str, what: str | None = None) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_MISSING_REQUIRED,
            message=f"{what or field} not set",
            details={"field": field},
        )

    @classmethod
    def file_not_found(cls, path: str, what: str = "Config file") -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_FILE_NOT_FOUND,
            message=f'{what} not found at "{path}"',
            details={"path": path},
        )

    @classmethod
    def descriptor_not_found(cls, dme_name: str, path: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_FILE_NOT_FOUND,
            message=f"No .dme with name {dme_name} found in root folder.",
            details={"dme_name": dme_name, "path": path},
        )

    @classmethod
    def results_missing(cls, path: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_RESULTS_MISSING,
            message=f'"{path}" not found after run. Make sure the results type is set '
            "properly in config, and that the unit tests have actually been run.",
            details={"path": path},
        )

    @classmethod
    def results_invalid(cls, path: str, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_RESULTS_INVALID,
            message=f'Could not parse test results in "{path}": {reason}',
            details={"path": path, "reason": reason},
        )


class RunError(DmTestError):
    """An external tool failed on its own terms."""

    kind: ClassVar[ErrorKind] = "run"

    @classmethod
    def prebuild_failed(cls, command: str, exit_code: int | None, output: str) -> "RunError":
        return cls(
            code=ErrorCode.RUN_PREBUILD_FAILED,
            message=f"Pre-compile command failed with exit code {exit_code}: {command}\n{output}",
            details={"command": command, "exit_code": exit_code, "output": output},
        )

    @classmethod
    def compile_failed(cls, output: str) -> "RunError":
        return cls(
            code=ErrorCode.RUN_COMPILE_FAILED,
            message=f"Compilation failed:\n{output}",
            details={"output": output},
        )

    @classmethod
    def artifact_missing(cls, path: str) -> "RunError":
        return cls(
            code=ErrorCode.RUN_ARTIFACT_MISSING,
            message=f'Can\'t start dreamdaemon, "{path}" does not exist!',
            details={"path": path},
        )

    @classmethod
    def spawn_failed(cls, command: str, reason: str) -> "RunError":
        return cls(
            code=ErrorCode.RUN_SPAWN_FAILED,
            message=f"Failed to start {command}: {reason}",
            details={"command": command, "reason": reason},
        )

    @classmethod
    def watch_failed(cls, path: str, reason: str) -> "RunError":
        return cls(
            code=ErrorCode.RUN_WATCH_FAILED,
            message=f"Watching {path} failed: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def duplicate_process(cls, process_name: str, token: int, pids: list[int]) -> "RunError":
        return cls(
            code=ErrorCode.RUN_DUPLICATE_PROCESS,
            message=f"Multiple {process_name} processes with test-id={token} detected: {pids}",
            details={"process_name": process_name, "token": token, "pids": pids},
        )

    @classmethod
    def timeout(cls, stage: str, timeout_sec: float) -> "RunError":
        return cls(
            code=ErrorCode.RUN_TIMEOUT,
            message=f"{stage} did not finish within {timeout_sec:g} seconds",
            details={"stage": stage, "timeout_sec": timeout_sec},
        )


class CancelError(DmTestError):
    """The run was cooperatively cancelled. Not shown to the user as an error."""

    kind: ClassVar[ErrorKind] = "cancel"

    @classmethod
    def cancelled(cls, stage: str | None = None) -> "CancelError":
        return cls(
            code=ErrorCode.RUN_CANCELLED,
            message=f"Cancelled during {stage}" if stage else "Cancelled",
            details={"stage": stage} if stage else {},
        )


class InternalError(DmTestError):
    """Internal/unexpected errors."""

    kind: ClassVar[ErrorKind] = "internal"

    @classmethod
    def unexpected(cls, reason: str, **details: Any) -> "InternalError":
        return cls(
            code=ErrorCode.INTERNAL_ERROR,
            message=f"Internal error: {reason}",
            details=details,
        )
