"""Core module exports."""

from dmtest.core.cancellation import CancellationSignal, ListenerHandle
from dmtest.core.errors import (
    CancelError,
    ConfigError,
    DmTestError,
    ErrorCode,
    InternalError,
    RunError,
    UserError,
)
from dmtest.core.logging import (
    clear_run_id,
    configure_logging,
    get_run_id,
    set_run_id,
)

__all__ = [
    # Cancellation
    "CancellationSignal",
    "ListenerHandle",
    # Errors
    "DmTestError",
    "ErrorCode",
    "UserError",
    "ConfigError",
    "RunError",
    "CancelError",
    "InternalError",
    # Logging
    "clear_run_id",
    "configure_logging",
    "get_run_id",
    "set_run_id",
]
