"""Structured logging for dmtest.

structlog renders through stdlib handlers, one handler per configured output,
so a run can log to the console at INFO and to a file at DEBUG at the same
time. The run id is bound with ``structlog.contextvars`` and therefore shows
up on every line logged while a pipeline run is active, including lines
from the watcher and process helpers.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING
from uuid import uuid4

import structlog

if TYPE_CHECKING:
    from dmtest.config.models import LoggingConfig, LogOutputConfig

# First file output of the current configuration, for error hints
_log_file_path: Path | None = None

# Third-party loggers that are too chatty below WARNING
_QUIET_LOGGERS = ("watchfiles.main", "asyncio")


def set_run_id(run_id: str | None = None) -> str:
    """Bind ``run_id`` (or a fresh short id) to every following log line."""
    rid = run_id or uuid4().hex[:8]
    structlog.contextvars.bind_contextvars(run_id=rid)
    return rid


def get_run_id() -> str | None:
    return structlog.contextvars.get_contextvars().get("run_id")


def clear_run_id() -> None:
    structlog.contextvars.unbind_contextvars("run_id")


def get_log_file_path() -> Path | None:
    return _log_file_path


def _level(name: str) -> int:
    return logging.getLevelNamesMapping().get(name.upper(), logging.INFO)


def _handler_for(output: LogOutputConfig) -> logging.Handler:
    if output.destination == "stderr":
        return logging.StreamHandler(sys.stderr)
    if output.destination == "stdout":
        return logging.StreamHandler(sys.stdout)
    path = Path(output.destination)
    path.parent.mkdir(parents=True, exist_ok=True)
    return logging.FileHandler(path, mode="a")


def _renderer(output: LogOutputConfig) -> structlog.types.Processor:
    if output.format == "json":
        return structlog.processors.JSONRenderer()
    stream = sys.stdout if output.destination == "stdout" else sys.stderr
    is_console = output.destination in ("stderr", "stdout")
    return structlog.dev.ConsoleRenderer(
        colors=is_console and stream.isatty(),
        pad_event_to=0,
        pad_level=False,
    )


def configure_logging(*, config: LoggingConfig | None = None, level: str = "INFO") -> None:
    """Configure structlog and the root logger.

    Without ``config`` a single console output on stderr at ``level`` is used.
    Calling this again replaces every handler installed by the previous call.
    """
    global _log_file_path
    from dmtest.config.models import LoggingConfig

    if config is None:
        config = LoggingConfig.model_validate({"level": level.upper()})
    root_level = _level(config.level)

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S", key="timestamp"),
    ]
    structlog.configure(
        processors=[*shared_processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.make_filtering_bound_logger(root_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        # The CLI reconfigures after loading the workspace config
        cache_logger_on_first_use=False,
    )

    root_logger = logging.getLogger()
    for handler in root_logger.handlers:
        handler.close()
    root_logger.handlers.clear()
    root_logger.setLevel(root_level)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    _log_file_path = None
    for output in config.outputs:
        if output.destination not in ("stderr", "stdout") and _log_file_path is None:
            _log_file_path = Path(output.destination)

        handler = _handler_for(output)
        handler.setLevel(_level(output.level or config.level))
        handler.setFormatter(
            structlog.stdlib.ProcessorFormatter(
                processor=_renderer(output),
                foreign_pre_chain=shared_processors,
            )
        )
        root_logger.addHandler(handler)
