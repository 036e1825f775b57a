"""Config module exports."""

from dmtest.config.loader import load_config, resolve_dme, resolve_executable
from dmtest.config.models import (
    AppsConfig,
    DaemonConfig,
    DmTestConfig,
    LoggingConfig,
    LogOutputConfig,
    ProjectConfig,
    ResultsType,
)

__all__ = [
    "load_config",
    "resolve_dme",
    "resolve_executable",
    "DmTestConfig",
    "AppsConfig",
    "DaemonConfig",
    "LoggingConfig",
    "LogOutputConfig",
    "ProjectConfig",
    "ResultsType",
]
