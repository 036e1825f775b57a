"""CLI utilities."""

from pathlib import Path

import click

from dmtest.config.loader import load_config
from dmtest.config.models import DmTestConfig
from dmtest.core.errors import DmTestError, UserError
from dmtest.core.logging import configure_logging, get_log_file_path

_GUIDANCE = {
    "config": "Please confirm that the workspace and/or user configuration is correct "
    "(.dmtest/config.yaml, DMTEST__* environment variables).",
    "internal": "Run again with -v for details.",
}


def format_error(error: DmTestError) -> str:
    """Render an error for the terminal, with a hint where one helps."""
    hint = _GUIDANCE.get(error.kind)
    log_file = get_log_file_path()
    if error.kind == "internal" and log_file is not None:
        hint = f"See {log_file} for the traceback."
    return f"{error.message}\n{hint}" if hint else error.message


def resolve_workspace(path: Path | None) -> Path:
    """Return the workspace root, defaulting to the current directory.

    Raises:
        click.ClickException: The directory does not exist.
    """
    if path is None:
        return Path.cwd().resolve()
    if not path.is_dir():
        raise click.ClickException(format_error(UserError.no_workspace(str(path))))
    return path.resolve()


def load_workspace_config(ctx: click.Context, workspace_root: Path) -> DmTestConfig:
    """Load config for the workspace and apply its logging section.

    ``-v`` on the command group forces DEBUG regardless of config.
    """
    try:
        config = load_config(workspace_root)
    except DmTestError as e:
        raise click.ClickException(format_error(e)) from e

    logging_config = config.logging
    if ctx.find_root().obj and ctx.find_root().obj.get("verbose"):
        logging_config = logging_config.model_copy(update={"level": "DEBUG"})
    configure_logging(config=logging_config)
    return config
