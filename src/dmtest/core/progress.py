"""User-facing console output for CLI commands.

Usage::

    from dmtest.core.progress import status

    status("3/3 tests passed.", style="success")  # ✓ 3/3 tests passed.
    status("reagents", style="error")  # ✗ reagents
"""

from __future__ import annotations

import structlog
from rich.console import Console
from rich.markup import escape

logger = structlog.get_logger("progress")

# Console for output
_console = Console(stderr=True)

# Style prefixes
_STYLES = {
    "success": "[green]✓[/green] ",
    "error": "[red]✗[/red] ",
    "warning": "[yellow]![/yellow] ",
    "info": "  ",
    "none": "",
}


def get_console() -> Console:
    """Get the shared Rich console instance."""
    return _console


def status(message: str, *, style: str = "info", indent: int = 0) -> None:
    """Print a styled status message to stderr."""
    prefix = _STYLES.get(style, "")
    padding = " " * indent
    _console.print(f"{padding}{prefix}{escape(message)}", highlight=False)
    logger.debug("status", message=message, style=style)


def pluralize(count: int, singular: str, plural: str | None = None) -> str:
    """Return "1 test" / "3 tests"."""
    if plural is None:
        plural = singular + "s"
    word = singular if count == 1 else plural
    return f"{count} {word}"

