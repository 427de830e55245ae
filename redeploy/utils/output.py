"""User-facing status output for deployment runs.

Progress lines go to stdout, failures and diagnostics to stderr. Both are
always visible regardless of the configured log level.
"""

from typing import Optional

from rich.console import Console
from rich.panel import Panel
from rich.text import Text

_stdout = Console(highlight=False)
_stderr = Console(stderr=True, highlight=False)


def print_status(message: str, prefix: Optional[str] = None) -> None:
    """Print a progress line for the operator (e.g. "Stopping server")."""
    if prefix:
        _stdout.print(Text(f"{prefix} {message}"))
    else:
        _stdout.print(Text(message))


def print_warning(message: str, prefix: str = "⚠️") -> None:
    """Print a non-fatal condition that the operator should look at."""
    _stderr.print(Text(f"{prefix} {message}", style="yellow"))


def print_error(message: str, prefix: str = "❌") -> None:
    """Print a fatal condition to stderr."""
    _stderr.print(Text(f"{prefix} {message}", style="bold red"))


def print_diagnostics(title: str, body: str) -> None:
    """Show a bounded chunk of server output in a framed panel on stderr."""
    _stderr.print(Panel(Text(body.rstrip("\n")), title=title, border_style="red"))
