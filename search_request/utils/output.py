"""Rich console output helpers for search-request."""

from __future__ import annotations

import json
import logging
import math
from typing import Any

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table
from rich.theme import Theme

# Set by cli.py after argument parsing
_verbose_enabled: bool = False
_quiet_enabled: bool = False

THEME = Theme(
    {
        "info": "cyan",
        "warning": "yellow",
        "error": "bold red",
        "success": "bold green",
        "node.attribute": "bold",
        "node.operator": "magenta",
        "node.value": "green",
    }
)

# stdout carries request JSON and tables; everything else goes to stderr
console = Console(theme=THEME, stderr=False)
error_console = Console(theme=THEME, stderr=True)


def set_verbosity(*, verbose: bool = False, debug: bool = False, quiet: bool = False) -> None:
    """Configure message verbosity and logging of the ``search_request`` package.

    ``quiet`` silences everything but errors and wins over ``verbose``.
    Log records go to stderr through rich: WARNING by default, INFO with
    ``verbose``, DEBUG with ``debug``, ERROR with ``quiet``.
    """
    global _verbose_enabled, _quiet_enabled
    _quiet_enabled = quiet
    _verbose_enabled = (verbose or debug) and not quiet

    if quiet:
        level = logging.ERROR
    elif debug:
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    else:
        level = logging.WARNING

    package_logger = logging.getLogger("search_request")
    package_logger.setLevel(level)
    if not any(isinstance(h, RichHandler) for h in package_logger.handlers):
        package_logger.addHandler(
            RichHandler(console=error_console, show_path=False, show_time=False)
        )


def set_color(enabled: bool) -> None:
    """Enable or disable color on both console instances."""
    console.no_color = not enabled
    error_console.no_color = not enabled


def info(message: str) -> None:
    """Print an info message to stderr unless quiet."""
    if not _quiet_enabled:
        error_console.print(f"[info]{message}[/info]")


def warning(message: str) -> None:
    """Print a warning to stderr unless quiet."""
    if not _quiet_enabled:
        error_console.print(f"[warning]Warning:[/warning] {message}")


def error(message: str, hint: str | None = None) -> None:
    """Print an error message to stderr.

    Args:
        message: The error message.
        hint: Optional hint for resolution.
    """
    error_console.print(f"[error]Error:[/error] {message}")
    if hint:
        error_console.print(f"  [info]Hint:[/info] {hint}")


def success(message: str) -> None:
    """Print a success message to stderr unless quiet."""
    if not _quiet_enabled:
        error_console.print(f"[success]{message}[/success]")


def verbose(message: str) -> None:
    """Print a message only in verbose mode."""
    if _verbose_enabled:
        error_console.print(f"[info]{message}[/info]")


def create_table(title: str | None = None, **kwargs: Any) -> Table:
    """Create a table for stdout listings."""
    return Table(title=title, **kwargs)


def _finite_or_none(data: Any) -> Any:
    if isinstance(data, float) and not math.isfinite(data):
        return None
    if isinstance(data, dict):
        return {key: _finite_or_none(value) for key, value in data.items()}
    if isinstance(data, list):
        return [_finite_or_none(value) for value in data]
    return data


def dump_json(data: Any, indent: int | None = 2) -> str:
    """Serialise data the way it is sent to the search service.

    NaN and infinite numbers have no JSON form and are written as ``null``.
    """
    return json.dumps(_finite_or_none(data), indent=indent, ensure_ascii=False, allow_nan=False)
