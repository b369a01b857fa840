"""Rich console output and logging helpers for genre-backfill."""

from __future__ import annotations

import logging
from typing import Any

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table
from rich.theme import Theme

# Module-level verbosity flag (set by cli.py after argument parsing)
_verbose_enabled: bool = False

THEME = Theme(
    {
        "info": "cyan",
        "warning": "yellow",
        "error": "bold red",
        "success": "bold green",
        "path": "blue underline",
        "album.artist": "bold",
        "album.title": "italic",
        "genre": "magenta",
    }
)

# Global console instances
console = Console(theme=THEME, stderr=False)
error_console = Console(theme=THEME, stderr=True)


def set_verbosity(*, verbose: bool = False, debug: bool = False) -> None:
    """Configure module-level verbosity flags.

    Called from the CLI entry point after argument parsing.
    """
    global _verbose_enabled
    _verbose_enabled = verbose or debug  # debug implies verbose


def is_verbose() -> bool:
    """Return whether verbose mode is enabled."""
    return _verbose_enabled


def set_color(enabled: bool) -> None:
    """Enable or disable color on both console instances."""
    console.no_color = not enabled
    error_console.no_color = not enabled


def setup_logging(*, verbose: bool = False, debug: bool = False, quiet: bool = False) -> None:
    """Route library logging through a RichHandler on stderr.

    WARNING by default, INFO with ``verbose``, DEBUG with ``debug``,
    ERROR only with ``quiet``.
    """
    if debug:
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    elif quiet:
        level = logging.ERROR
    else:
        level = logging.WARNING

    handler = RichHandler(
        console=error_console,
        rich_tracebacks=debug,
        markup=False,
        show_path=debug,
    )
    logging.basicConfig(level=level, format="%(message)s", handlers=[handler], force=True)
    # urllib3 logs every connection at DEBUG
    logging.getLogger("urllib3").setLevel(logging.INFO if debug else logging.WARNING)


def info(message: str) -> None:
    """Print an info message."""
    console.print(f"[info]{message}[/info]")


def warning(message: str) -> None:
    """Print a warning message to stderr."""
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
    """Print a success message."""
    console.print(f"[success]{message}[/success]")


def create_table(title: str | None = None, **kwargs: Any) -> Table:
    """Create a styled table.

    Args:
        title: Optional table title.
        **kwargs: Additional Table arguments.

    Returns:
        Rich Table instance.
    """
    return Table(title=title, **kwargs)


def print_album(
    artist: str | None,
    title: str | None,
    genres: str | None = None,
    *,
    prefix: str = "",
) -> None:
    """Print a formatted album line, with its genres when known.

    Args:
        artist: Album artist.
        title: Album title.
        genres: Stored genre string.
        prefix: Optional prefix (e.g., "[1/10]").
    """
    artist_str = artist or "Unknown Artist"
    title_str = title or "Unknown Title"

    line = f"[album.artist]{artist_str}[/album.artist] - [album.title]{title_str}[/album.title]"
    if prefix:
        line = f"{prefix} {line}"
    if genres:
        line += f"  [genre]{genres}[/genre]"
    console.print(line)
