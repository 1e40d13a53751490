"""Shared utility functions for PatternKit.

Provides JSON I/O, atomic file writes, name-case helpers and the Rich-based
console reporting used by the pipeline and CLI.  Core components never call
the ``print_*`` helpers; they return warnings and errors as data.
"""

from __future__ import annotations

import asyncio
import json
import os
import re
import tempfile
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.rule import Rule
from rich.table import Table

console = Console()

# ---------------------------------------------------------------------------
# String / name helpers
# ---------------------------------------------------------------------------

_WORD_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")


def split_words(text: str) -> list[str]:
    """Split an identifier or phrase into lower-case words.

    Examples::

        split_words("userProfile")   -> ["user", "profile"]
        split_words("HTTPServer v2") -> ["http", "server", "v2"]
        split_words("first_name")    -> ["first", "name"]
    """
    spaced = _WORD_BOUNDARY.sub(" ", str(text))
    return [w.lower() for w in re.split(r"[^A-Za-z0-9]+", spaced) if w]


def slugify(text: str) -> str:
    """Convert text to a URL-safe slug (``"User Profile"`` -> ``"user-profile"``)."""
    slug = re.sub(r"[^a-z0-9]+", "-", str(text).lower().strip())
    return slug.strip("-")


def pascal_case(text: str) -> str:
    return "".join(w.capitalize() for w in split_words(text))


def camel_case(text: str) -> str:
    pascal = pascal_case(text)
    return pascal[:1].lower() + pascal[1:]


def snake_case(text: str) -> str:
    return "_".join(split_words(text))


def kebab_case(text: str) -> str:
    return "-".join(split_words(text))


def capitalize_first(text: str) -> str:
    text = str(text)
    return text[:1].upper() + text[1:]


def lowercase_first(text: str) -> str:
    text = str(text)
    return text[:1].lower() + text[1:]


# ---------------------------------------------------------------------------
# JSON I/O
# ---------------------------------------------------------------------------


def atomic_write_text(path: str | Path, content: str) -> Path:
    """Write *content* to *path* so readers never observe a partial file.

    The text is staged in a temporary file in the destination directory,
    flushed to disk, then renamed over the target.

    Raises:
        OSError: If the directory cannot be created or the file written.
    """
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    fd, staging = tempfile.mkstemp(prefix=f".{target.name}.", suffix=".tmp", dir=target.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(staging, target)
    except BaseException:
        try:
            os.unlink(staging)
        except FileNotFoundError:
            pass
        raise
    return target


async def save_json(data: dict[str, Any] | list[Any], path: str | Path) -> None:
    """Save data as pretty-printed JSON.

    Parent directories are created automatically.  The write itself is
    performed in a worker thread to avoid blocking the event loop on large
    files, and is atomic.

    Args:
        data: Serialisable data (dict or list).
        path: Destination file path.
    """
    content = json.dumps(data, indent=2, ensure_ascii=False, default=str) + "\n"
    await asyncio.to_thread(atomic_write_text, path, content)


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------


def format_duration(seconds: float) -> str:
    """Format a duration in seconds to a human-readable string.

    Examples::

        format_duration(3.7)    -> "3.7s"
        format_duration(65.2)   -> "1m 5s"
        format_duration(3661.0) -> "1h 1m 1s"
    """
    if seconds < 0:
        return "0.0s"

    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    secs = seconds % 60

    parts: list[str] = []
    if hours > 0:
        parts.append(f"{hours}h")
    if minutes > 0:
        parts.append(f"{minutes}m")

    if hours > 0 or minutes > 0:
        parts.append(f"{int(secs)}s")
    else:
        parts.append(f"{secs:.1f}s")

    return " ".join(parts)


# ---------------------------------------------------------------------------
# Rich output helpers
# ---------------------------------------------------------------------------

STATE_COLORS: dict[str, str] = {
    "scanning": "bright_cyan",
    "extracting": "bright_cyan",
    "merging": "bright_green",
    "rendering": "bright_yellow",
    "writing": "bright_magenta",
    "done": "bright_blue",
    "failed": "bright_red",
}


def print_phase_header(name: str) -> None:
    """Print a prominent phase header using Rich.

    Args:
        name: Phase display name; also selects the rule colour.
    """
    color = STATE_COLORS.get(name.lower(), "white")
    console.print()
    console.print(Rule(f"[bold {color}] {name.upper()} [/bold {color}]", style=color))
    console.print()


def print_summary_table(data: dict[str, Any], title: str = "Summary") -> None:
    """Print a two-column key/value summary table."""
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Item", style="dim", no_wrap=True)
    table.add_column("Value")

    for key, value in data.items():
        table.add_row(key, str(value))

    console.print(table)
    console.print()


def print_issue_table(rows: list[tuple[str, str, str]], title: str) -> None:
    """Print ``(path, stage, reason)`` rows, one per warning or error."""
    table = Table(title=title, show_header=True, header_style="bold yellow")
    table.add_column("Path", no_wrap=True)
    table.add_column("Stage", style="dim")
    table.add_column("Reason")
    for path, stage, reason in rows:
        table.add_row(path or "-", stage, reason)
    console.print(table)
    console.print()


def print_success(message: str) -> None:
    """Print a green success message."""
    console.print(f"[bold green]{message}[/bold green]")


def print_error(message: str) -> None:
    """Print a red error message."""
    console.print(f"[bold red]{message}[/bold red]")


def print_warning(message: str) -> None:
    """Print a yellow warning message."""
    console.print(f"[bold yellow]{message}[/bold yellow]")
