"""Error taxonomy for PatternKit.

Only ``SourceRootError`` is fatal to a run.  Every other error type is raised
inside a single unit of work (one file, one template, one generation request)
and converted into a data record by the component that owns that unit.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional


class PatternKitError(Exception):
    """Base class for all PatternKit errors."""


class SourceRootError(PatternKitError, OSError):
    """The scan root does not exist or cannot be read.  Aborts the run."""

    def __init__(self, path: str | Path, reason: str) -> None:
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"Cannot scan {self.path}: {reason}")


class ParseError(PatternKitError):
    """A source file could not be parsed into a syntax tree."""

    def __init__(
        self,
        path: str,
        message: str,
        line: Optional[int] = None,
        column: Optional[int] = None,
    ) -> None:
        self.path = path
        self.message = message
        self.line = line
        self.column = column
        location = f"{path}:{line}:{column}" if line is not None else path
        super().__init__(f"{location}: {message}")


class TemplateError(PatternKitError):
    """A template could not be found or compiled."""

    def __init__(
        self,
        category: str,
        name: str,
        message: str,
        line: Optional[int] = None,
    ) -> None:
        self.category = category
        self.name = name
        self.message = message
        self.line = line
        where = f"{category}/{name}"
        if line is not None:
            where += f" (line {line})"
        super().__init__(f"Template {where}: {message}")


class TemplateNotFoundError(TemplateError):
    """No template file exists for the requested category and name."""

    def __init__(self, category: str, name: str) -> None:
        super().__init__(category, name, "template not found")


class DataModelError(PatternKitError):
    """A data model failed validation against its category schema."""

    def __init__(self, category: str, problems: list[str]) -> None:
        self.category = category
        self.problems = problems
        super().__init__(
            f"Invalid data for category '{category}': " + "; ".join(problems)
        )


class WriteError(PatternKitError):
    """An output file could not be written."""

    def __init__(self, path: str | Path, reason: str) -> None:
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"Cannot write {self.path}: {reason}")
