"""Source tree walker.

``SourceScanner`` lists candidate source files under a root directory and
reads them into ``SourceFile`` records.  Iteration is lazy and can be
restarted; each pass re-walks the tree and resets the warning list.
"""

from __future__ import annotations

import os
from collections.abc import Iterable, Iterator
from pathlib import Path
from typing import Optional

import pathspec

from patternkit.errors import SourceRootError

from .models import DIALECT_BY_SUFFIX, ScanWarning, SourceFile


DEFAULT_EXCLUDED_DIRS: frozenset[str] = frozenset({
    "node_modules",
    "dist",
    "build",
    ".git",
    "coverage",
    ".next",
    "out",
    "target",
    "vendor",
    "__pycache__",
    ".venv",
})

DEFAULT_EXCLUDE_PATTERNS: tuple[str, ...] = (
    "*.d.ts",
    "*.test.*",
    "*.spec.*",
)


class SourceScanner:
    """Walks a directory tree and yields candidate ``SourceFile`` records.

    Args:
        root: Directory to scan.
        include: Optional gitignore-style patterns; when given, only matching
            files are yielded.
        exclude: Gitignore-style patterns for files/directories to skip, in
            addition to the default declaration/test excludes and the
            conventional dependency/build directories.  A ``!pattern`` line
            re-includes files a default pattern skips.
        respect_gitignore: Also skip paths matched by ``<root>/.gitignore``.
    """

    def __init__(
        self,
        root: str | Path,
        include: Optional[Iterable[str]] = None,
        exclude: Optional[Iterable[str]] = None,
        *,
        respect_gitignore: bool = True,
    ) -> None:
        self.root = Path(root)
        include_lines = list(include or [])
        self._include = (
            pathspec.GitIgnoreSpec.from_lines(include_lines) if include_lines else None
        )
        self._exclude_lines = [*DEFAULT_EXCLUDE_PATTERNS, *(exclude or [])]
        self._respect_gitignore = respect_gitignore
        self.warnings: list[ScanWarning] = []

    # -- Public API --------------------------------------------------------

    def __iter__(self) -> Iterator[SourceFile]:
        paths = self.candidates()
        return self._read_all(paths)

    def candidates(self) -> list[str]:
        """Return sorted root-relative POSIX paths of candidate source files.

        Raises:
            SourceRootError: If the root is missing, not a directory, or
                unreadable.
        """
        self._check_root()
        self.warnings = []
        ignore = self._build_ignore_spec()
        found: list[str] = []

        def _on_error(exc: OSError) -> None:
            self.warnings.append(
                ScanWarning(
                    path=self._relative(exc.filename) if exc.filename else "",
                    reason=f"Unreadable directory: {exc.strerror or exc}",
                    stage="scan",
                )
            )

        for dirpath, dirnames, filenames in os.walk(self.root, onerror=_on_error):
            rel_dir = self._relative(dirpath)
            kept_dirs = []
            for d in sorted(dirnames):
                rel = f"{rel_dir}/{d}" if rel_dir else d
                if d in DEFAULT_EXCLUDED_DIRS or ignore.match_file(rel + "/"):
                    continue
                kept_dirs.append(d)
            dirnames[:] = kept_dirs

            for filename in sorted(filenames):
                rel = f"{rel_dir}/{filename}" if rel_dir else filename
                if Path(filename).suffix.lower() not in DIALECT_BY_SUFFIX:
                    continue
                if ignore.match_file(rel):
                    continue
                if self._include is not None and not self._include.match_file(rel):
                    continue
                found.append(rel)

        return found

    def read(self, relative_path: str) -> Optional[SourceFile]:
        """Read one candidate file.

        Returns ``None`` (and records a warning) when the file cannot be read
        or decoded.
        """
        source, warning = self.load(relative_path)
        if warning is not None:
            self.warnings.append(warning)
        return source

    def load(self, relative_path: str) -> tuple[Optional[SourceFile], Optional[ScanWarning]]:
        """Read one candidate file without touching scanner state.

        Safe to call from worker threads; the caller decides where the
        warning goes.
        """
        full = self.root / relative_path
        dialect = DIALECT_BY_SUFFIX[Path(relative_path).suffix.lower()]
        try:
            content = full.read_text(encoding="utf-8")
        except UnicodeDecodeError as exc:
            return None, ScanWarning(path=relative_path, reason=f"Not valid UTF-8: {exc.reason}")
        except OSError as exc:
            return None, ScanWarning(
                path=relative_path, reason=f"Unreadable file: {exc.strerror or exc}"
            )
        return SourceFile(path=relative_path, content=content, dialect=dialect), None

    # -- Internals ---------------------------------------------------------

    def _read_all(self, paths: list[str]) -> Iterator[SourceFile]:
        for rel in paths:
            source = self.read(rel)
            if source is not None:
                yield source

    def _check_root(self) -> None:
        if not self.root.exists():
            raise SourceRootError(self.root, "path does not exist")
        if not self.root.is_dir():
            raise SourceRootError(self.root, "not a directory")
        if not os.access(self.root, os.R_OK | os.X_OK):
            raise SourceRootError(self.root, "permission denied")

    def _build_ignore_spec(self) -> pathspec.GitIgnoreSpec:
        lines = list(self._exclude_lines)
        if self._respect_gitignore:
            gitignore = self.root / ".gitignore"
            if gitignore.is_file():
                try:
                    lines.extend(gitignore.read_text(encoding="utf-8").splitlines())
                except (OSError, UnicodeDecodeError) as exc:
                    self.warnings.append(
                        ScanWarning(path=".gitignore", reason=f"Ignored unreadable .gitignore: {exc}")
                    )
        return pathspec.GitIgnoreSpec.from_lines(lines)

    def _relative(self, path: str | os.PathLike[str]) -> str:
        rel = os.path.relpath(path, self.root)
        if rel == ".":
            return ""
        return rel.replace(os.sep, "/")
