"""Pattern extraction.

``PatternExtractor`` parses one ``SourceFile`` into a tree-sitter syntax tree
and runs a generic pre-order visitor over it, handing every node to the
matchers registered for that node type.  ``extract_tree`` fans the work out
over a bounded pool of worker threads; each file's patterns stay in a
private buffer until the pool has finished, and the buffers are returned in
path order so the caller can merge them into a catalog at one sync point.
"""

from __future__ import annotations

import asyncio
import json
import threading
from dataclasses import dataclass, field
from typing import Any, Optional

from pydantic import BaseModel, Field

from patternkit.config import ScanConfig
from patternkit.errors import ParseError

from .matchers import MatchContext, Matcher, MatcherRegistry, collect_imports, default_registry
from .models import Dialect, Pattern, ScanWarning, SourceFile
from .syntax import parse_source, walk
from .walker import SourceScanner


# ---------------------------------------------------------------------------
# Result records
# ---------------------------------------------------------------------------

@dataclass
class FileExtraction:
    """Private per-file buffer filled by one worker."""

    path: str
    patterns: list[Pattern] = field(default_factory=list)
    warnings: list[ScanWarning] = field(default_factory=list)
    read: bool = False
    parsed: bool = False
    skipped: bool = False


class ExtractionResult(BaseModel):
    """Everything ``extract_tree`` found, in path order."""

    patterns: list[Pattern] = Field(default_factory=list)
    warnings: list[ScanWarning] = Field(default_factory=list)
    files_scanned: int = 0
    files_parsed: int = 0
    aborted: bool = False


# ---------------------------------------------------------------------------
# Per-file folding
# ---------------------------------------------------------------------------

def _canonical(value: Any) -> str:
    return json.dumps(value, sort_keys=True, default=str)


def _fold_into(target: Pattern, incoming: Pattern) -> bool:
    """Fold *incoming* into *target* when they describe the same usage.

    List-valued attributes are unioned; every other key must agree.
    Returns ``False`` (and leaves *target* untouched) otherwise.
    """
    merged: dict[str, Any] = dict(target.attributes)
    for key, value in incoming.attributes.items():
        if key not in merged:
            merged[key] = value
            continue
        current = merged[key]
        if isinstance(current, list) and isinstance(value, list):
            by_key = {_canonical(item): item for item in [*current, *value]}
            merged[key] = [by_key[k] for k in sorted(by_key)]
        elif _canonical(current) != _canonical(value):
            return False
    target.attributes = merged
    return True


def fold_file_patterns(patterns: list[Pattern]) -> list[Pattern]:
    """Collapse repeated sightings of one pattern inside a single file."""
    folded: list[Pattern] = []
    by_key: dict[tuple[str, str], list[Pattern]] = {}
    for pattern in patterns:
        candidates = by_key.setdefault(pattern.key, [])
        if any(_fold_into(existing, pattern) for existing in candidates):
            continue
        candidates.append(pattern)
        folded.append(pattern)
    return folded


# ---------------------------------------------------------------------------
# Extractor
# ---------------------------------------------------------------------------

class PatternExtractor:
    """Runs the matcher registry over parsed source files.

    Args:
        settings: Scan configuration (component names, hooks, ...).
        registry: Matchers to apply.  Defaults to a fresh built-in registry.
    """

    def __init__(
        self,
        settings: Optional[ScanConfig] = None,
        registry: Optional[MatcherRegistry] = None,
    ) -> None:
        self.settings = settings or ScanConfig()
        self.registry = registry if registry is not None else default_registry()

    # -- Single file --------------------------------------------------------

    def extract(self, source: SourceFile) -> list[Pattern]:
        """Extract patterns from one file.

        Raises:
            ParseError: If the file cannot be parsed, or a matcher trips over
                an unexpected tree shape.
        """
        tree = parse_source(source)
        root = tree.root_node
        imports = collect_imports(root) if source.dialect is not Dialect.JAVA else {}
        ctx = MatchContext(source=source, settings=self.settings, imports=imports)
        dispatch: dict[str, list[Matcher]] = {}
        found: list[Pattern] = []
        for node in walk(root):
            matchers = dispatch.get(node.type)
            if matchers is None:
                matchers = dispatch[node.type] = self.registry.for_node(node.type, source.dialect)
            for matcher in matchers:
                try:
                    found.extend(matcher.match(node, ctx))
                except (AttributeError, IndexError, KeyError, TypeError, ValueError) as exc:
                    line, column = node.start_point
                    raise ParseError(
                        source.path,
                        f"matcher '{matcher.name}' failed: {exc}",
                        line + 1,
                        column + 1,
                    ) from exc
        return fold_file_patterns(found)

    def extract_safe(self, source: SourceFile) -> tuple[list[Pattern], Optional[ScanWarning]]:
        """Like ``extract`` but returns a parse failure as a warning."""
        try:
            return self.extract(source), None
        except ParseError as exc:
            return [], ScanWarning(
                path=exc.path, reason=exc.message, stage="parse", line=exc.line
            )

    # -- Whole tree ---------------------------------------------------------

    def _process(self, scanner: SourceScanner, path: str, abort: Optional[threading.Event]) -> FileExtraction:
        buffer = FileExtraction(path=path)
        if abort is not None and abort.is_set():
            buffer.skipped = True
            return buffer
        source, warning = scanner.load(path)
        if warning is not None:
            buffer.warnings.append(warning)
            return buffer
        buffer.read = True
        patterns, warning = self.extract_safe(source)
        if warning is not None:
            buffer.warnings.append(warning)
            return buffer
        buffer.parsed = True
        buffer.patterns = patterns
        return buffer

    async def extract_tree(
        self,
        scanner: SourceScanner,
        *,
        paths: Optional[list[str]] = None,
        max_workers: Optional[int] = None,
        abort: Optional[threading.Event] = None,
    ) -> ExtractionResult:
        """Scan and extract every candidate file under the scanner's root.

        Files are parsed on up to *max_workers* threads.  The abort flag is
        checked before each file is started; files already in flight finish.

        Args:
            scanner: Source of candidate files.
            paths: Candidates already listed by ``scanner.candidates()``.
            max_workers: Worker pool size; defaults to the scan settings.
            abort: Optional cancellation flag.

        Raises:
            SourceRootError: If the scan root is missing or unreadable.
        """
        if paths is None:
            paths = scanner.candidates()
        workers = max_workers or self.settings.max_workers
        semaphore = asyncio.Semaphore(workers)

        async def _run(path: str) -> FileExtraction:
            async with semaphore:
                return await asyncio.to_thread(self._process, scanner, path, abort)

        buffers = await asyncio.gather(*(_run(path) for path in paths))

        result = ExtractionResult(warnings=list(scanner.warnings))
        for buffer in buffers:
            if buffer.skipped:
                result.aborted = True
                continue
            result.files_scanned += 1
            result.files_parsed += 1 if buffer.parsed else 0
            result.patterns.extend(buffer.patterns)
            result.warnings.extend(buffer.warnings)
        return result

    def extract_all(self, scanner: SourceScanner) -> ExtractionResult:
        """Single-threaded, fully sequential variant of ``extract_tree``."""
        result = ExtractionResult()
        for path in scanner.candidates():
            buffer = self._process(scanner, path, None)
            result.files_scanned += 1
            result.files_parsed += 1 if buffer.parsed else 0
            result.patterns.extend(buffer.patterns)
            result.warnings.extend(buffer.warnings)
        result.warnings[:0] = scanner.warnings
        return result
