"""Pattern catalog.

The catalog is keyed by ``(kind, name)``.  For every entry it remembers, per
attribute, each distinct value together with the files that contributed it.
An attribute whose contributors all agree is reported in ``attributes``; one
with differing values is reported in ``conflicts`` with every variant and
its sources, so nothing is silently overwritten.  Because an entry is just a
union of (value, source) facts, ``add`` and ``merge`` are commutative and
idempotent.  Exports carry the sources of agreed attributes as
``provenance`` so a re-imported catalog holds the same facts.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Iterator
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from patternkit.utils import atomic_write_text

from .models import (
    AttributeVariant,
    Pattern,
    PatternKind,
    ScanWarning,
    SourceLocation,
    field_from_pattern,
)

SCHEMA_VERSION = 1


def _canonical(value: Any) -> str:
    return json.dumps(value, sort_keys=True, default=str)


def _contributions(pattern: Pattern) -> list[dict[str, Any]]:
    """One attribute set per source of *pattern*.

    Without conflicts every source saw ``attributes``.  Otherwise each
    source gets the agreed attributes plus the variants it contributed.
    """
    if not pattern.conflicts:
        return [dict(pattern.attributes)]
    sources = set(pattern.sources)
    for variants in pattern.conflicts.values():
        for variant in variants:
            sources.update(variant.sources)
    views = []
    for source in sorted(sources):
        view = dict(pattern.attributes)
        for key, variants in pattern.conflicts.items():
            for variant in variants:
                if source in variant.sources:
                    view[key] = variant.value
                    break
        views.append(view)
    return views


def _provenance(raw: Any) -> dict[str, list[str]]:
    """Per-attribute sources from an export; malformed items are dropped."""
    if not isinstance(raw, dict):
        return {}
    return {
        key: [s for s in sources if isinstance(s, str)]
        for key, sources in raw.items()
        if isinstance(key, str) and isinstance(sources, list)
    }


def _validation_summary(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()))
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return "; ".join(parts)


class _Entry:
    """Accumulated facts for one identity key."""

    __slots__ = ("kind", "name", "sources", "values", "location")

    def __init__(self, kind: PatternKind, name: str) -> None:
        self.kind = kind
        self.name = name
        self.sources: set[str] = set()
        # attribute -> canonical value -> (value, contributing sources)
        self.values: dict[str, dict[str, tuple[Any, set[str]]]] = {}
        self.location: Optional[SourceLocation] = None

    def contribute(self, key: str, value: Any, sources: Iterable[str]) -> None:
        variants = self.values.setdefault(key, {})
        canon = _canonical(value)
        if canon in variants:
            variants[canon][1].update(sources)
        else:
            variants[canon] = (value, set(sources))

    def note_location(self, location: Optional[SourceLocation]) -> None:
        if location is None:
            return
        if self.location is None or (
            (location.path, location.line, location.column)
            < (self.location.path, self.location.line, self.location.column)
        ):
            self.location = location

    def absorb(self, other: "_Entry") -> None:
        self.sources |= other.sources
        for key, variants in other.values.items():
            for value, sources in variants.values():
                self.contribute(key, value, sources)
        self.note_location(other.location)

    def to_pattern(self) -> Pattern:
        attributes: dict[str, Any] = {}
        conflicts: dict[str, list[AttributeVariant]] = {}
        for key in sorted(self.values):
            variants = self.values[key]
            if len(variants) == 1:
                (value, _), = variants.values()
                attributes[key] = value
            else:
                conflicts[key] = [
                    AttributeVariant(value=value, sources=sorted(sources))
                    for _, (value, sources) in sorted(variants.items())
                ]
        return Pattern(
            kind=self.kind,
            name=self.name,
            attributes=attributes,
            location=self.location,
            sources=set(self.sources),
            conflicts=conflicts,
        )

    def provenance(self) -> dict[str, list[str]]:
        """Sources behind each attribute whose contributors agree."""
        return {
            key: sorted(next(iter(variants.values()))[1])
            for key, variants in sorted(self.values.items())
            if len(variants) == 1
        }

    def signature(self) -> tuple[Any, ...]:
        """Comparable form of every (value, sources) fact (location excluded)."""
        facts = {
            key: sorted((canon, sorted(sources)) for canon, (_, sources) in variants.items())
            for key, variants in self.values.items()
        }
        return (
            self.kind.value,
            self.name,
            tuple(sorted(self.sources)),
            _canonical(facts),
        )


class PatternCatalog:
    """Deduplicated, exportable set of patterns.

    Args:
        patterns: Optional initial patterns, added with ``add``.
    """

    def __init__(self, patterns: Optional[Iterable[Pattern]] = None) -> None:
        self.version = SCHEMA_VERSION
        self.exported_at: Optional[str] = None
        self.warnings: list[ScanWarning] = []
        self._entries: dict[tuple[str, str], _Entry] = {}
        if patterns is not None:
            self.add(patterns)

    # -- Mutation -------------------------------------------------------------

    def add(self, patterns: Iterable[Pattern]) -> int:
        """Merge *patterns* into the catalog by identity key.

        Form-field patterns that do not validate as a known field variant are
        rejected and recorded in ``warnings``.

        Returns:
            The number of patterns accepted.
        """
        accepted = 0
        for pattern in patterns:
            if not self._validate(pattern):
                continue
            self._absorb(self._entry_from_pattern(pattern))
            accepted += 1
        return accepted

    def merge(self, other: "PatternCatalog") -> "PatternCatalog":
        """Fold *other* into this catalog using the same policy as ``add``."""
        for theirs in other._entries.values():
            self._absorb(theirs)
        self.warnings.extend(other.warnings)
        return self

    def _absorb(self, theirs: _Entry) -> None:
        key = (theirs.kind.value, theirs.name)
        entry = self._entries.get(key)
        if entry is None:
            entry = self._entries[key] = _Entry(theirs.kind, theirs.name)
        entry.absorb(theirs)

    def _validate(self, pattern: Pattern) -> bool:
        """Check each contributor's own view of a form field.

        A pattern carrying conflicts is split back into one attribute set per
        source; attribute combinations no source produced are never checked.
        """
        if pattern.kind is not PatternKind.FORM_FIELD:
            return True
        for attributes in _contributions(pattern):
            try:
                field_from_pattern(pattern, attributes)
            except ValidationError as exc:
                location = pattern.location
                self.warnings.append(
                    ScanWarning(
                        path=location.path if location else ",".join(sorted(pattern.sources)),
                        reason=f"Rejected form field '{pattern.name}': {_validation_summary(exc)}",
                        stage="merge",
                        line=location.line if location else None,
                    )
                )
                return False
        return True

    @staticmethod
    def _entry_from_pattern(
        pattern: Pattern,
        provenance: Optional[dict[str, list[str]]] = None,
    ) -> _Entry:
        entry = _Entry(pattern.kind, pattern.name)
        sources = set(pattern.sources) or ({pattern.location.path} if pattern.location else set())
        entry.sources = set(sources)
        provenance = provenance or {}
        for key, value in pattern.attributes.items():
            entry.contribute(key, value, provenance.get(key) or sources)
        for key, variants in pattern.conflicts.items():
            for variant in variants:
                entry.contribute(key, variant.value, variant.sources)
        entry.note_location(pattern.location)
        return entry

    # -- Queries --------------------------------------------------------------

    def get(self, kind: PatternKind | str, name: str) -> Optional[Pattern]:
        entry = self._entries.get((PatternKind(kind).value, name))
        return entry.to_pattern() if entry is not None else None

    def query(
        self,
        kind: Optional[PatternKind | str] = None,
        name: Optional[str] = None,
        source: Optional[str] = None,
    ) -> list[Pattern]:
        """Patterns filtered by kind, name and/or contributing source."""
        wanted = PatternKind(kind).value if kind is not None else None
        result = []
        for (entry_kind, entry_name), entry in sorted(self._entries.items()):
            if wanted is not None and entry_kind != wanted:
                continue
            if name is not None and entry_name != name:
                continue
            if source is not None and source not in entry.sources:
                continue
            result.append(entry.to_pattern())
        return result

    def patterns(self) -> list[Pattern]:
        return self.query()

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[Pattern]:
        return iter(self.patterns())

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PatternCatalog):
            return NotImplemented
        if self._entries.keys() != other._entries.keys():
            return False
        return all(
            entry.signature() == other._entries[key].signature()
            for key, entry in self._entries.items()
        )

    __hash__ = None  # type: ignore[assignment]

    # -- Serialisation ----------------------------------------------------------

    def export(self) -> dict[str, Any]:
        """Versioned, schema-stable payload for JSON serialisation."""
        self.exported_at = datetime.now(timezone.utc).isoformat()
        patterns = []
        for _, entry in sorted(self._entries.items()):
            pattern = entry.to_pattern()
            item: dict[str, Any] = {
                "kind": pattern.kind.value,
                "name": pattern.name,
                "attributes": pattern.attributes,
                "provenance": entry.provenance(),
                "sources": sorted(pattern.sources),
            }
            if pattern.conflicts:
                item["conflicts"] = {
                    key: [variant.model_dump() for variant in variants]
                    for key, variants in pattern.conflicts.items()
                }
            if pattern.location is not None:
                item["location"] = pattern.location.model_dump()
            patterns.append(item)
        return {"version": self.version, "exported_at": self.exported_at, "patterns": patterns}

    def to_json(self) -> str:
        return json.dumps(self.export(), indent=2, ensure_ascii=False, default=str)

    @classmethod
    def from_export(cls, payload: dict[str, Any] | str) -> "PatternCatalog":
        """Rebuild a catalog from an ``export()`` payload.

        A missing or unsupported schema version, or a malformed payload,
        yields an empty catalog carrying an import warning.  Patterns of
        unknown kinds are skipped with a warning.
        """
        catalog = cls()
        if isinstance(payload, str):
            try:
                payload = json.loads(payload)
            except json.JSONDecodeError as exc:
                catalog._import_warning(f"Catalog is not valid JSON: {exc.msg}")
                return catalog
        if not isinstance(payload, dict):
            catalog._import_warning("Catalog payload is not a JSON object")
            return catalog

        version = payload.get("version")
        if not isinstance(version, int) or isinstance(version, bool):
            catalog._import_warning("Catalog has no schema version; ignored")
            return catalog
        if version > SCHEMA_VERSION or version < 1:
            catalog._import_warning(
                f"Unsupported catalog schema version {version} "
                f"(this build reads up to {SCHEMA_VERSION}); ignored"
            )
            return catalog
        catalog.exported_at = payload.get("exported_at")

        raw_patterns = payload.get("patterns", [])
        if not isinstance(raw_patterns, list):
            catalog._import_warning("Catalog 'patterns' is not a list; ignored")
            return catalog

        known_kinds = {kind.value for kind in PatternKind}
        for index, item in enumerate(raw_patterns):
            if not isinstance(item, dict):
                catalog._import_warning(f"Pattern #{index} is not an object; skipped")
                continue
            kind = item.get("kind")
            if kind not in known_kinds:
                catalog._import_warning(f"Unknown pattern kind {kind!r} for {item.get('name')!r}; skipped")
                continue
            try:
                pattern = Pattern(
                    kind=kind,
                    name=item.get("name", ""),
                    attributes=item.get("attributes") or {},
                    sources=set(item.get("sources") or []),
                    conflicts=item.get("conflicts") or {},
                    location=item.get("location"),
                )
            except ValidationError as exc:
                catalog._import_warning(f"Pattern #{index} is invalid: {_validation_summary(exc)}")
                continue
            # Exported entries were validated when first added.
            catalog._absorb(catalog._entry_from_pattern(pattern, _provenance(item.get("provenance"))))
        return catalog

    def _import_warning(self, reason: str) -> None:
        self.warnings.append(ScanWarning(reason=reason, stage="import"))

    def save(self, path: str | Path) -> Path:
        """Write the exported catalog to *path* atomically."""
        target = Path(path)
        atomic_write_text(target, self.to_json() + "\n")
        return target

    @classmethod
    def load(cls, path: str | Path) -> "PatternCatalog":
        """Read a catalog written by ``save``.

        Raises:
            OSError: If the file cannot be read.
        """
        raw = Path(path).read_text(encoding="utf-8")
        catalog = cls.from_export(raw)
        for warning in catalog.warnings:
            if not warning.path:
                warning.path = str(path)
        return catalog
