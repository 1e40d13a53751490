"""Compiled-template cache.

Provides the ``TemplateCache`` class which resolves Jinja2 templates by
``(category, name)`` under a template directory, compiles each one once, and
hands back the cached compiled form for as long as the file on disk is
unchanged.  Helpers (registered as both filters and globals) and partials
(included with ``{% include "name" %}``) belong to the cache's environment
and apply to every template rendered after registration.
"""

from __future__ import annotations

import asyncio
import json
import threading
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from jinja2 import (
    DictLoader,
    Environment,
    StrictUndefined,
    Template,
    TemplateSyntaxError,
    Undefined,
    select_autoescape,
)

from patternkit.config import BUILTIN_TEMPLATE_DIR, TemplateConfig
from patternkit.errors import TemplateError, TemplateNotFoundError
from patternkit.utils import (
    camel_case,
    capitalize_first,
    kebab_case,
    lowercase_first,
    pascal_case,
    slugify,
    snake_case,
)


Fingerprint = tuple[int, int]


@dataclass(frozen=True)
class TemplateDescriptor:
    """A compiled template and the on-disk state it was compiled from."""

    category: str
    name: str
    path: Path
    template: Template
    fingerprint: Fingerprint


# ---------------------------------------------------------------------------
# Built-in helpers
# ---------------------------------------------------------------------------

_TS_TYPES: dict[str, str] = {
    "text": "string",
    "email": "string",
    "password": "string",
    "textarea": "string",
    "enum": "string",
    "number": "number",
    "decimal": "number",
    "boolean": "boolean",
    "date": "string",
    "datetime": "string",
}


def ts_type(field_type: Any, item_type: Any = None) -> str:
    """TypeScript type for a form-field type (``"decimal"`` -> ``"number"``)."""
    if field_type == "array":
        inner = _TS_TYPES.get(str(item_type or "text"), "string")
        return f"{inner}[]"
    return _TS_TYPES.get(str(field_type), "any")


def json_helper(value: Any, indent: Optional[int] = None) -> str:
    return json.dumps(value, indent=indent, ensure_ascii=False, default=str)


def default_value(value: Any, fallback: Any = "") -> Any:
    """*value*, or *fallback* when it is undefined, ``None`` or empty."""
    if isinstance(value, Undefined) or value is None or value == "":
        return fallback
    return value


BUILTIN_HELPERS: dict[str, Callable[..., Any]] = {
    "slugify": slugify,
    "pascal_case": pascal_case,
    "snake_case": snake_case,
    "camel_case": camel_case,
    "kebab_case": kebab_case,
    "capitalize_first": capitalize_first,
    "lowercase_first": lowercase_first,
    "ts_type": ts_type,
    "json": json_helper,
    "default_value": default_value,
}


# ---------------------------------------------------------------------------
# TemplateCache
# ---------------------------------------------------------------------------


class TemplateCache:
    """Loads, compiles and caches templates keyed by ``(category, name)``.

    Templates live at ``<template_dir>/<category>/<name><extension>``; when a
    category lacks the file, ``<template_dir>/<common_category>/`` is tried.

    Concurrent first requests for one key share a single compilation: the
    first caller starts it and the others await the same in-flight task.

    Args:
        template_dir: Root of the template tree.  Defaults to the built-in
            templates shipped with PatternKit (and their partials).
        extension: Template file suffix.
        common_category: Fallback category.
        partials_dir: Directory whose templates are registered as partials.
    """

    def __init__(
        self,
        template_dir: str | Path | None = None,
        *,
        extension: str = ".j2",
        common_category: str = "common",
        partials_dir: str | Path | None = None,
    ) -> None:
        self.template_dir = Path(template_dir) if template_dir is not None else BUILTIN_TEMPLATE_DIR
        self.extension = extension
        self.common_category = common_category
        self._partials: dict[str, str] = {}
        self.env = Environment(
            loader=DictLoader(self._partials),
            autoescape=select_autoescape([], default_for_string=False),
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
            undefined=StrictUndefined,
        )
        for helper_name, helper in BUILTIN_HELPERS.items():
            self.register_helper(helper_name, helper)

        self._entries: dict[tuple[str, str], TemplateDescriptor] = {}
        self._inflight: dict[tuple[str, str], asyncio.Task[TemplateDescriptor]] = {}
        self._lock = threading.Lock()
        self.compile_count = 0

        if partials_dir is None and template_dir is None:
            partials_dir = BUILTIN_TEMPLATE_DIR / "partials"
        if partials_dir is not None:
            self.load_partials(partials_dir)

    @classmethod
    def from_config(cls, config: TemplateConfig) -> "TemplateCache":
        return cls(
            config.template_dir,
            extension=config.extension,
            common_category=config.common_category,
            partials_dir=config.resolved_partials_dir,
        )

    # -- Helpers & partials --------------------------------------------------

    def register_helper(self, name: str, helper: Callable[..., Any]) -> None:
        """Expose *helper* to templates as ``{{ x | name }}`` and ``{{ name(x) }}``."""
        self.env.filters[name] = helper
        self.env.globals[name] = helper

    def register_partial(self, name: str, source: str) -> None:
        """Register *source* as a partial, replacing any previous binding."""
        self._partials[name] = source

    def load_partials(self, directory: str | Path) -> list[str]:
        """Register every template file in *directory* as a partial named by its stem.

        Returns:
            The registered partial names, sorted.
        """
        names: list[str] = []
        base = Path(directory)
        if not base.is_dir():
            return names
        for path in sorted(base.glob(f"*{self.extension}")):
            name = path.name[: -len(self.extension)] if self.extension else path.name
            self.register_partial(name, path.read_text(encoding="utf-8"))
            names.append(name)
        return names

    @property
    def partials(self) -> list[str]:
        return sorted(self._partials)

    # -- Lookup --------------------------------------------------------------

    def resolve_path(self, category: str, name: str) -> Optional[Path]:
        """Path of the template for ``(category, name)``, or ``None``."""
        filename = f"{name}{self.extension}"
        for candidate_category in (category, self.common_category):
            candidate = self.template_dir / candidate_category / filename
            if candidate.is_file():
                return candidate
        return None

    def template_exists(self, category: str, name: str) -> bool:
        """Whether a template exists, without compiling it."""
        return self.resolve_path(category, name) is not None

    def list_templates(self) -> list[tuple[str, str]]:
        """Every ``(category, name)`` available under the template directory."""
        if not self.template_dir.is_dir():
            return []
        found = []
        for path in sorted(self.template_dir.glob(f"*/*{self.extension}")):
            name = path.name[: -len(self.extension)] if self.extension else path.name
            found.append((path.parent.name, name))
        return found

    def is_cached(self, category: str, name: str) -> bool:
        return (category, name) in self._entries

    # -- Compilation -----------------------------------------------------------

    async def load_template(self, category: str, name: str) -> Template:
        """Return the compiled template for ``(category, name)``.

        The cached form is reused while the file's fingerprint (mtime, size)
        is unchanged; otherwise the template is recompiled.

        Raises:
            TemplateNotFoundError: If no template file exists.
            TemplateError: If the template fails to compile.
        """
        key = (category, name)
        path = self.resolve_path(category, name)
        if path is None:
            raise TemplateNotFoundError(category, name)

        entry = self._entries.get(key)
        if entry is not None and entry.path == path:
            try:
                current = _fingerprint(path)
            except OSError:
                current = None
            if current == entry.fingerprint:
                return entry.template

        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(asyncio.to_thread(self._compile, category, name, path))
            self._inflight[key] = task
            task.add_done_callback(lambda done, key=key: self._finish(key, done))
        descriptor = await asyncio.shield(task)
        return descriptor.template

    def _finish(self, key: tuple[str, str], task: asyncio.Task[TemplateDescriptor]) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
        if not task.cancelled():
            # Mark the exception retrieved; awaiting callers re-raise it.
            task.exception()

    def _compile(self, category: str, name: str, path: Path) -> TemplateDescriptor:
        try:
            fingerprint = _fingerprint(path)
            source = path.read_text(encoding="utf-8")
        except FileNotFoundError as exc:
            raise TemplateNotFoundError(category, name) from exc
        except (OSError, UnicodeDecodeError) as exc:
            raise TemplateError(category, name, f"cannot read {path}: {exc}") from exc

        try:
            template = self.env.from_string(source)
        except TemplateSyntaxError as exc:
            raise TemplateError(category, name, exc.message or str(exc), exc.lineno) from exc

        descriptor = TemplateDescriptor(
            category=category,
            name=name,
            path=path,
            template=template,
            fingerprint=fingerprint,
        )
        with self._lock:
            self.compile_count += 1
            self._entries[(category, name)] = descriptor
        return descriptor

    def clear_cache(self) -> None:
        """Evict every compiled template.  Helpers and partials are kept."""
        with self._lock:
            self._entries.clear()

    # -- Rendering -------------------------------------------------------------

    async def render(self, category: str, name: str, context: dict[str, Any]) -> str:
        """Load ``(category, name)`` and render it with *context*."""
        template = await self.load_template(category, name)
        return template.render(**context)


def _fingerprint(path: Path) -> Fingerprint:
    stat = path.stat()
    return (stat.st_mtime_ns, stat.st_size)
