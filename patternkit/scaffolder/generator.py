"""Multi-file generation with per-request failure isolation.

The ``Generator`` takes a batch of ``GenerationRequest`` values, validates
each request's data against its category schema, renders it through the
``TemplateCache`` and writes the result atomically.  Every failure is
confined to its own request and recorded as a ``GenerationError``; the
remaining requests still run.

Quick usage::

    cache = TemplateCache("templates/")
    generator = Generator(cache, output_root=Path("out"))
    result = await generator.generate([
        GenerationRequest.build("domain", "dto", domain_model, "src/UserDto.ts"),
        GenerationRequest.build("forms", "form", form_model, "src/UserForm.tsx"),
    ])
"""

from __future__ import annotations

import asyncio
import threading
from collections.abc import Sequence
from pathlib import Path
from typing import Optional

import jinja2

from patternkit.errors import DataModelError, TemplateError, WriteError
from patternkit.utils import atomic_write_text

from .models import (
    ErrorKind,
    GenerationError,
    GenerationRequest,
    GenerationResult,
    RenderedFile,
    validate_data,
)
from .templates import TemplateCache

# Exceptions a template can raise while rendering user data.
_RENDER_ERRORS = (
    jinja2.TemplateError,
    ArithmeticError,
    AttributeError,
    LookupError,
    TypeError,
    ValueError,
)


class Generator:
    """Renders and writes generation requests.

    Args:
        cache: Template cache shared by every request.
        output_root: Base directory for relative output paths.
        overwrite: Default overwrite directive for every request.
        max_parallel_writes: Upper bound on concurrent renders/writes.
        abort: Flag checked between whole requests; once set, requests that
            have not started are reported as cancelled.
    """

    def __init__(
        self,
        cache: TemplateCache,
        *,
        output_root: str | Path | None = None,
        overwrite: bool = False,
        max_parallel_writes: int = 4,
        abort: Optional[threading.Event] = None,
    ) -> None:
        self.cache = cache
        self.output_root = Path(output_root) if output_root is not None else None
        self.overwrite = overwrite
        self.max_parallel_writes = max(1, max_parallel_writes)
        self.abort = abort or threading.Event()

    # -- Public API ------------------------------------------------------------

    async def generate(self, requests: Sequence[GenerationRequest]) -> GenerationResult:
        """Render then write every request; see ``render_all`` / ``write_all``."""
        rendered, render_errors = await self.render_all(requests)
        written, write_errors = await self.write_all(rendered, requests)
        errors = sorted([*render_errors, *write_errors], key=lambda e: e.request_index)
        return GenerationResult(
            written=written,
            errors=errors,
            aborted=self.abort.is_set(),
        )

    async def render_all(
        self, requests: Sequence[GenerationRequest]
    ) -> tuple[list[RenderedFile], list[GenerationError]]:
        """Render every request, isolating failures per request.

        Requests whose output path repeats an earlier request's are rejected
        as ``duplicate-output`` errors.

        Returns:
            Rendered files and errors, each ordered by request index.
        """
        errors: list[GenerationError] = []
        pending: list[tuple[int, GenerationRequest]] = []
        seen: set[Path] = set()
        for index, request in enumerate(requests):
            target = self.resolve_output(request.output_path)
            key = target.resolve()
            if key in seen:
                errors.append(
                    self._error(index, request, "duplicate-output",
                                f"output path {target} is already targeted by an earlier request")
                )
                continue
            seen.add(key)
            pending.append((index, request))

        semaphore = asyncio.Semaphore(self.max_parallel_writes)

        async def _render(index: int, request: GenerationRequest) -> RenderedFile | GenerationError:
            async with semaphore:
                if self.abort.is_set():
                    return self._error(index, request, "cancelled", "run aborted before rendering")
                return await self._render_one(index, request)

        outcomes = await asyncio.gather(*(_render(i, r) for i, r in pending))
        rendered = [o for o in outcomes if isinstance(o, RenderedFile)]
        errors.extend(o for o in outcomes if isinstance(o, GenerationError))
        errors.sort(key=lambda e: e.request_index)
        return rendered, errors

    async def write_all(
        self,
        rendered: Sequence[RenderedFile],
        requests: Sequence[GenerationRequest],
    ) -> tuple[list[str], list[GenerationError]]:
        """Write rendered files atomically, isolating failures per file.

        Returns:
            Written paths and errors, each ordered by request index.
        """
        semaphore = asyncio.Semaphore(self.max_parallel_writes)

        async def _write(item: RenderedFile) -> str | GenerationError:
            request = requests[item.request_index]
            async with semaphore:
                if self.abort.is_set():
                    return self._error(item.request_index, request, "cancelled",
                                       "run aborted before writing")
                try:
                    path = await asyncio.to_thread(self._write_file, item)
                except WriteError as exc:
                    return self._error(item.request_index, request, "write", exc.reason)
                return str(path)

        outcomes = await asyncio.gather(*(_write(item) for item in rendered))
        written = [o for o in outcomes if isinstance(o, str)]
        errors = [o for o in outcomes if isinstance(o, GenerationError)]
        return written, errors

    def resolve_output(self, output_path: Path) -> Path:
        if self.output_root is not None and not output_path.is_absolute():
            return self.output_root / output_path
        return output_path

    # -- Internals -------------------------------------------------------------

    async def _render_one(self, index: int, request: GenerationRequest) -> RenderedFile | GenerationError:
        ref = request.template
        try:
            data = validate_data(ref.category, request.data)
        except DataModelError as exc:
            return self._error(index, request, "data", str(exc))

        try:
            template = await self.cache.load_template(ref.category, ref.name)
        except TemplateError as exc:
            return self._error(index, request, "template", exc.message, exc.line)

        try:
            content = template.render(**data)
        except _RENDER_ERRORS as exc:
            line = getattr(exc, "lineno", None)
            return self._error(index, request, "render", f"{type(exc).__name__}: {exc}", line)

        return RenderedFile(
            request_index=index,
            output_path=self.resolve_output(request.output_path),
            content=content,
            overwrite=request.overwrite or self.overwrite,
        )

    @staticmethod
    def _write_file(item: RenderedFile) -> Path:
        target = item.output_path
        if target.is_dir():
            raise WriteError(target, "destination is a directory")
        if target.exists() and not item.overwrite:
            raise WriteError(target, "file exists and overwrite was not requested")
        try:
            return atomic_write_text(target, item.content)
        except OSError as exc:
            raise WriteError(target, exc.strerror or str(exc)) from exc

    def _error(
        self,
        index: int,
        request: GenerationRequest,
        kind: ErrorKind,
        message: str,
        line: Optional[int] = None,
    ) -> GenerationError:
        return GenerationError(
            request_index=index,
            template=str(request.template),
            output_path=str(self.resolve_output(request.output_path)),
            kind=kind,
            message=message,
            line=line,
        )
