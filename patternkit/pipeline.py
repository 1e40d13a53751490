"""PatternKit pipeline orchestrator.

Drives one run through its states::

    Idle -> Scanning -> Extracting -> Merging -> Rendering -> Writing -> Done | Failed

Scanning lists candidate files, Extracting parses them on a bounded worker
pool, Merging folds every per-file buffer (and an optional previously
exported catalog) into one ``PatternCatalog``, Rendering and Writing run the
generation requests.  Only a missing or unreadable scan root moves the run
to ``Failed``; every other problem is collected into the ``RunReport``.

Usage::

    patternkit scan ./my-app --output ./out
    patternkit generate forms form --fields "name:text,email:email" --output UserForm.tsx
    patternkit generate forms form --catalog out/.patternkit/catalog.json --entity User \\
        --source src/domain/UserDto.ts --output UserForm.tsx
"""

from __future__ import annotations

import asyncio
import sys
import threading
import time
from collections.abc import Callable, Sequence
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Optional, Union

from pydantic import BaseModel, Field, ValidationError, computed_field
from rich.panel import Panel

from patternkit.config import Config, TemplateConfig
from patternkit.errors import DataModelError, SourceRootError
from patternkit.scaffolder.generator import Generator
from patternkit.scaffolder.models import (
    GenerationRequest,
    GenerationResult,
    form_model_from_catalog,
    navigation_model_from_catalog,
    parse_field_list,
)
from patternkit.scaffolder.templates import TemplateCache
from patternkit.scanner.catalog import PatternCatalog
from patternkit.scanner.extractor import PatternExtractor
from patternkit.scanner.matchers import MatcherRegistry
from patternkit.scanner.models import CatalogReport, ScanWarning
from patternkit.scanner.walker import SourceScanner
from patternkit.utils import (
    console,
    format_duration,
    print_error,
    print_issue_table,
    print_phase_header,
    print_success,
    print_summary_table,
    print_warning,
    save_json,
)


# ---------------------------------------------------------------------------
# Run state & report
# ---------------------------------------------------------------------------

class RunState(str, Enum):
    IDLE = "idle"
    SCANNING = "scanning"
    EXTRACTING = "extracting"
    MERGING = "merging"
    RENDERING = "rendering"
    WRITING = "writing"
    DONE = "done"
    FAILED = "failed"


class RunReport(BaseModel):
    """Everything a run produced, as data."""

    started_at: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    finished_at: Optional[str] = None
    duration_seconds: float = 0.0
    state: RunState = RunState.IDLE
    history: list[RunState] = Field(default_factory=lambda: [RunState.IDLE])
    catalog: CatalogReport = Field(default_factory=CatalogReport)
    generation: GenerationResult = Field(default_factory=GenerationResult)
    fatal_error: Optional[str] = None
    require_patterns: bool = False
    aborted: bool = False

    @computed_field  # type: ignore[misc]
    @property
    def success(self) -> bool:
        """False on a fatal error, any generation error, an abort, or an
        expected-but-empty catalog."""
        if self.fatal_error is not None or self.aborted or self.state is RunState.FAILED:
            return False
        if not self.generation.success:
            return False
        if self.require_patterns and self.catalog.catalog_size == 0:
            return False
        return True


RequestSource = Union[
    Sequence[GenerationRequest],
    Callable[[PatternCatalog], Sequence[GenerationRequest]],
]


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------


class Pipeline:
    """PatternKit run orchestrator.

    Every collaborator (matcher registry, template cache, abort flag) is
    created here or passed in, and lives only as long as the pipeline.

    Attributes:
        config: Run configuration.
        cache: Template cache used by the generator.
        report: Report of the current (or last) run.
        catalog: Catalog built by the last scan.
    """

    def __init__(
        self,
        config: Config,
        *,
        registry: Optional[MatcherRegistry] = None,
        cache: Optional[TemplateCache] = None,
    ) -> None:
        self.config = config
        self.extractor = PatternExtractor(config.scan, registry)
        self.cache = cache or TemplateCache.from_config(config.templates)
        self._abort = threading.Event()
        self.report = RunReport(require_patterns=config.scan.require_patterns)
        self.catalog = PatternCatalog()

    # ------------------------------------------------------------------
    # State handling
    # ------------------------------------------------------------------

    @property
    def state(self) -> RunState:
        return self.report.state

    def _enter(self, state: RunState) -> None:
        self.report.state = state
        self.report.history.append(state)

    def cancel(self) -> None:
        """Request an abort.  Checked between whole files and whole requests."""
        self._abort.set()

    @property
    def cancelled(self) -> bool:
        return self._abort.is_set()

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    async def scan(self) -> PatternCatalog:
        """Scanning, Extracting and Merging.

        Raises:
            SourceRootError: If the project root is missing or unreadable.
        """
        self._enter(RunState.SCANNING)
        scan_cfg = self.config.scan
        scanner = SourceScanner(
            self.config.project_root,
            include=scan_cfg.include,
            exclude=scan_cfg.exclude,
            respect_gitignore=scan_cfg.respect_gitignore,
        )
        paths = scanner.candidates()

        self._enter(RunState.EXTRACTING)
        extraction = await self.extractor.extract_tree(
            scanner, paths=paths, max_workers=scan_cfg.max_workers, abort=self._abort
        )

        self._enter(RunState.MERGING)
        catalog = PatternCatalog()
        catalog.add(extraction.patterns)
        if self.config.previous_catalog is not None:
            catalog.merge(self._load_previous(self.config.previous_catalog))

        warnings = [*extraction.warnings, *catalog.warnings]
        self.report.catalog = CatalogReport(
            root=str(self.config.project_root),
            files_scanned=extraction.files_scanned,
            files_parsed=extraction.files_parsed,
            patterns_found=len(extraction.patterns),
            catalog_size=len(catalog),
            warnings=warnings,
            aborted=extraction.aborted,
        )
        self.report.aborted = self.report.aborted or extraction.aborted
        self.catalog = catalog
        return catalog

    def _load_previous(self, path: Path) -> PatternCatalog:
        try:
            return PatternCatalog.load(path)
        except OSError as exc:
            previous = PatternCatalog()
            previous.warnings.append(
                ScanWarning(path=str(path), reason=f"Previous catalog unreadable: {exc}", stage="import")
            )
            return previous

    async def generate(self, requests: Sequence[GenerationRequest]) -> GenerationResult:
        """Rendering and Writing."""
        generator = Generator(
            self.cache,
            output_root=self.config.output_dir,
            overwrite=self.config.generate.overwrite,
            max_parallel_writes=self.config.generate.max_parallel_writes,
            abort=self._abort,
        )
        self._enter(RunState.RENDERING)
        rendered, render_errors = await generator.render_all(requests)

        self._enter(RunState.WRITING)
        written, write_errors = await generator.write_all(rendered, requests)

        result = GenerationResult(
            written=written,
            errors=sorted([*render_errors, *write_errors], key=lambda e: e.request_index),
            aborted=self._abort.is_set(),
        )
        self.report.generation = result
        self.report.aborted = self.report.aborted or result.aborted
        return result

    # ------------------------------------------------------------------
    # Full run
    # ------------------------------------------------------------------

    async def run(self, requests: RequestSource = (), *, scan: bool = True) -> RunReport:
        """Execute a run and return its report.

        Args:
            requests: Generation requests, or a callable building them from
                the freshly merged catalog.
            scan: When ``False`` the scanning stages are skipped and the
                catalog is the previously exported one (if configured).

        Returns:
            The final ``RunReport``.  A fatal error is reported in
            ``fatal_error`` rather than raised.
        """
        start = time.monotonic()
        self.config.ensure_directories()
        try:
            if scan:
                catalog = await self.scan()
                await self._persist_catalog(catalog)
            elif self.config.previous_catalog is not None:
                self.catalog = self._load_previous(self.config.previous_catalog)
                self.report.catalog.catalog_size = len(self.catalog)
                self.report.catalog.warnings.extend(self.catalog.warnings)

            batch = requests(self.catalog) if callable(requests) else requests
            await self.generate(batch)
            self._enter(RunState.DONE)
        except SourceRootError as exc:
            self.report.fatal_error = str(exc)
            self._enter(RunState.FAILED)
        except (DataModelError, ValidationError) as exc:
            # Raised while building requests from the catalog.
            self.report.fatal_error = str(exc)
            self._enter(RunState.FAILED)

        self.report.finished_at = datetime.now(timezone.utc).isoformat()
        self.report.duration_seconds = round(time.monotonic() - start, 3)
        await self._persist_report()
        return self.report

    async def _persist_catalog(self, catalog: PatternCatalog) -> None:
        try:
            await asyncio.to_thread(catalog.save, self.config.catalog_path)
        except OSError as exc:
            self.report.catalog.warnings.append(
                ScanWarning(path=str(self.config.catalog_path), reason=f"Catalog not saved: {exc}")
            )

    async def _persist_report(self) -> None:
        try:
            await save_json(self.report.model_dump(mode="json"), self.config.report_path)
        except OSError as exc:
            self.report.catalog.warnings.append(
                ScanWarning(path=str(self.config.report_path), reason=f"Report not saved: {exc}")
            )


# ---------------------------------------------------------------------------
# Console reporting
# ---------------------------------------------------------------------------


def print_report(report: RunReport, config: Config) -> None:
    """Render a run report on the console, listing every warning and error."""
    print_phase_header(report.state.value)
    print_summary_table(
        {
            "Files scanned": report.catalog.files_scanned,
            "Files parsed": report.catalog.files_parsed,
            "Patterns found": report.catalog.patterns_found,
            "Catalog entries": report.catalog.catalog_size,
            "Files written": len(report.generation.written),
            "Duration": format_duration(report.duration_seconds),
        },
        title="PatternKit Run",
    )

    if report.catalog.warnings:
        print_issue_table(
            [(w.path, w.stage, w.reason) for w in report.catalog.warnings],
            title=f"Warnings ({len(report.catalog.warnings)})",
        )
    if report.generation.errors:
        print_issue_table(
            [(e.output_path, e.kind, e.describe()) for e in report.generation.errors],
            title=f"Errors ({len(report.generation.errors)})",
        )
    if report.require_patterns and report.catalog.catalog_size == 0:
        print_warning("No patterns were found, but patterns were required.")

    if report.success:
        border_style = "bold green"
        status_text = "[bold green]RUN SUCCEEDED[/bold green]"
    else:
        border_style = "bold red"
        status_text = "[bold red]RUN FAILED[/bold red]"

    detail_lines = [
        status_text,
        "",
        f"States : {' -> '.join(s.value for s in report.history)}",
        f"Output : {config.output_dir.resolve()}",
        f"Report : {config.report_path}",
    ]
    if report.fatal_error:
        detail_lines.append(f"Fatal  : {report.fatal_error}")

    console.print()
    console.print(Panel("\n".join(detail_lines), title="[bold]Run Complete[/bold]", border_style=border_style))


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def _scan_requests(config: Config) -> Callable[[PatternCatalog], list[GenerationRequest]]:
    """Requests a ``scan`` run renders: a markdown summary of the catalog."""

    def _build(catalog: PatternCatalog) -> list[GenerationRequest]:
        data = catalog.export()
        data["title"] = str(config.project_root)
        return [
            GenerationRequest.build(
                "common",
                "catalog",
                data,
                config.metadata_path / "catalog.md",
                overwrite=True,
            )
        ]

    return _build


def _generate_request(args, config: Config) -> GenerationRequest:
    """Build the single request a ``generate`` invocation asks for.

    Raises:
        DataModelError: If the fields/catalog inputs cannot form a data model.
    """
    if args.fields:
        fields = parse_field_list(args.fields)
        entity = args.entity or args.name
        if args.category == "domain":
            data = {"name": entity, "fields": fields}
        else:
            data = {
                "name": f"{entity}Form" if args.category == "forms" else entity,
                "entity": entity,
                "fields": fields,
            }
    elif args.catalog:
        catalog = PatternCatalog.load(args.catalog)
        if args.category == "navigation":
            data = navigation_model_from_catalog(catalog, args.entity or args.name)
        else:
            if not args.entity:
                raise DataModelError(args.category, ["--entity is required with --catalog"])
            data = form_model_from_catalog(catalog, args.entity, args.source)
    else:
        raise DataModelError(args.category, ["either --fields or --catalog is required"])

    return GenerationRequest.build(
        args.category,
        args.name,
        data,
        Path(args.output),
        overwrite=args.overwrite,
    )


def main(argv: Optional[list[str]] = None) -> None:
    """CLI entry point for ``patternkit``."""
    import argparse

    parser = argparse.ArgumentParser(
        prog="patternkit",
        description="PatternKit -- scan a project for usage patterns and generate code from them",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  patternkit scan ./my-app --output ./out\n"
            "  patternkit generate forms form --fields name:text,email:email -o UserForm.tsx\n"
        ),
    )
    sub = parser.add_subparsers(dest="command", required=True)

    scan_p = sub.add_parser("scan", help="Scan a project and export its pattern catalog")
    scan_p.add_argument("root", help="Project root to scan")
    scan_p.add_argument("--output", "-o", default="./output", help="Output directory (default: ./output)")
    scan_p.add_argument("--merge", default=None, help="Previously exported catalog to merge in")
    scan_p.add_argument("--workers", type=int, default=None, help="Concurrent file parsers")
    scan_p.add_argument("--require-patterns", action="store_true",
                        help="Fail when no patterns are found")

    gen_p = sub.add_parser("generate", help="Render one file from a template")
    gen_p.add_argument("category", help="Template category, e.g. forms")
    gen_p.add_argument("name", help="Template name within the category, e.g. form")
    gen_p.add_argument("--output", "-o", required=True, help="File to write")
    gen_p.add_argument("--fields", default=None, help='Field description, e.g. "name:text,email:email"')
    gen_p.add_argument("--catalog", default=None, help="Exported catalog to build the data model from")
    gen_p.add_argument("--entity", default=None, help="Entity name for the data model")
    gen_p.add_argument("--source", default=None, help="Only use fields extracted from this file")
    gen_p.add_argument("--template-dir", default=None, help="Template directory (default: built-ins)")
    gen_p.add_argument("--overwrite", action="store_true", help="Replace the output file if it exists")

    args = parser.parse_args(argv)

    if args.command == "scan":
        config = Config(
            project_root=Path(args.root),
            output_dir=Path(args.output),
            previous_catalog=Path(args.merge) if args.merge else None,
        )
        if args.workers is not None:
            if args.workers < 1:
                print_error(f"Invalid worker count: {args.workers} (must be >= 1)")
                sys.exit(2)
            config.scan.max_workers = args.workers
        config.scan.require_patterns = args.require_patterns
        pipeline = Pipeline(config)
        report = asyncio.run(pipeline.run(_scan_requests(config)))
    else:
        output = Path(args.output)
        config = Config(output_dir=output.parent)
        if args.template_dir:
            config.templates = TemplateConfig(template_dir=Path(args.template_dir))
        try:
            request = _generate_request(args, config)
        except (DataModelError, ValidationError, OSError) as exc:
            print_error(f"Error: {exc}")
            sys.exit(1)
        request.output_path = Path(output.name)
        pipeline = Pipeline(config)
        report = asyncio.run(pipeline.run([request], scan=False))

    print_report(report, config)
    if report.success:
        print_success("PatternKit finished successfully.")
    else:
        print_error("PatternKit run failed.")
        sys.exit(1)


if __name__ == "__main__":
    main()
