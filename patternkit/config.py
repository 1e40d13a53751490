"""PatternKit configuration.

Centralised, typed configuration for a scan/generate run.  All settings use
Pydantic v2 models so they can be validated at construction time and
serialised to/from JSON or environment variables without boiler-plate.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field

BUILTIN_TEMPLATE_DIR = Path(__file__).resolve().parent / "scaffolder" / "templates"


class ScanConfig(BaseModel):
    """What to scan and which framework names the matchers recognise."""

    include: list[str] = Field(
        default_factory=list,
        description="Gitignore-style patterns; when non-empty only matching files are scanned",
    )
    exclude: Optional[list[str]] = Field(
        default=None,
        description="Extra gitignore-style patterns to skip, applied after the default declaration/test excludes",
    )
    respect_gitignore: bool = Field(default=True)
    max_workers: int = Field(default=4, ge=1, description="Concurrent file parsers")

    component_prefixes: list[str] = Field(default=["Archbase"])
    component_modules: list[str] = Field(
        default=["@archbase/react", "archbase-react"],
        description="JSX elements imported from these modules are components",
    )
    known_components: list[str] = Field(default_factory=list)
    datasource_hooks: list[str] = Field(
        default=[
            "useArchbaseDataSource",
            "useArchbaseDataSourceV2",
            "useArchbaseRemoteDataSource",
            "useArchbaseRemoteDataSourceV2",
            "useArchbaseLocalDataSource",
            "ArchbaseDataSource",
            "ArchbaseDataSourceV2",
            "ArchbaseRemoteDataSource",
            "ArchbaseRemoteDataSourceV2",
        ]
    )
    remote_service_bases: list[str] = Field(
        default=["ArchbaseRemoteApiService", "ArchbaseRemoteApiServiceV2"]
    )
    require_patterns: bool = Field(
        default=False, description="Treat a scan that finds no patterns as a failure"
    )


class TemplateConfig(BaseModel):
    """Where templates live and how they are named."""

    template_dir: Path = Field(default=BUILTIN_TEMPLATE_DIR)
    extension: str = Field(default=".j2")
    common_category: str = Field(default="common")
    partials_dir: Optional[Path] = Field(
        default=None, description="Defaults to <template_dir>/partials when that directory exists"
    )

    @property
    def resolved_partials_dir(self) -> Optional[Path]:
        if self.partials_dir is not None:
            return self.partials_dir
        candidate = self.template_dir / "partials"
        return candidate if candidate.is_dir() else None


class GenerateConfig(BaseModel):
    """Tuning knobs for file generation."""

    overwrite: bool = Field(default=False, description="Replace existing output files")
    max_parallel_writes: int = Field(default=4, ge=1)


class Config(BaseModel):
    """Global PatternKit configuration.

    Instances are created once by ``Pipeline`` or by the CLI entry point and
    then passed by reference to every stage.
    """

    project_root: Path = Field(default=Path("."))
    output_dir: Path = Field(default=Path("./output"))
    metadata_dir: str = Field(default=".patternkit")
    previous_catalog: Optional[Path] = Field(
        default=None, description="Previously exported catalog merged into the scan result"
    )
    scan: ScanConfig = Field(default_factory=ScanConfig)
    templates: TemplateConfig = Field(default_factory=TemplateConfig)
    generate: GenerateConfig = Field(default_factory=GenerateConfig)

    # ------------------------------------------------------------------
    # Derived paths
    # ------------------------------------------------------------------

    @property
    def metadata_path(self) -> Path:
        """Root of the ``.patternkit/`` metadata directory inside the output."""
        return self.output_dir / self.metadata_dir

    @property
    def catalog_path(self) -> Path:
        """Path to the exported ``catalog.json``."""
        return self.metadata_path / "catalog.json"

    @property
    def report_path(self) -> Path:
        """Path to the JSON run report."""
        return self.metadata_path / "report.json"

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def save(self, path: Path | None = None) -> Path:
        """Persist the configuration to a JSON file.

        Args:
            path: Destination file. Defaults to ``<metadata_path>/config.json``.

        Returns:
            The resolved path where the file was written.
        """
        target = path or (self.metadata_path / "config.json")
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        return target

    @classmethod
    def load(cls, path: Path) -> "Config":
        """Load a previously-saved configuration from JSON."""
        raw = Path(path).read_text(encoding="utf-8")
        return cls.model_validate_json(raw)

    @classmethod
    def from_env(cls) -> "Config":
        """Build a ``Config`` from environment variables.

        Recognised variables (all optional):
            PATTERNKIT_PROJECT_ROOT, PATTERNKIT_OUTPUT_DIR,
            PATTERNKIT_PREVIOUS_CATALOG, PATTERNKIT_MAX_WORKERS,
            PATTERNKIT_COMPONENT_PREFIXES, PATTERNKIT_REQUIRE_PATTERNS,
            PATTERNKIT_TEMPLATE_DIR, PATTERNKIT_OVERWRITE,
            PATTERNKIT_MAX_PARALLEL_WRITES.
        """
        scan_kwargs: dict[str, Any] = {}
        if os.environ.get("PATTERNKIT_MAX_WORKERS"):
            scan_kwargs["max_workers"] = int(os.environ["PATTERNKIT_MAX_WORKERS"])
        if os.environ.get("PATTERNKIT_COMPONENT_PREFIXES"):
            scan_kwargs["component_prefixes"] = _split_list(
                os.environ["PATTERNKIT_COMPONENT_PREFIXES"]
            )
        if os.environ.get("PATTERNKIT_REQUIRE_PATTERNS"):
            scan_kwargs["require_patterns"] = _truthy(os.environ["PATTERNKIT_REQUIRE_PATTERNS"])

        template_kwargs: dict[str, Any] = {}
        if os.environ.get("PATTERNKIT_TEMPLATE_DIR"):
            template_kwargs["template_dir"] = Path(os.environ["PATTERNKIT_TEMPLATE_DIR"])

        generate_kwargs: dict[str, Any] = {}
        if os.environ.get("PATTERNKIT_OVERWRITE"):
            generate_kwargs["overwrite"] = _truthy(os.environ["PATTERNKIT_OVERWRITE"])
        if os.environ.get("PATTERNKIT_MAX_PARALLEL_WRITES"):
            generate_kwargs["max_parallel_writes"] = int(
                os.environ["PATTERNKIT_MAX_PARALLEL_WRITES"]
            )

        previous = os.environ.get("PATTERNKIT_PREVIOUS_CATALOG")
        return cls(
            project_root=Path(os.environ.get("PATTERNKIT_PROJECT_ROOT", ".")),
            output_dir=Path(os.environ.get("PATTERNKIT_OUTPUT_DIR", "./output")),
            previous_catalog=Path(previous) if previous else None,
            scan=ScanConfig(**scan_kwargs),
            templates=TemplateConfig(**template_kwargs),
            generate=GenerateConfig(**generate_kwargs),
        )

    def ensure_directories(self) -> None:
        """Create the output and metadata directories."""
        for directory in (self.output_dir, self.metadata_path):
            directory.mkdir(parents=True, exist_ok=True)


def _split_list(raw: str) -> list[str]:
    return [item.strip() for item in raw.split(",") if item.strip()]


def _truthy(raw: str) -> bool:
    return raw.strip().lower() in ("1", "true", "yes", "on")
