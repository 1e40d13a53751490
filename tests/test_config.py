"""Unit tests for Config and related Pydantic models (patternkit.config).

Tests cover:
- ScanConfig / TemplateConfig / GenerateConfig defaults and validation
- Config defaults, derived paths (properties), save/load, from_env
- Config.ensure_directories
"""

from __future__ import annotations

import os
from pathlib import Path
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from patternkit.config import (
    BUILTIN_TEMPLATE_DIR,
    Config,
    GenerateConfig,
    ScanConfig,
    TemplateConfig,
)


# ---------------------------------------------------------------------------
# ScanConfig
# ---------------------------------------------------------------------------


class TestScanConfig:
    @pytest.mark.unit
    def test_defaults(self):
        scan = ScanConfig()
        assert scan.include == []
        assert scan.exclude is None
        assert scan.respect_gitignore is True
        assert scan.max_workers == 4
        assert scan.component_prefixes == ["Archbase"]
        assert "@archbase/react" in scan.component_modules
        assert "useArchbaseRemoteDataSource" in scan.datasource_hooks
        assert "ArchbaseRemoteApiService" in scan.remote_service_bases
        assert scan.require_patterns is False

    @pytest.mark.unit
    def test_zero_workers_rejected(self):
        with pytest.raises(ValidationError):
            ScanConfig(max_workers=0)

    @pytest.mark.unit
    def test_lists_are_not_shared(self):
        a, b = ScanConfig(), ScanConfig()
        a.component_prefixes.append("Mantine")
        assert b.component_prefixes == ["Archbase"]


# ---------------------------------------------------------------------------
# TemplateConfig / GenerateConfig
# ---------------------------------------------------------------------------


class TestTemplateConfig:
    @pytest.mark.unit
    def test_defaults(self):
        templates = TemplateConfig()
        assert templates.template_dir == BUILTIN_TEMPLATE_DIR
        assert templates.extension == ".j2"
        assert templates.common_category == "common"
        assert templates.resolved_partials_dir == BUILTIN_TEMPLATE_DIR / "partials"

    @pytest.mark.unit
    def test_partials_dir_absent(self, tmp_path: Path):
        assert TemplateConfig(template_dir=tmp_path).resolved_partials_dir is None

    @pytest.mark.unit
    def test_explicit_partials_dir(self, tmp_path: Path):
        config = TemplateConfig(template_dir=tmp_path, partials_dir=tmp_path / "shared")
        assert config.resolved_partials_dir == tmp_path / "shared"


class TestGenerateConfig:
    @pytest.mark.unit
    def test_defaults(self):
        generate = GenerateConfig()
        assert generate.overwrite is False
        assert generate.max_parallel_writes == 4

    @pytest.mark.unit
    def test_parallel_writes_minimum(self):
        with pytest.raises(ValidationError):
            GenerateConfig(max_parallel_writes=0)


# ---------------------------------------------------------------------------
# Config - Defaults and derived paths
# ---------------------------------------------------------------------------


class TestConfigDefaults:
    @pytest.mark.unit
    def test_default_values(self):
        config = Config()
        assert config.project_root == Path(".")
        assert config.output_dir == Path("./output")
        assert config.metadata_dir == ".patternkit"
        assert config.previous_catalog is None

    @pytest.mark.unit
    def test_nested_configs_default(self):
        config = Config()
        assert isinstance(config.scan, ScanConfig)
        assert isinstance(config.templates, TemplateConfig)
        assert isinstance(config.generate, GenerateConfig)


class TestConfigDerivedPaths:
    @pytest.mark.unit
    def test_metadata_path(self, tmp_path: Path):
        config = Config(output_dir=tmp_path)
        assert config.metadata_path == tmp_path / ".patternkit"

    @pytest.mark.unit
    def test_catalog_path(self, tmp_path: Path):
        config = Config(output_dir=tmp_path)
        assert config.catalog_path == tmp_path / ".patternkit" / "catalog.json"

    @pytest.mark.unit
    def test_report_path(self, tmp_path: Path):
        config = Config(output_dir=tmp_path)
        assert config.report_path == tmp_path / ".patternkit" / "report.json"


# ---------------------------------------------------------------------------
# Config - save / load
# ---------------------------------------------------------------------------


class TestConfigSaveLoad:
    @pytest.mark.unit
    def test_round_trip(self, tmp_path: Path):
        config = Config(
            project_root=tmp_path / "app",
            output_dir=tmp_path / "out",
            scan=ScanConfig(max_workers=7, known_components=["Button"]),
            generate=GenerateConfig(overwrite=True),
        )
        saved = config.save()
        assert saved == tmp_path / "out" / ".patternkit" / "config.json"
        loaded = Config.load(saved)
        assert loaded == config

    @pytest.mark.unit
    def test_save_to_explicit_path(self, tmp_path: Path):
        target = tmp_path / "nested" / "cfg.json"
        assert Config().save(target) == target
        assert target.is_file()


# ---------------------------------------------------------------------------
# Config.from_env
# ---------------------------------------------------------------------------


class TestConfigFromEnv:
    @pytest.mark.unit
    def test_defaults_when_no_env(self):
        with patch.dict(os.environ, {}, clear=True):
            config = Config.from_env()
        assert config.project_root == Path(".")
        assert config.output_dir == Path("./output")
        assert config.previous_catalog is None
        assert config.scan.max_workers == 4

    @pytest.mark.unit
    def test_values_from_env(self):
        env = {
            "PATTERNKIT_PROJECT_ROOT": "/src/app",
            "PATTERNKIT_OUTPUT_DIR": "/tmp/pk",
            "PATTERNKIT_PREVIOUS_CATALOG": "/tmp/old.json",
            "PATTERNKIT_MAX_WORKERS": "8",
            "PATTERNKIT_COMPONENT_PREFIXES": "Archbase, Mantine ,",
            "PATTERNKIT_REQUIRE_PATTERNS": "yes",
            "PATTERNKIT_TEMPLATE_DIR": "/opt/templates",
            "PATTERNKIT_OVERWRITE": "true",
            "PATTERNKIT_MAX_PARALLEL_WRITES": "2",
        }
        with patch.dict(os.environ, env, clear=True):
            config = Config.from_env()
        assert config.project_root == Path("/src/app")
        assert config.output_dir == Path("/tmp/pk")
        assert config.previous_catalog == Path("/tmp/old.json")
        assert config.scan.max_workers == 8
        assert config.scan.component_prefixes == ["Archbase", "Mantine"]
        assert config.scan.require_patterns is True
        assert config.templates.template_dir == Path("/opt/templates")
        assert config.generate.overwrite is True
        assert config.generate.max_parallel_writes == 2

    @pytest.mark.unit
    def test_false_flag(self):
        with patch.dict(os.environ, {"PATTERNKIT_OVERWRITE": "0"}, clear=True):
            config = Config.from_env()
        assert config.generate.overwrite is False

    @pytest.mark.unit
    def test_invalid_worker_count(self):
        with patch.dict(os.environ, {"PATTERNKIT_MAX_WORKERS": "0"}, clear=True):
            with pytest.raises(ValidationError):
                Config.from_env()


# ---------------------------------------------------------------------------
# Config.ensure_directories
# ---------------------------------------------------------------------------


class TestEnsureDirectories:
    @pytest.mark.unit
    def test_creates_output_and_metadata(self, tmp_path: Path):
        config = Config(output_dir=tmp_path / "out")
        config.ensure_directories()
        assert (tmp_path / "out").is_dir()
        assert (tmp_path / "out" / ".patternkit").is_dir()

    @pytest.mark.unit
    def test_idempotent(self, tmp_path: Path):
        config = Config(output_dir=tmp_path / "out")
        config.ensure_directories()
        config.ensure_directories()
        assert config.metadata_path.is_dir()
