"""Tests for the multi-file generator.

Covers:
- Per-request failure isolation (missing template, bad data, render error)
- Duplicate output paths
- Overwrite protection and atomic writes
- Abort handling
"""

from __future__ import annotations

import threading
from pathlib import Path

import pytest

from patternkit.scaffolder.generator import Generator
from patternkit.scaffolder.models import GenerationRequest
from patternkit.scaffolder.templates import TemplateCache


# ---------------------------------------------------------------------------
# Markers
# ---------------------------------------------------------------------------

pytestmark = pytest.mark.unit


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def cache(template_dir: Path) -> TemplateCache:
    return TemplateCache(template_dir, partials_dir=template_dir / "partials")


@pytest.fixture
def out_dir(tmp_path: Path) -> Path:
    return tmp_path / "generated"


@pytest.fixture
def generator(cache: TemplateCache, out_dir: Path) -> Generator:
    return Generator(cache, output_root=out_dir)


def _hello(output: str, name: str = "ada", **kwargs) -> GenerationRequest:
    return GenerationRequest.build("greetings", "hello", {"name": name}, output, **kwargs)


# ---------------------------------------------------------------------------
# Failure isolation
# ---------------------------------------------------------------------------


class TestFailureIsolation:
    @pytest.mark.asyncio
    async def test_missing_template_in_the_middle(self, generator: Generator, out_dir: Path):
        result = await generator.generate([
            _hello("one.txt", "first"),
            GenerationRequest.build("greetings", "does_not_exist", {"name": "x"}, "two.txt"),
            _hello("three.txt", "third"),
        ])

        assert result.success is False
        assert (out_dir / "one.txt").read_text(encoding="utf-8") == "Hello First!\n"
        assert (out_dir / "three.txt").read_text(encoding="utf-8") == "Hello Third!\n"
        assert not (out_dir / "two.txt").exists()
        assert len(result.errors) == 1
        error = result.errors[0]
        assert error.request_index == 1
        assert error.kind == "template"
        assert error.template == "greetings/does_not_exist"
        assert sorted(result.written) == [str(out_dir / "one.txt"), str(out_dir / "three.txt")]

    @pytest.mark.asyncio
    async def test_compile_error_is_isolated(self, generator: Generator, out_dir: Path):
        result = await generator.generate([
            GenerationRequest.build("broken", "bad", {"items": []}, "bad.txt"),
            _hello("ok.txt"),
        ])
        assert [e.kind for e in result.errors] == ["template"]
        assert result.errors[0].line is not None
        assert (out_dir / "ok.txt").exists()

    @pytest.mark.asyncio
    async def test_render_error_is_isolated(self, generator: Generator, out_dir: Path):
        result = await generator.generate([
            GenerationRequest.build("greetings", "hello", {}, "missing-name.txt"),
            _hello("ok.txt"),
        ])
        assert [(e.request_index, e.kind) for e in result.errors] == [(0, "render")]
        assert "name" in result.errors[0].message
        assert (out_dir / "ok.txt").exists()

    @pytest.mark.asyncio
    async def test_invalid_data_model_is_isolated(self, generator: Generator, out_dir: Path):
        result = await generator.generate([
            GenerationRequest.build("forms", "simple", {"name": "UserForm", "fields": []}, "form.txt"),
            _hello("ok.txt"),
        ])
        assert [e.kind for e in result.errors] == ["data"]
        assert "forms" in result.errors[0].message
        assert not (out_dir / "form.txt").exists()
        assert (out_dir / "ok.txt").exists()

    @pytest.mark.asyncio
    async def test_valid_form_data_renders(self, generator: Generator, out_dir: Path):
        data = {
            "name": "UserForm",
            "entity": "User",
            "fields": [{"name": "email", "type": "email"}, {"name": "age", "type": "number"}],
        }
        result = await generator.generate([GenerationRequest.build("forms", "simple", data, "form.txt")])
        assert result.success
        assert (out_dir / "form.txt").read_text(encoding="utf-8") == "UserForm: email=email age=number"

    @pytest.mark.asyncio
    async def test_duplicate_output_path(self, generator: Generator, out_dir: Path):
        result = await generator.generate([
            _hello("same.txt", "first"),
            _hello("same.txt", "second"),
        ])
        assert [(e.request_index, e.kind) for e in result.errors] == [(1, "duplicate-output")]
        assert (out_dir / "same.txt").read_text(encoding="utf-8") == "Hello First!\n"

    @pytest.mark.asyncio
    async def test_duplicate_output_path_after_normalisation(self, generator: Generator, out_dir: Path):
        result = await generator.generate([
            _hello("same.txt", "first"),
            _hello("nested/../same.txt", "second"),
            _hello("./same.txt", "third"),
        ])
        assert [(e.request_index, e.kind) for e in result.errors] == [
            (1, "duplicate-output"),
            (2, "duplicate-output"),
        ]
        assert (out_dir / "same.txt").read_text(encoding="utf-8") == "Hello First!\n"

    @pytest.mark.asyncio
    async def test_empty_batch(self, generator: Generator):
        result = await generator.generate([])
        assert result.success
        assert result.written == []


# ---------------------------------------------------------------------------
# Writing
# ---------------------------------------------------------------------------


class TestWriting:
    @pytest.mark.asyncio
    async def test_existing_file_is_not_overwritten(self, generator: Generator, out_dir: Path):
        out_dir.mkdir(parents=True)
        (out_dir / "hello.txt").write_text("keep me", encoding="utf-8")
        result = await generator.generate([_hello("hello.txt")])
        assert [e.kind for e in result.errors] == ["write"]
        assert "overwrite" in result.errors[0].message
        assert (out_dir / "hello.txt").read_text(encoding="utf-8") == "keep me"

    @pytest.mark.asyncio
    async def test_overwrite_per_request(self, generator: Generator, out_dir: Path):
        out_dir.mkdir(parents=True)
        (out_dir / "hello.txt").write_text("old", encoding="utf-8")
        result = await generator.generate([_hello("hello.txt", overwrite=True)])
        assert result.success
        assert (out_dir / "hello.txt").read_text(encoding="utf-8") == "Hello Ada!\n"

    @pytest.mark.asyncio
    async def test_overwrite_default(self, cache: TemplateCache, out_dir: Path):
        out_dir.mkdir(parents=True)
        (out_dir / "hello.txt").write_text("old", encoding="utf-8")
        result = await Generator(cache, output_root=out_dir, overwrite=True).generate([_hello("hello.txt")])
        assert result.success

    @pytest.mark.asyncio
    async def test_directory_target_is_a_write_error(self, generator: Generator, out_dir: Path):
        (out_dir / "taken").mkdir(parents=True)
        result = await generator.generate([_hello("taken", overwrite=True), _hello("ok.txt")])
        assert [(e.request_index, e.kind) for e in result.errors] == [(0, "write")]
        assert (out_dir / "ok.txt").exists()

    @pytest.mark.asyncio
    async def test_nested_directories_are_created(self, generator: Generator, out_dir: Path):
        result = await generator.generate([_hello("a/b/c/hello.txt")])
        assert result.success
        assert (out_dir / "a" / "b" / "c" / "hello.txt").is_file()

    @pytest.mark.asyncio
    async def test_no_staging_files_left_behind(self, generator: Generator, out_dir: Path):
        await generator.generate([_hello(f"f{i}.txt") for i in range(5)])
        assert sorted(p.name for p in out_dir.iterdir()) == [f"f{i}.txt" for i in range(5)]

    @pytest.mark.asyncio
    async def test_absolute_output_path_ignores_root(self, generator: Generator, tmp_path: Path):
        target = tmp_path / "elsewhere" / "abs.txt"
        result = await generator.generate([_hello(str(target))])
        assert result.written == [str(target)]


# ---------------------------------------------------------------------------
# Abort
# ---------------------------------------------------------------------------


class TestAbort:
    @pytest.mark.asyncio
    async def test_aborted_run_cancels_pending_requests(self, cache: TemplateCache, out_dir: Path):
        abort = threading.Event()
        abort.set()
        generator = Generator(cache, output_root=out_dir, abort=abort)
        result = await generator.generate([_hello("one.txt"), _hello("two.txt")])
        assert result.aborted is True
        assert result.success is False
        assert [e.kind for e in result.errors] == ["cancelled", "cancelled"]
        assert not out_dir.exists()
