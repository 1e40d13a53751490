"""Unit tests for utility functions (patternkit.utils).

Tests cover:
- Name-case helpers (split_words, slugify, pascal/camel/snake/kebab case)
- save_json / atomic_write_text (use tmp_path)
- format_duration
- Rich output helpers (print_phase_header, print_summary_table, etc.)
"""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import patch

import pytest

from patternkit.utils import (
    STATE_COLORS,
    atomic_write_text,
    camel_case,
    capitalize_first,
    format_duration,
    kebab_case,
    lowercase_first,
    pascal_case,
    print_error,
    print_issue_table,
    print_phase_header,
    print_success,
    print_summary_table,
    print_warning,
    save_json,
    slugify,
    snake_case,
    split_words,
)


# ---------------------------------------------------------------------------
# Name helpers
# ---------------------------------------------------------------------------


class TestNameHelpers:
    @pytest.mark.unit
    @pytest.mark.parametrize(
        "text, expected",
        [
            ("userProfile", ["user", "profile"]),
            ("HTTPServer v2", ["http", "server", "v2"]),
            ("first_name", ["first", "name"]),
            ("UserDto", ["user", "dto"]),
            ("", []),
        ],
    )
    def test_split_words(self, text, expected):
        assert split_words(text) == expected

    @pytest.mark.unit
    def test_case_conversions(self):
        assert pascal_case("user profile") == "UserProfile"
        assert camel_case("User Profile") == "userProfile"
        assert snake_case("userProfile") == "user_profile"
        assert kebab_case("UserForm") == "user-form"

    @pytest.mark.unit
    def test_slugify(self):
        assert slugify("  User Profile!! ") == "user-profile"
        assert slugify("---") == ""

    @pytest.mark.unit
    def test_first_letter_helpers(self):
        assert capitalize_first("email address") == "Email address"
        assert lowercase_first("UserDto") == "userDto"
        assert capitalize_first("") == ""


# ---------------------------------------------------------------------------
# JSON and file I/O
# ---------------------------------------------------------------------------


class TestJsonIO:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_save_json_creates_parents(self, tmp_path: Path):
        target = tmp_path / "a" / "b" / "out.json"
        await save_json({"name": "Zoë", "when": Path("x")}, target)
        assert json.loads(target.read_text(encoding="utf-8")) == {"name": "Zoë", "when": "x"}


class TestAtomicWrite:
    @pytest.mark.unit
    def test_writes_and_replaces(self, tmp_path: Path):
        target = tmp_path / "f.txt"
        atomic_write_text(target, "one")
        atomic_write_text(target, "two")
        assert target.read_text(encoding="utf-8") == "two"
        assert [p.name for p in tmp_path.iterdir()] == ["f.txt"]

    @pytest.mark.unit
    def test_failure_keeps_old_content_and_cleans_up(self, tmp_path: Path):
        target = tmp_path / "f.txt"
        target.write_text("original", encoding="utf-8")
        with patch("patternkit.utils.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(OSError, match="disk full"):
                atomic_write_text(target, "new")
        assert target.read_text(encoding="utf-8") == "original"
        assert [p.name for p in tmp_path.iterdir()] == ["f.txt"]


# ---------------------------------------------------------------------------
# format_duration
# ---------------------------------------------------------------------------


class TestFormatDuration:
    @pytest.mark.unit
    @pytest.mark.parametrize(
        "seconds, expected",
        [
            (3.7, "3.7s"),
            (65.2, "1m 5s"),
            (3661.0, "1h 1m 1s"),
            (-1, "0.0s"),
        ],
    )
    def test_format(self, seconds, expected):
        assert format_duration(seconds) == expected


# ---------------------------------------------------------------------------
# Rich output helpers
# ---------------------------------------------------------------------------


class TestRichOutputHelpers:
    @pytest.mark.unit
    def test_state_colors_cover_run_states(self):
        for state in ("scanning", "extracting", "merging", "rendering", "writing", "done", "failed"):
            assert state in STATE_COLORS

    @pytest.mark.unit
    def test_print_helpers(self):
        # Should not raise
        print_phase_header("scanning")
        print_phase_header("unknown")
        print_summary_table({"Files": 3, "Patterns": 10}, title="Test Summary")
        print_issue_table([("a.ts", "parse", "syntax error"), ("", "import", "bad version")], title="Warnings")
        print_success("ok")
        print_error("bad")
        print_warning("careful")
