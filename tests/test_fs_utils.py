"""Tests for path sanitization and stored-name helpers."""

from __future__ import annotations

import re

import pytest

from dropshelf.fs.utils import (
    disambiguated_name,
    guess_mime_type,
    join_path,
    sanitize,
    sanitize_identity,
    sanitize_name,
    sanitize_path,
    split_path,
    token_prefix,
)

# ---------------------------------------------------------------------------
# sanitize
# ---------------------------------------------------------------------------


class TestSanitize:
    def test_keeps_allowed_characters(self):
        assert sanitize("A-z_0.9@x") == "A-z_0.9@x"

    def test_strips_disallowed_characters(self):
        assert sanitize("a b$c%d<e>f") == "abcdef"

    def test_slash_dropped_without_allow_slash(self):
        assert sanitize("a/b") == "ab"

    def test_slash_kept_with_allow_slash(self):
        assert sanitize("a/b", allow_slash=True) == "a/b"

    def test_backslash_dropped(self):
        assert sanitize("..\\..\\windows", allow_slash=True) == "windows"

    def test_removes_dotdot_to_fixed_point(self):
        assert ".." not in sanitize("....//....//", allow_slash=True)
        assert ".." not in sanitize(".....")
        assert ".." not in sanitize("..././", allow_slash=True)

    def test_none_and_empty(self):
        assert sanitize(None) == ""
        assert sanitize("") == ""

    def test_null_byte_dropped(self):
        assert sanitize("a\x00b") == "ab"


# ---------------------------------------------------------------------------
# sanitize_identity
# ---------------------------------------------------------------------------


class TestSanitizeIdentity:
    def test_email_unchanged(self):
        assert sanitize_identity("a@b.com") == "a@b.com"

    @pytest.mark.parametrize(
        "raw",
        ["../", "../../etc/passwd", "/etc/passwd", "....//....//", "a/../../b"],
    )
    def test_traversal_never_survives(self, raw):
        safe = sanitize_identity(raw)
        assert "/" not in safe
        assert ".." not in safe

    def test_only_illegal_characters_becomes_empty(self):
        assert sanitize_identity("../") == ""
        assert sanitize_identity("$%^&") == ""

    @pytest.mark.parametrize("raw", [".", "...", "....."])
    def test_dots_only_becomes_empty(self, raw):
        assert sanitize_identity(raw) == ""


# ---------------------------------------------------------------------------
# sanitize_name / sanitize_path
# ---------------------------------------------------------------------------


class TestSanitizeName:
    def test_plain_name(self):
        assert sanitize_name("notes.txt") == "notes.txt"

    def test_leading_dots_dropped(self):
        assert sanitize_name(".hidden") == "hidden"
        assert sanitize_name(".") == ""

    def test_slashes_dropped(self):
        assert sanitize_name("docs/notes.txt") == "docsnotes.txt"

    def test_length_capped(self):
        assert len(sanitize_name("a" * 400)) == 255


class TestSanitizePath:
    def test_collapses_separators(self):
        assert sanitize_path("/docs//notes.txt/") == "docs/notes.txt"

    def test_drops_current_dir_segments(self):
        assert sanitize_path("./docs/./a.txt") == "docs/a.txt"

    def test_traversal_removed(self):
        assert sanitize_path("../../etc/passwd") == "etc/passwd"

    def test_root(self):
        assert sanitize_path("") == ""
        assert sanitize_path("/") == ""
        assert sanitize_path("./") == ""

    @pytest.mark.parametrize(
        "raw",
        ["....//....//etc", "..%2f..%2fetc", "a/..../b", "..\\..\\x", ". ./. ./x"],
    )
    def test_no_dotdot_segment(self, raw):
        segments = sanitize_path(raw).split("/")
        assert ".." not in segments
        assert "" not in segments or sanitize_path(raw) == ""


class TestJoinSplit:
    def test_join(self):
        assert join_path("docs", "a.txt") == "docs/a.txt"
        assert join_path("", "a.txt") == "a.txt"

    def test_split(self):
        assert split_path("docs/notes.txt") == ("docs", "notes.txt")
        assert split_path("notes.txt") == ("", "notes.txt")
        assert split_path("") == ("", "")


# ---------------------------------------------------------------------------
# Stored names, MIME, tokens
# ---------------------------------------------------------------------------


class TestHelpers:
    def test_disambiguated_name_shape(self):
        name = disambiguated_name("notes.txt")
        assert re.fullmatch(r"\d+-[0-9a-f]{8}-notes\.txt", name)

    def test_disambiguated_names_differ(self):
        assert disambiguated_name("a.txt") != disambiguated_name("a.txt")

    def test_guess_mime_type(self):
        assert guess_mime_type("page.html") == "text/html"
        assert guess_mime_type("blob") == "application/octet-stream"

    def test_token_prefix(self):
        assert token_prefix("abcdefghijkl") == "abcdefgh..."
        assert token_prefix("short") == "short"
