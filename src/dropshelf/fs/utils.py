"""Path sanitization, stored-name helpers, MIME detection."""

from __future__ import annotations

import mimetypes
import re
import secrets
import time

# =============================================================================
# Sanitization
# =============================================================================

_SEGMENT_UNSAFE = re.compile(r"[^A-Za-z0-9@._-]")
_PATH_UNSAFE = re.compile(r"[^A-Za-z0-9@._/-]")

MAX_NAME_LENGTH = 255


def sanitize(raw: str | None, *, allow_slash: bool = False) -> str:
    """Strip every character outside the allow-list and all ``..`` runs.

    The allow-list is ``A-Z a-z 0-9 @ . _ -`` plus ``/`` when
    *allow_slash* is set.  ``..`` is removed until none remains, so
    ``....//`` cannot collapse into ``../`` after a single pass.

    Never raises; returns ``""`` when nothing survives.

    Examples:
        sanitize("a@b.com") -> "a@b.com"
        sanitize("../etc/passwd") -> "etcpasswd"
        sanitize("....//x", allow_slash=True) -> "//x"
    """
    if not raw:
        return ""
    pattern = _PATH_UNSAFE if allow_slash else _SEGMENT_UNSAFE
    cleaned = pattern.sub("", raw)
    while ".." in cleaned:
        cleaned = cleaned.replace("..", "")
    return cleaned


def sanitize_identity(raw: str | None) -> str:
    """Sanitize an identity (email-shaped string) into one path segment.

    Leading dots are dropped so an identity never names the storage root
    itself (``.``).
    """
    return sanitize(raw).lstrip(".")


def sanitize_name(raw: str | None) -> str:
    """Sanitize a single file or folder name.

    Leading dots are dropped so the result is never ``.`` and never a
    hidden relative reference.
    """
    return sanitize(raw).lstrip(".")[:MAX_NAME_LENGTH]


def sanitize_path(raw: str | None) -> str:
    """Sanitize a namespace-relative path.

    Characters are filtered as in :func:`sanitize`, then the path is split
    into segments; empty and ``.`` segments are dropped.  The namespace
    root is ``""``.

    Examples:
        sanitize_path("/docs//notes.txt") -> "docs/notes.txt"
        sanitize_path("../../etc/passwd") -> "etc/passwd"
        sanitize_path("./") -> ""
    """
    cleaned = sanitize(raw, allow_slash=True)
    segments = [s for s in cleaned.split("/") if s and s != "."]
    return "/".join(segments)


def join_path(*parts: str) -> str:
    """Join namespace-relative fragments, sanitizing the result."""
    return sanitize_path("/".join(p for p in parts if p))


def split_path(path: str) -> tuple[str, str]:
    """Split a sanitized relative path into ``(parent, name)``.

    Examples:
        split_path("docs/notes.txt") -> ("docs", "notes.txt")
        split_path("notes.txt") -> ("", "notes.txt")
        split_path("") -> ("", "")
    """
    path = sanitize_path(path)
    if "/" not in path:
        return "", path
    parent, _, name = path.rpartition("/")
    return parent, name


# =============================================================================
# Stored names
# =============================================================================


def disambiguated_name(original: str) -> str:
    """Return ``<epoch-ms>-<8 hex>-<original>`` for an upload.

    The random fragment keeps two uploads of the same name in the same
    millisecond from landing on one path.
    """
    return f"{int(time.time() * 1000)}-{secrets.token_hex(4)}-{original}"


def guess_mime_type(filename: str) -> str:
    """Guess the MIME type of a file based on its name."""
    mime_type, _ = mimetypes.guess_type(filename)
    return mime_type or "application/octet-stream"


def token_prefix(token: str) -> str:
    """Shorten a bearer token for log output."""
    return token[:8] + "..." if len(token) > 8 else token
