"""Result types: FileInfo, DownloadHandle, AccessDecision, ShareInfo, etc."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator
    from datetime import datetime
    from pathlib import Path

    from .permissions import Permission

DEFAULT_CHUNK_SIZE = 64 * 1024


@dataclass
class FileInfo:
    """File/directory metadata, with a namespace-relative path."""

    path: str
    name: str
    is_directory: bool
    size_bytes: int | None = None
    mime_type: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class DownloadHandle:
    """A file ready to be streamed back to a client."""

    absolute_path: Path
    filename: str
    media_type: str
    size_bytes: int
    disposition: str = "attachment"

    def iter_bytes(self, chunk_size: int = DEFAULT_CHUNK_SIZE) -> Iterator[bytes]:
        """Yield the file content in chunks."""
        with self.absolute_path.open("rb") as f:
            while chunk := f.read(chunk_size):
                yield chunk


class AccessOutcome(str, Enum):
    """Verdict of the access gate for a token + path pair."""

    ALLOW = "ALLOW"
    DENY = "DENY"
    NOT_FOUND = "NOT_FOUND"
    EXPIRED = "EXPIRED"


@dataclass
class AccessDecision:
    """Result of an access gate check."""

    outcome: AccessOutcome
    message: str
    relative_path: str | None = None
    absolute_path: Path | None = None
    owner_identity: str | None = None
    permission: Permission | None = None

    @property
    def allowed(self) -> bool:
        return self.outcome is AccessOutcome.ALLOW

    @property
    def disposition(self) -> str | None:
        if self.permission is None:
            return None
        return self.permission.disposition


@dataclass
class ShareInfo:
    """Share metadata safe to hand to an unauthenticated caller."""

    token: str
    owner_identity: str
    permission: str
    files: list[str] = field(default_factory=list)
    folders: list[str] = field(default_factory=list)
    created_at: datetime | None = None
    expires_at: datetime | None = None
    live: bool = True


@dataclass
class ShareResult:
    """Result of a create-share operation."""

    token: str
    url: str
    share: ShareInfo


@dataclass
class SharedFile:
    """Content served through a share link."""

    filename: str
    content: bytes
    media_type: str
    permission: Permission
    relative_path: str

    @property
    def disposition(self) -> str:
        return self.permission.disposition


@dataclass
class PreviewRecord:
    """Ephemeral rendered content behind a preview token."""

    token: str
    content: str
    base_url: str
    created_at: datetime
    expires_at: datetime


@dataclass
class PreviewResult:
    """Result of a create-preview operation."""

    token: str
    url: str
    expires_at: datetime


@dataclass
class HealthStatus:
    """Reachability of the storage root and the share registry."""

    ok: bool
    storage_root: str
    registry: bool
    message: str = ""
