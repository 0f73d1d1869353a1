"""ShareLink model — token-indexed share records.

Provides ``ShareLinkBase`` (non-table) and ``ShareLink`` (concrete table).
Subclass ``ShareLinkBase`` with ``table=True`` and a custom ``__tablename__``
to use a different table name.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from sqlalchemy import JSON, DateTime
from sqlmodel import Field, SQLModel

SHARE_TTL = timedelta(hours=24)
"""Lifetime of every share link. Fixed policy, not configurable per call."""


def _utcnow() -> datetime:
    return datetime.now(UTC)


class ShareLinkBase(SQLModel):
    """Base fields for a share link. Subclass with ``table=True`` for a concrete table."""

    token: str = Field(primary_key=True)
    owner_identity: str = Field(index=True)
    files: list[str] = Field(default_factory=list, sa_type=JSON)
    folders: list[str] = Field(default_factory=list, sa_type=JSON)
    permission: str = Field(default="read")
    created_at: datetime = Field(
        default_factory=_utcnow,
        sa_type=DateTime(timezone=True),  # type: ignore[invalid-argument-type]
    )
    expires_at: datetime = Field(
        default_factory=lambda: _utcnow() + SHARE_TTL,
        sa_type=DateTime(timezone=True),  # type: ignore[invalid-argument-type]
    )

    def covers(self, path: str) -> bool:
        """True if *path* is listed exactly or sits under a shared folder."""
        if path in self.files:
            return True
        return any(path.startswith(folder + "/") for folder in self.folders)


class ShareLink(ShareLinkBase, table=True):
    """Default share link table — ``dropshelf_share_links``."""

    __tablename__ = "dropshelf_share_links"
