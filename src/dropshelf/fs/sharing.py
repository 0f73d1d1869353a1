"""ShareRegistry — durable token-to-share mapping.

Receives the share model and an async session factory at construction,
following the service pattern of the storage layer: callers never see
sessions.  Every mutation runs in its own transaction behind one
``asyncio.Lock``, so concurrent creates cannot drop each other's tokens.
"""

from __future__ import annotations

import asyncio
import logging
import secrets
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import delete as sa_delete
from sqlmodel import select

from dropshelf.models.shares import SHARE_TTL, ShareLink

from .exceptions import ValidationError
from .permissions import Permission
from .utils import sanitize_identity, sanitize_path, token_prefix

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from sqlalchemy.ext.asyncio import AsyncSession

    from dropshelf.models.shares import ShareLinkBase

logger = logging.getLogger(__name__)

TOKEN_BYTES = 24


def _aware(value: datetime) -> datetime:
    """Treat naive datetimes (as read back from SQLite) as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def _clean_paths(paths: Iterable[str]) -> list[str]:
    seen: dict[str, None] = {}
    for raw in paths:
        rel = sanitize_path(raw)
        if rel:
            seen.setdefault(rel, None)
    return list(seen)


class ShareRegistry:
    """Creates, looks up, revokes and expires share links.

    Constructor receives the concrete share model so callers can use
    custom SQLModel subclasses with different table names.
    """

    def __init__(
        self,
        session_factory: Callable[[], AsyncSession],
        share_model: type[ShareLinkBase] = ShareLink,
    ) -> None:
        self._session_factory = session_factory
        self._share_model = share_model
        self._write_lock = asyncio.Lock()

    @staticmethod
    def new_token() -> str:
        """Return an unguessable URL-safe bearer token (192 bits)."""
        return secrets.token_urlsafe(TOKEN_BYTES)

    @staticmethod
    def is_live(record: ShareLinkBase, *, now: datetime | None = None) -> bool:
        """A record is live while ``now < expires_at``."""
        now = now or datetime.now(UTC)
        return now < _aware(record.expires_at)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def create(
        self,
        owner_identity: str,
        files: Iterable[str],
        permission: str | Permission,
        *,
        folders: Iterable[str] = (),
    ) -> ShareLinkBase:
        """Create a share link expiring ``SHARE_TTL`` from now."""
        owner = sanitize_identity(owner_identity)
        if not owner:
            raise ValidationError("Owner identity is required")
        try:
            perm = Permission(permission)
        except ValueError:
            raise ValidationError(
                f"Invalid permission: {permission!r}. Must be 'read' or 'download'."
            ) from None

        file_list = _clean_paths(files)
        folder_list = _clean_paths(folders)
        if not file_list and not folder_list:
            raise ValidationError("At least one file is required to share")

        created_at = datetime.now(UTC)
        share = self._share_model(
            token=self.new_token(),
            owner_identity=owner,
            files=file_list,
            folders=folder_list,
            permission=perm.value,
            created_at=created_at,
            expires_at=created_at + SHARE_TTL,
        )

        async with self._write_lock, self._session_factory() as session:
            session.add(share)
            await session.commit()

        logger.info(
            "Created %s share %s for %s (%d file(s), %d folder(s))",
            perm.value,
            token_prefix(share.token),
            owner,
            len(file_list),
            len(folder_list),
        )
        return share

    async def revoke(self, token: str) -> bool:
        """Delete a share link. Returns True if it existed."""
        model = self._share_model
        async with self._write_lock, self._session_factory() as session:
            share = await session.get(model, token)
            if share is None:
                return False
            await session.delete(share)
            await session.commit()
        logger.info("Revoked share %s", token_prefix(token))
        return True

    async def purge_expired(self, *, now: datetime | None = None) -> int:
        """Delete every share past its expiry. Returns the number removed."""
        now = now or datetime.now(UTC)
        model = self._share_model
        async with self._write_lock, self._session_factory() as session:
            result = await session.execute(select(model))
            expired = [s.token for s in result.scalars().all() if not self.is_live(s, now=now)]
            if expired:
                await session.execute(
                    sa_delete(model).where(model.token.in_(expired))  # type: ignore[union-attr]
                )
                await session.commit()
        if expired:
            logger.debug("Purged %d expired share(s)", len(expired))
        return len(expired)

    async def force_expiry(self, token: str, *, at: datetime | None = None) -> bool:
        """Move a share's expiry to *at* (default: now). Returns False if unknown."""
        model = self._share_model
        async with self._write_lock, self._session_factory() as session:
            share = await session.get(model, token)
            if share is None:
                return False
            share.expires_at = at or datetime.now(UTC)
            session.add(share)
            await session.commit()
        return True

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def lookup(self, token: str | None) -> ShareLinkBase | None:
        """Return the share for *token*, or None. Expired shares are returned too."""
        if not token:
            return None
        async with self._session_factory() as session:
            return await session.get(self._share_model, token)

    async def list_for_owner(self, owner_identity: str) -> list[ShareLinkBase]:
        """List every share created by *owner_identity*, newest first."""
        owner = sanitize_identity(owner_identity)
        if not owner:
            return []
        model = self._share_model
        async with self._session_factory() as session:
            result = await session.execute(
                select(model).where(model.owner_identity == owner)
            )
            shares = list(result.scalars().all())
        shares.sort(key=lambda s: _aware(s.created_at), reverse=True)
        return shares
