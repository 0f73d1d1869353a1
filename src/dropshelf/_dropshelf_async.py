"""DropshelfAsync — primary async class exposing the storage operations."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from dropshelf.config import DropshelfConfig
from dropshelf.fs.access import AccessGate
from dropshelf.fs.exceptions import (
    DropshelfError,
    PathNotFoundError,
    ShareDeniedError,
    ShareExpiredError,
    ShareNotFoundError,
)
from dropshelf.fs.local_disk import LocalDiskStorage
from dropshelf.fs.preview import PreviewStore
from dropshelf.fs.sharing import ShareRegistry
from dropshelf.fs.types import (
    AccessOutcome,
    HealthStatus,
    PreviewResult,
    SharedFile,
    ShareInfo,
    ShareResult,
)
from dropshelf.fs.utils import guess_mime_type
from dropshelf.models.shares import ShareLink

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from pathlib import Path

    from sqlalchemy.ext.asyncio import AsyncEngine

    from dropshelf.fs.permissions import Permission
    from dropshelf.fs.types import DownloadHandle, FileInfo, PreviewRecord
    from dropshelf.models.shares import ShareLinkBase

logger = logging.getLogger(__name__)


def _share_info(share: ShareLinkBase, live: bool) -> ShareInfo:
    return ShareInfo(
        token=share.token,
        owner_identity=share.owner_identity,
        permission=share.permission,
        files=list(share.files),
        folders=list(share.folders),
        created_at=share.created_at,
        expires_at=share.expires_at,
        live=live,
    )


class DropshelfAsync:
    """Async facade wiring storage, share registry, access gate and previews.

    Usage::

        shelf = DropshelfAsync(data_dir="/srv/dropshelf")
        await shelf.open()
        names = await shelf.upload("a@b.com", [("notes.txt", b"hello")])
        share = await shelf.create_share("a@b.com", names, "read")
        shared = await shelf.access_share(share.token, names[0])
        await shelf.close()

    Or as an async context manager (``async with DropshelfAsync(...)``).
    """

    def __init__(
        self,
        config: DropshelfConfig | None = None,
        *,
        engine: AsyncEngine | None = None,
        share_model: type[ShareLinkBase] = ShareLink,
        **overrides: Any,
    ) -> None:
        self.config = config or DropshelfConfig(**overrides)
        self._share_model = share_model
        self._engine = engine
        self._owns_engine = engine is None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None
        self._init_lock = asyncio.Lock()
        self._registry: ShareRegistry | None = None
        self._gate: AccessGate | None = None
        self._closed = False

        assert self.config.storage_root is not None
        self.storage = LocalDiskStorage(
            self.config.storage_root,
            max_upload_files=self.config.max_upload_files,
        )
        self.previews = PreviewStore()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def open(self) -> None:
        """Create the engine (if none was given) and the share table."""
        if self._session_factory is not None:
            return
        async with self._init_lock:
            if self._session_factory is not None:
                return

            if self._engine is None:
                self.config.data_dir.mkdir(parents=True, exist_ok=True)
                self._engine = create_async_engine(
                    self.config.resolved_database_url, echo=False
                )
                if self._engine.dialect.name == "sqlite":
                    event.listen(self._engine.sync_engine, "connect", _set_sqlite_pragma)

            share_table = self._share_model.__table__  # type: ignore[unresolved-attribute]
            async with self._engine.begin() as conn:
                await conn.run_sync(lambda c: share_table.create(c, checkfirst=True))

            self._session_factory = async_sessionmaker(
                self._engine,
                class_=AsyncSession,
                expire_on_commit=False,
            )
            self._registry = ShareRegistry(self._session_factory, self._share_model)
            self._gate = AccessGate(self._registry, self.storage.resolver)
            self._closed = False
            logger.debug("Opened Dropshelf at %s", self.config.storage_root)

    async def close(self) -> None:
        """Drop previews and release the engine if we created it."""
        if self._closed:
            return
        self.previews.clear()
        if self._engine is not None and self._owns_engine:
            await self._engine.dispose()
            self._engine = None
        self._session_factory = None
        self._registry = None
        self._gate = None
        self._closed = True

    async def __aenter__(self) -> DropshelfAsync:
        await self.open()
        return self

    async def __aexit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        await self.close()

    @property
    def registry(self) -> ShareRegistry:
        if self._registry is None:
            raise DropshelfError("Dropshelf is not open; call open() first")
        return self._registry

    @property
    def gate(self) -> AccessGate:
        if self._gate is None:
            raise DropshelfError("Dropshelf is not open; call open() first")
        return self._gate

    # ------------------------------------------------------------------
    # Namespace operations
    # ------------------------------------------------------------------

    async def upload(
        self,
        identity: str,
        files: Sequence[tuple[str, bytes]],
        folder: str = "",
    ) -> list[str]:
        """Store a batch of ``(original_name, content)`` pairs."""
        return await self.storage.store(identity, folder, files)

    async def list_files(self, identity: str, folder: str = "") -> list[FileInfo]:
        return await self.storage.list_dir(identity, folder)

    async def create_folder(self, identity: str, folder: str, name: str = "") -> str:
        return await self.storage.mkdir(identity, folder, name)

    async def create_file(
        self, identity: str, folder: str, name: str, extension: str = ""
    ) -> str:
        return await self.storage.create_file(identity, folder, name, extension)

    async def read_content(self, identity: str, path: str) -> str:
        return await self.storage.read_content(identity, path)

    async def save_content(self, identity: str, path: str, content: str | bytes) -> None:
        await self.storage.write_content(identity, path, content)

    async def rename(self, identity: str, old_path: str, new_name: str) -> str:
        return await self.storage.rename(identity, old_path, new_name)

    async def delete(self, identity: str, path: str) -> None:
        await self.storage.delete(identity, path)

    async def download(self, identity: str, path: str) -> DownloadHandle:
        return await self.storage.download(identity, path)

    # ------------------------------------------------------------------
    # Sharing
    # ------------------------------------------------------------------

    def share_url(self, token: str) -> str:
        return f"{self.config.public_base_url}/share/{token}"

    def preview_url(self, token: str) -> str:
        return f"{self.config.public_base_url}/preview/{token}"

    async def create_share(
        self,
        identity: str,
        files: Iterable[str],
        permission: str | Permission,
        *,
        folders: Iterable[str] = (),
    ) -> ShareResult:
        """Create a 24-hour share link over *files* (and whole *folders*)."""
        share = await self.registry.create(identity, files, permission, folders=folders)
        return ShareResult(
            token=share.token,
            url=self.share_url(share.token),
            share=_share_info(share, live=True),
        )

    async def get_share_info(self, token: str) -> ShareInfo:
        share = await self.registry.lookup(token)
        if share is None:
            raise ShareNotFoundError("Share not found")
        return _share_info(share, live=self.registry.is_live(share))

    async def list_shares(self, identity: str) -> list[ShareInfo]:
        shares = await self.registry.list_for_owner(identity)
        return [_share_info(s, live=self.registry.is_live(s)) for s in shares]

    async def revoke_share(self, token: str) -> None:
        if not await self.registry.revoke(token):
            raise ShareNotFoundError("Share not found")

    async def purge_expired_shares(self) -> int:
        return await self.registry.purge_expired()

    async def access_share(self, token: str, path: str) -> SharedFile:
        """Read a file through a share link, shaped by its permission."""
        decision = await self.gate.authorize(token, path)
        if decision.outcome is AccessOutcome.EXPIRED:
            raise ShareExpiredError(decision.message)
        if decision.outcome is AccessOutcome.DENY:
            raise ShareDeniedError(decision.message)
        if decision.outcome is AccessOutcome.NOT_FOUND:
            if decision.relative_path is None:
                raise ShareNotFoundError(decision.message)
            raise PathNotFoundError(decision.message)

        assert decision.absolute_path is not None
        assert decision.permission is not None
        assert decision.relative_path is not None
        try:
            content = await asyncio.to_thread(decision.absolute_path.read_bytes)
        except FileNotFoundError:
            raise PathNotFoundError(f"File not found: {decision.relative_path}") from None

        name = decision.absolute_path.name
        return SharedFile(
            filename=name,
            content=content,
            media_type=guess_mime_type(name),
            permission=decision.permission,
            relative_path=decision.relative_path,
        )

    # ------------------------------------------------------------------
    # Previews
    # ------------------------------------------------------------------

    async def create_preview(self, content: str, base_url: str = "") -> PreviewResult:
        record = self.previews.create(content, base_url)
        return PreviewResult(
            token=record.token,
            url=self.preview_url(record.token),
            expires_at=record.expires_at,
        )

    async def get_preview(self, token: str) -> PreviewRecord:
        record = self.previews.get(token)
        if record is None:
            raise ShareNotFoundError("Preview not found or expired")
        return record

    # ------------------------------------------------------------------
    # Health
    # ------------------------------------------------------------------

    async def health(self) -> HealthStatus:
        """Report whether the storage root and share registry are usable."""
        root: Path = self.storage.root
        storage_ok = await asyncio.to_thread(root.is_dir)
        registry_ok = False
        if self._engine is not None and self._session_factory is not None:
            try:
                async with self._engine.connect() as conn:
                    await conn.execute(text("SELECT 1"))
                registry_ok = True
            except Exception:
                logger.warning("Share registry health check failed", exc_info=True)
        ok = storage_ok and registry_ok
        return HealthStatus(
            ok=ok,
            storage_root=str(root),
            registry=registry_ok,
            message="File storage backend running" if ok else "Degraded",
        )


def _set_sqlite_pragma(dbapi_connection: object, connection_record: object) -> None:
    cursor = dbapi_connection.cursor()  # type: ignore[union-attr]
    cursor.execute("PRAGMA journal_mode=WAL")
    result = cursor.fetchone()
    if result and str(result[0]).lower() != "wal":
        logger.warning("WAL mode not active, got: %s", result[0])
    cursor.execute("PRAGMA busy_timeout=5000")
    cursor.close()
