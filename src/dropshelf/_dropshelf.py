"""Main Dropshelf class — lifecycle and sync wrappers."""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import TYPE_CHECKING, Any

from dropshelf._dropshelf_async import DropshelfAsync

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from dropshelf.config import DropshelfConfig
    from dropshelf.fs.permissions import Permission
    from dropshelf.fs.types import (
        DownloadHandle,
        FileInfo,
        HealthStatus,
        PreviewRecord,
        PreviewResult,
        SharedFile,
        ShareInfo,
        ShareResult,
    )

logger = logging.getLogger(__name__)


class Dropshelf:
    """Synchronous facade over ``DropshelfAsync``.

    Runs a private event loop in a daemon thread so scripts and
    notebooks can call the storage operations without ``await``.
    Preview expiry timers live on that loop.

    Usage::

        with Dropshelf(data_dir="/srv/dropshelf") as shelf:
            names = shelf.upload("a@b.com", [("notes.txt", b"hello")])
            share = shelf.create_share("a@b.com", names, "download")
    """

    def __init__(self, config: DropshelfConfig | None = None, **overrides: Any) -> None:
        self._closed = False

        self._loop = asyncio.new_event_loop()
        self._thread = threading.Thread(target=self._loop.run_forever, daemon=True)
        self._thread.start()

        try:
            self._shelf: DropshelfAsync = self._run(self._async_init(config, overrides))
        except BaseException:
            self._loop.call_soon_threadsafe(self._loop.stop)
            self._thread.join(timeout=5)
            raise

    @staticmethod
    async def _async_init(
        config: DropshelfConfig | None, overrides: dict[str, Any]
    ) -> DropshelfAsync:
        shelf = DropshelfAsync(config, **overrides)
        await shelf.open()
        return shelf

    def _run(self, coro: Any) -> Any:
        """Submit *coro* to the private loop and block for the result."""
        future = asyncio.run_coroutine_threadsafe(coro, self._loop)
        return future.result()

    @property
    def config(self) -> DropshelfConfig:
        return self._shelf.config

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Close the async facade, stop the event loop and join the thread."""
        if self._closed:
            return
        self._closed = True

        try:
            self._run(self._shelf.close())
        finally:
            self._loop.call_soon_threadsafe(self._loop.stop)
            self._thread.join(timeout=5)

    def __enter__(self) -> Dropshelf:
        return self

    def __exit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Namespace wrappers (sync)
    # ------------------------------------------------------------------

    def upload(
        self, identity: str, files: Sequence[tuple[str, bytes]], folder: str = ""
    ) -> list[str]:
        return self._run(self._shelf.upload(identity, files, folder))

    def list_files(self, identity: str, folder: str = "") -> list[FileInfo]:
        return self._run(self._shelf.list_files(identity, folder))

    def create_folder(self, identity: str, folder: str, name: str = "") -> str:
        return self._run(self._shelf.create_folder(identity, folder, name))

    def create_file(self, identity: str, folder: str, name: str, extension: str = "") -> str:
        return self._run(self._shelf.create_file(identity, folder, name, extension))

    def read_content(self, identity: str, path: str) -> str:
        return self._run(self._shelf.read_content(identity, path))

    def save_content(self, identity: str, path: str, content: str | bytes) -> None:
        self._run(self._shelf.save_content(identity, path, content))

    def rename(self, identity: str, old_path: str, new_name: str) -> str:
        return self._run(self._shelf.rename(identity, old_path, new_name))

    def delete(self, identity: str, path: str) -> None:
        self._run(self._shelf.delete(identity, path))

    def download(self, identity: str, path: str) -> DownloadHandle:
        return self._run(self._shelf.download(identity, path))

    # ------------------------------------------------------------------
    # Sharing wrappers (sync)
    # ------------------------------------------------------------------

    def create_share(
        self,
        identity: str,
        files: Iterable[str],
        permission: str | Permission,
        *,
        folders: Iterable[str] = (),
    ) -> ShareResult:
        return self._run(
            self._shelf.create_share(identity, list(files), permission, folders=list(folders))
        )

    def get_share_info(self, token: str) -> ShareInfo:
        return self._run(self._shelf.get_share_info(token))

    def list_shares(self, identity: str) -> list[ShareInfo]:
        return self._run(self._shelf.list_shares(identity))

    def revoke_share(self, token: str) -> None:
        self._run(self._shelf.revoke_share(token))

    def purge_expired_shares(self) -> int:
        return self._run(self._shelf.purge_expired_shares())

    def access_share(self, token: str, path: str) -> SharedFile:
        return self._run(self._shelf.access_share(token, path))

    def create_preview(self, content: str, base_url: str = "") -> PreviewResult:
        return self._run(self._shelf.create_preview(content, base_url))

    def get_preview(self, token: str) -> PreviewRecord:
        return self._run(self._shelf.get_preview(token))

    def health(self) -> HealthStatus:
        return self._run(self._shelf.health())
