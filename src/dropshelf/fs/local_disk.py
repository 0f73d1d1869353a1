"""LocalDiskStorage — per-identity directory trees on the host filesystem."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import shutil
import tempfile
import weakref
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING

from .exceptions import (
    AlreadyExistsError,
    PathNotFoundError,
    StorageError,
    ValidationError,
)
from .namespace import NamespaceResolver
from .types import DownloadHandle, FileInfo
from .utils import (
    disambiguated_name,
    guess_mime_type,
    join_path,
    sanitize_name,
    sanitize_path,
    split_path,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

logger = logging.getLogger(__name__)

MAX_UPLOAD_FILES = 20


class LocalDiskStorage:
    """Direct disk access, scoped to one identity namespace per call.

    Every method takes the identity and a namespace-relative path, runs it
    through the ``NamespaceResolver`` and only then touches the disk.
    Blocking calls run in worker threads.

    Mutations to the same resolved path are serialized by a per-path lock;
    different paths proceed concurrently and the last write wins.
    """

    def __init__(
        self,
        root: Path | str,
        *,
        max_upload_files: int = MAX_UPLOAD_FILES,
    ) -> None:
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)
        self.resolver = NamespaceResolver(self.root)
        self.max_upload_files = max(1, min(max_upload_files, MAX_UPLOAD_FILES))
        self._locks: weakref.WeakValueDictionary[Path, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    def _lock_for(self, path: Path) -> asyncio.Lock:
        lock = self._locks.get(path)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[path] = lock
        return lock

    def _info(self, identity: str, path: Path) -> FileInfo:
        st = path.stat()
        is_dir = path.is_dir()
        return FileInfo(
            path=self.resolver.to_relative(identity, path),
            name=path.name,
            is_directory=is_dir,
            size_bytes=st.st_size if not is_dir else None,
            mime_type=guess_mime_type(path.name) if not is_dir else None,
            created_at=datetime.fromtimestamp(st.st_ctime, tz=UTC),
            updated_at=datetime.fromtimestamp(st.st_mtime, tz=UTC),
        )

    def _writable(self, identity: str, relative_path: str) -> Path:
        """Resolve a write target, creating the identity root first."""
        self.resolver.identity_root(identity, create=True)
        return self.resolver.resolve(identity, relative_path)

    @staticmethod
    def _require_name(raw: str | None, what: str = "Name") -> str:
        name = sanitize_name(raw)
        if not name:
            raise ValidationError(f"{what} is required")
        return name

    # =========================================================================
    # Read Operations
    # =========================================================================

    async def list_dir(self, identity: str, folder: str = "") -> list[FileInfo]:
        """List a folder. A folder that does not exist lists as empty."""
        resolved = self.resolver.resolve(identity, folder)

        if not resolved.exists():
            return []
        if not resolved.is_dir():
            raise ValidationError(f"Not a directory: {sanitize_path(folder)}")

        def _scan() -> list[FileInfo]:
            entries: list[FileInfo] = []
            for entry in os.scandir(resolved):
                if entry.is_symlink():
                    continue
                try:
                    entries.append(self._info(identity, Path(entry.path)))
                except OSError:
                    continue
            entries.sort(key=lambda x: (not x.is_directory, x.name.lower()))
            return entries

        try:
            return await asyncio.to_thread(_scan)
        except OSError as e:
            logger.error("List failed for %s: %s", resolved, e, exc_info=True)
            raise StorageError(f"Cannot list directory: {e}") from e

    async def exists(self, identity: str, path: str) -> bool:
        resolved = self.resolver.resolve(identity, path)
        return await asyncio.to_thread(resolved.exists)

    async def get_info(self, identity: str, path: str) -> FileInfo | None:
        """Get file/directory metadata, or None when absent."""
        resolved = self.resolver.resolve(identity, path)

        def _stat() -> FileInfo | None:
            try:
                return self._info(identity, resolved)
            except FileNotFoundError:
                return None

        return await asyncio.to_thread(_stat)

    async def read_bytes(self, identity: str, path: str) -> bytes:
        """Read raw file content."""
        resolved = self.resolver.resolve(identity, path)
        rel = sanitize_path(path)

        if not resolved.exists():
            raise PathNotFoundError(f"File not found: {rel}")
        if resolved.is_dir():
            raise ValidationError(f"Path is a directory, not a file: {rel}")

        try:
            return await asyncio.to_thread(resolved.read_bytes)
        except FileNotFoundError:
            raise PathNotFoundError(f"File not found: {rel}") from None
        except OSError as e:
            logger.error("Read failed for %s: %s", resolved, e, exc_info=True)
            raise StorageError(f"Cannot read file: {e}") from e

    async def read_content(self, identity: str, path: str) -> str:
        """Read a file as UTF-8 text."""
        data = await self.read_bytes(identity, path)
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError:
            raise ValidationError(
                f"Cannot read file (not UTF-8): {sanitize_path(path)}"
            ) from None

    async def download(self, identity: str, path: str) -> DownloadHandle:
        """Prepare a file for streaming as an attachment."""
        resolved = self.resolver.resolve(identity, path)
        rel = sanitize_path(path)

        if not rel or not await asyncio.to_thread(resolved.is_file):
            raise PathNotFoundError(f"File not found: {rel}")

        size = (await asyncio.to_thread(resolved.stat)).st_size
        return DownloadHandle(
            absolute_path=resolved,
            filename=resolved.name,
            media_type=guess_mime_type(resolved.name),
            size_bytes=size,
        )

    # =========================================================================
    # Write Operations
    # =========================================================================

    async def mkdir(self, identity: str, folder: str, name: str = "") -> str:
        """Create a folder (and its parents). Idempotent."""
        rel = join_path(folder, sanitize_name(name)) if name else sanitize_path(folder)
        resolved = self._writable(identity, rel)

        if resolved.exists() and not resolved.is_dir():
            raise AlreadyExistsError(f"Path exists as file: {rel}")

        try:
            await asyncio.to_thread(resolved.mkdir, parents=True, exist_ok=True)
        except OSError as e:
            logger.error("Mkdir failed for %s: %s", resolved, e, exc_info=True)
            raise StorageError(f"Failed to create directory: {e}") from e
        return rel

    async def create_file(
        self, identity: str, folder: str, name: str, extension: str = ""
    ) -> str:
        """Create an empty file. Returns the filename."""
        base = self._require_name(name)
        ext = sanitize_name(extension)
        filename = f"{base}.{ext}" if ext else base
        rel = join_path(folder, filename)
        resolved = self._writable(identity, rel)

        def _create() -> None:
            resolved.parent.mkdir(parents=True, exist_ok=True)
            with resolved.open("xb"):
                pass

        async with self._lock_for(resolved):
            try:
                await asyncio.to_thread(_create)
            except FileExistsError:
                raise AlreadyExistsError(f"File already exists: {rel}") from None
            except OSError as e:
                logger.error("Create failed for %s: %s", resolved, e, exc_info=True)
                raise StorageError(f"Failed to create file: {e}") from e
        return filename

    async def write_content(
        self, identity: str, path: str, content: str | bytes
    ) -> bool:
        """Overwrite a file. Atomic via tempfile + replace; last writer wins.

        Returns True when the file did not exist before.
        """
        rel = sanitize_path(path)
        if not rel:
            raise ValidationError("A file path is required")
        if content is None:
            raise ValidationError("Content is required")

        resolved = self._writable(identity, rel)
        data = content.encode("utf-8") if isinstance(content, str) else content

        def _write() -> bool:
            if resolved.is_dir():
                raise ValidationError(f"Path is a directory, not a file: {rel}")
            was_created = not resolved.exists()
            resolved.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=str(resolved.parent), suffix=".tmp")
            try:
                with os.fdopen(fd, "wb") as f:
                    f.write(data)
                Path(tmp_path).replace(resolved)
            except Exception:
                with contextlib.suppress(OSError):
                    Path(tmp_path).unlink()
                raise
            return was_created

        async with self._lock_for(resolved):
            try:
                return await asyncio.to_thread(_write)
            except OSError as e:
                logger.error("Write failed for %s: %s", resolved, e, exc_info=True)
                raise StorageError(f"Failed to write file: {e}") from e

    async def store(
        self,
        identity: str,
        folder: str,
        files: Sequence[tuple[str, bytes]],
    ) -> list[str]:
        """Store an upload batch under collision-resistant names.

        The batch is validated as a whole; storage is per file, so files
        written before a later failure are kept.
        """
        if not files:
            raise ValidationError("No files uploaded")
        if len(files) > self.max_upload_files:
            raise ValidationError(
                f"Too many files: {len(files)} (max {self.max_upload_files})"
            )
        names = [self._require_name(original, "File name") for original, _ in files]

        folder_rel = sanitize_path(folder)
        target_dir = self._writable(identity, folder_rel)
        try:
            await asyncio.to_thread(target_dir.mkdir, parents=True, exist_ok=True)
        except (FileExistsError, NotADirectoryError):
            raise ValidationError(f"Not a directory: {folder_rel}") from None
        except OSError as e:
            logger.error("Mkdir failed for %s: %s", target_dir, e, exc_info=True)
            raise StorageError(f"Failed to create directory: {e}") from e

        stored: list[str] = []
        for name, (_, content) in zip(names, files, strict=True):
            stored_name = disambiguated_name(name)
            resolved = self.resolver.resolve(identity, join_path(folder_rel, stored_name))

            def _write(target: Path = resolved, data: bytes = content) -> None:
                with target.open("xb") as f:
                    f.write(data)

            try:
                await asyncio.to_thread(_write)
            except FileExistsError:
                raise AlreadyExistsError(f"File already exists: {stored_name}") from None
            except OSError as e:
                logger.error("Upload failed for %s: %s", resolved, e, exc_info=True)
                raise StorageError(f"Failed to store {name}: {e}") from e
            stored.append(stored_name)

        logger.debug("Stored %d file(s) for %s", len(stored), target_dir.name)
        return stored

    async def rename(self, identity: str, old_path: str, new_name: str) -> str:
        """Rename an entry within its folder. Never overwrites."""
        old_rel = sanitize_path(old_path)
        if not old_rel:
            raise ValidationError("A source path is required")
        name = self._require_name(new_name, "New name")

        src = self.resolver.resolve(identity, old_rel)
        parent, _ = split_path(old_rel)
        new_rel = join_path(parent, name)
        dest = self.resolver.resolve(identity, new_rel)

        if not src.exists():
            raise PathNotFoundError(f"File not found: {old_rel}")
        if src == dest:
            return new_rel

        first, second = sorted((src, dest), key=str)
        async with self._lock_for(first), self._lock_for(second):
            if dest.exists():
                raise AlreadyExistsError(f"Target already exists: {new_rel}")
            try:
                await asyncio.to_thread(src.rename, dest)
            except FileNotFoundError:
                raise PathNotFoundError(f"File not found: {old_rel}") from None
            except OSError as e:
                logger.error("Rename failed for %s -> %s: %s", src, dest, e, exc_info=True)
                raise StorageError(f"Failed to rename: {e}") from e
        return new_rel

    async def delete(self, identity: str, path: str) -> bool:
        """Delete a file, or a folder recursively. Returns True for folders."""
        rel = sanitize_path(path)
        if not rel:
            raise ValidationError("Refusing to delete the namespace root")
        resolved = self.resolver.resolve(identity, rel)

        if not resolved.exists():
            raise PathNotFoundError(f"File not found: {rel}")

        is_dir = resolved.is_dir()

        def _delete() -> None:
            if is_dir:
                shutil.rmtree(resolved)
            else:
                resolved.unlink()

        async with self._lock_for(resolved):
            try:
                await asyncio.to_thread(_delete)
            except FileNotFoundError:
                raise PathNotFoundError(f"File not found: {rel}") from None
            except OSError as e:
                logger.error("Delete failed for %s: %s", resolved, e, exc_info=True)
                raise StorageError(f"Failed to delete: {e}") from e
        return is_dir
