"""Dropshelf: per-user file storage with expiring share links.

Isolated identity namespaces on disk, a durable share-token registry,
and short-lived preview links.
"""

__version__ = "0.1.0"

from dropshelf._dropshelf import Dropshelf
from dropshelf._dropshelf_async import DropshelfAsync
from dropshelf.config import DropshelfConfig
from dropshelf.fs.exceptions import (
    AlreadyExistsError,
    DropshelfError,
    ErrorKind,
    PathEscapeError,
    PathNotFoundError,
    ShareDeniedError,
    ShareExpiredError,
    ShareNotFoundError,
    StorageError,
    ValidationError,
)
from dropshelf.fs.permissions import Permission
from dropshelf.fs.types import (
    AccessDecision,
    AccessOutcome,
    DownloadHandle,
    FileInfo,
    PreviewRecord,
    PreviewResult,
    SharedFile,
    ShareInfo,
    ShareResult,
)

__all__ = [
    "AccessDecision",
    "AccessOutcome",
    "AlreadyExistsError",
    "DownloadHandle",
    "Dropshelf",
    "DropshelfAsync",
    "DropshelfConfig",
    "DropshelfError",
    "ErrorKind",
    "FileInfo",
    "PathEscapeError",
    "PathNotFoundError",
    "Permission",
    "PreviewRecord",
    "PreviewResult",
    "ShareDeniedError",
    "ShareExpiredError",
    "ShareInfo",
    "ShareNotFoundError",
    "ShareResult",
    "SharedFile",
    "StorageError",
    "ValidationError",
    "__version__",
]
