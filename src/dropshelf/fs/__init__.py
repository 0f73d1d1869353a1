"""Storage layer — sanitizer, namespace resolver, disk tree, sharing, previews."""

from dropshelf.fs.access import AccessGate
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
from dropshelf.fs.local_disk import MAX_UPLOAD_FILES, LocalDiskStorage
from dropshelf.fs.namespace import NamespaceResolver
from dropshelf.fs.permissions import Permission
from dropshelf.fs.preview import PREVIEW_TTL, PreviewStore
from dropshelf.fs.sharing import ShareRegistry
from dropshelf.fs.utils import sanitize, sanitize_identity, sanitize_name, sanitize_path

__all__ = [
    "MAX_UPLOAD_FILES",
    "PREVIEW_TTL",
    "AccessGate",
    "AlreadyExistsError",
    "DropshelfError",
    "ErrorKind",
    "LocalDiskStorage",
    "NamespaceResolver",
    "PathEscapeError",
    "PathNotFoundError",
    "Permission",
    "PreviewStore",
    "ShareDeniedError",
    "ShareExpiredError",
    "ShareNotFoundError",
    "ShareRegistry",
    "StorageError",
    "ValidationError",
    "sanitize",
    "sanitize_identity",
    "sanitize_name",
    "sanitize_path",
]
