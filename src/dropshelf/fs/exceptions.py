"""Custom exception hierarchy for the Dropshelf storage layer."""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Stable failure kind carried by every ``DropshelfError``."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    ALREADY_EXISTS = "ALREADY_EXISTS"
    PATH_ESCAPE = "PATH_ESCAPE"
    DENY = "DENY"
    EXPIRED = "EXPIRED"
    STORAGE_ERROR = "STORAGE_ERROR"


class DropshelfError(Exception):
    """Base exception for all Dropshelf errors."""

    kind: ErrorKind = ErrorKind.STORAGE_ERROR


class ValidationError(DropshelfError):
    """Raised when a required input is missing or empty after sanitization."""

    kind = ErrorKind.VALIDATION_ERROR


class PathNotFoundError(DropshelfError):
    """Raised when a file or directory path does not exist."""

    kind = ErrorKind.NOT_FOUND


class ShareNotFoundError(DropshelfError):
    """Raised when a share or preview token is unknown."""

    kind = ErrorKind.NOT_FOUND


class AlreadyExistsError(DropshelfError):
    """Raised when a create or rename would collide with an existing entry."""

    kind = ErrorKind.ALREADY_EXISTS


class PathEscapeError(DropshelfError, PermissionError):
    """Raised when a resolved path would leave its identity namespace."""

    kind = ErrorKind.PATH_ESCAPE


class ShareDeniedError(DropshelfError):
    """Raised when a live share does not cover the requested path."""

    kind = ErrorKind.DENY


class ShareExpiredError(DropshelfError):
    """Raised when a share token is past its lifetime."""

    kind = ErrorKind.EXPIRED


class StorageError(DropshelfError):
    """Raised on storage backend failures (DB connection, disk I/O, etc.)."""

    kind = ErrorKind.STORAGE_ERROR
