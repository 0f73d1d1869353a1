"""NamespaceResolver — identity + relative path to a contained disk path."""

from __future__ import annotations

import logging
from pathlib import Path

from .exceptions import PathEscapeError, ValidationError
from .utils import sanitize_identity, sanitize_path

logger = logging.getLogger(__name__)


class NamespaceResolver:
    """Maps ``(identity, relative_path)`` onto ``root/<identity>/<path>``.

    Sanitization alone is a filter, not a guarantee, so every resolved
    path is also checked to be inside the identity's root after symlink
    resolution.  Failing that check raises ``PathEscapeError``; the path
    is never clamped.

    Identity roots are created on write only (``create=True``), so
    read-only probes leave no empty folders behind.
    """

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root).resolve()

    # ------------------------------------------------------------------
    # Identity roots
    # ------------------------------------------------------------------

    @staticmethod
    def require_identity(identity: str | None) -> str:
        """Sanitize *identity*, raising if nothing usable remains."""
        safe = sanitize_identity(identity)
        if not safe:
            raise ValidationError("Identity is required")
        return safe

    def identity_root(self, identity: str | None, *, create: bool = False) -> Path:
        """Return the namespace root for *identity*.

        With *create*, the directory is made on demand (a write follows).
        """
        safe = self.require_identity(identity)
        user_root = self.root / safe
        if user_root.parent != self.root:
            raise PathEscapeError(f"Identity {safe!r} does not map to a single folder")
        if user_root.is_symlink():
            raise PathEscapeError(f"Namespace root for {safe!r} is a symlink")
        if create and not user_root.exists():
            user_root.mkdir(parents=True, exist_ok=True)
            logger.debug("Created namespace root %s", user_root)
        return user_root

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def resolve(self, identity: str | None, relative_path: str | None) -> Path:
        """Resolve *relative_path* inside *identity*'s namespace.

        Raises ``ValidationError`` for an empty identity and
        ``PathEscapeError`` when the result is not contained in the
        namespace root (including through a symlinked component).
        """
        user_root = self.identity_root(identity)
        rel = sanitize_path(relative_path)
        if not rel:
            return user_root

        candidate = user_root.joinpath(*rel.split("/"))

        current = user_root
        for part in rel.split("/"):
            current = current / part
            if current.is_symlink():
                logger.warning(
                    "Rejected symlinked path %r in namespace %s", relative_path, user_root.name
                )
                raise PathEscapeError(
                    f"Symlinks not allowed: {rel} contains symlink at "
                    f"{current.relative_to(user_root)}"
                )

        resolved = candidate.resolve()
        self._check_contained(resolved, user_root, relative_path)
        return resolved

    def to_relative(self, identity: str | None, absolute: Path) -> str:
        """Convert an absolute path back to a namespace-relative one."""
        user_root = self.identity_root(identity)
        resolved = absolute.resolve()
        self._check_contained(resolved, user_root, str(absolute))
        rel = resolved.relative_to(user_root.resolve()).as_posix()
        return "" if rel == "." else rel

    @staticmethod
    def _check_contained(resolved: Path, user_root: Path, original: str | None) -> None:
        try:
            resolved.relative_to(user_root.resolve())
        except ValueError:
            logger.warning("Path escape attempt: %r resolved to %s", original, resolved)
            raise PathEscapeError(
                f"Path traversal detected: {original!r} resolves outside its namespace"
            ) from None
