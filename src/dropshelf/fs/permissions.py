"""Share permission levels."""

from __future__ import annotations

from enum import Enum


class Permission(str, Enum):
    """Access mode granted by a share link.

    ``read`` serves content inline, ``download`` forces an attachment.
    """

    READ = "read"
    DOWNLOAD = "download"

    @property
    def disposition(self) -> str:
        return "inline" if self is Permission.READ else "attachment"
