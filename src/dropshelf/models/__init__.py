"""SQLModel database models for Dropshelf."""

from dropshelf.models.shares import SHARE_TTL, ShareLink, ShareLinkBase

__all__ = [
    "SHARE_TTL",
    "ShareLink",
    "ShareLinkBase",
]
