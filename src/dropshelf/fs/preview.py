"""PreviewStore — short-lived, in-memory render links."""

from __future__ import annotations

import asyncio
import logging
import secrets
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from .exceptions import ValidationError
from .types import PreviewRecord
from .utils import token_prefix

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)

PREVIEW_TTL = timedelta(minutes=10)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class PreviewStore:
    """Process-local token -> rendered content map with a fixed TTL.

    Each entry gets a one-shot eviction timer on the running event loop.
    Reads never extend an entry's life.  Entries are also checked against
    their expiry on read, so a store used without a running loop still
    forgets them on time.  Nothing survives a restart.
    """

    def __init__(
        self,
        ttl: timedelta = PREVIEW_TTL,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.ttl = ttl
        self._clock = clock
        self._records: dict[str, PreviewRecord] = {}
        self._timers: dict[str, asyncio.TimerHandle] = {}

    def __len__(self) -> int:
        return len(self._records)

    def create(self, content: str, base_url: str = "") -> PreviewRecord:
        if not content:
            raise ValidationError("Preview content is required")

        token = secrets.token_urlsafe(16)
        created_at = self._clock()
        record = PreviewRecord(
            token=token,
            content=content,
            base_url=base_url or "",
            created_at=created_at,
            expires_at=created_at + self.ttl,
        )
        self._records[token] = record

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None
        if loop is not None:
            self._timers[token] = loop.call_later(
                self.ttl.total_seconds(), self._evict, token
            )
        return record

    def get(self, token: str) -> PreviewRecord | None:
        record = self._records.get(token)
        if record is None:
            return None
        if self._clock() >= record.expires_at:
            self._evict(token)
            return None
        return record

    def clear(self) -> None:
        """Drop every entry and cancel pending timers."""
        for handle in self._timers.values():
            handle.cancel()
        self._timers.clear()
        self._records.clear()

    def _evict(self, token: str) -> None:
        handle = self._timers.pop(token, None)
        if handle is not None:
            handle.cancel()
        if self._records.pop(token, None) is not None:
            logger.debug("Evicted preview %s", token_prefix(token))
