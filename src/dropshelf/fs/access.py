"""AccessGate — decides what a share token may reach."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from .permissions import Permission
from .types import AccessDecision, AccessOutcome
from .utils import sanitize_path, token_prefix

if TYPE_CHECKING:
    from .namespace import NamespaceResolver
    from .sharing import ShareRegistry

logger = logging.getLogger(__name__)


class AccessGate:
    """Resolves ``(token, path)`` to ALLOW, DENY, NOT_FOUND or EXPIRED.

    The owner's namespace is re-derived through the ``NamespaceResolver``
    on every check; ``PathEscapeError`` from the resolver propagates and
    is never turned into a DENY.
    """

    def __init__(self, registry: ShareRegistry, resolver: NamespaceResolver) -> None:
        self._registry = registry
        self._resolver = resolver

    async def authorize(self, token: str, requested_path: str) -> AccessDecision:
        share = await self._registry.lookup(token)
        if share is None:
            return AccessDecision(AccessOutcome.NOT_FOUND, "Share not found")

        if not self._registry.is_live(share):
            logger.warning("Access attempt on expired share %s", token_prefix(token))
            return AccessDecision(
                AccessOutcome.EXPIRED,
                "Share link has expired",
                owner_identity=share.owner_identity,
            )

        rel = sanitize_path(requested_path)
        if not rel or not share.covers(rel):
            return AccessDecision(
                AccessOutcome.DENY,
                f"Path is not covered by this share: {rel}",
                relative_path=rel,
                owner_identity=share.owner_identity,
            )

        resolved = self._resolver.resolve(share.owner_identity, rel)
        if not await asyncio.to_thread(resolved.is_file):
            return AccessDecision(
                AccessOutcome.NOT_FOUND,
                f"File not found: {rel}",
                relative_path=rel,
                owner_identity=share.owner_identity,
            )

        return AccessDecision(
            AccessOutcome.ALLOW,
            f"Access granted: {rel}",
            relative_path=rel,
            absolute_path=resolved,
            owner_identity=share.owner_identity,
            permission=Permission(share.permission),
        )
