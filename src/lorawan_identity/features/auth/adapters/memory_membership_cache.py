"""In-memory implementation of the membership cache."""

import logging
import time
from datetime import timedelta
from typing import Dict, Optional, Tuple

from ....core.value_objects.identifiers import EntityIdentifiers, EntityKind
from ...rights.entities.rights import Rights
from ..entities.protocols import MembershipCache

logger = logging.getLogger(__name__)


class MemoryMembershipCache(MembershipCache):
    """Process-local membership cache with per-entry expiry."""

    def __init__(self, ttl: timedelta = timedelta(minutes=10)):
        self.ttl = ttl
        self._entries: Dict[Tuple[EntityIdentifiers, EntityKind], Tuple[float, Dict[str, Rights]]] = {}

    @property
    def enabled(self) -> bool:
        return self.ttl.total_seconds() > 0

    async def get_member_rights(
        self, account: EntityIdentifiers, entity_kind: EntityKind
    ) -> Optional[Dict[str, Rights]]:
        if not self.enabled:
            return None
        entry = self._entries.get((account, entity_kind))
        if entry is None:
            return None
        expires, rights = entry
        if expires <= time.monotonic():
            self._entries.pop((account, entity_kind), None)
            return None
        return dict(rights)

    async def set_member_rights(
        self, account: EntityIdentifiers, entity_kind: EntityKind, rights: Dict[str, Rights]
    ) -> None:
        if not self.enabled:
            return
        now = time.monotonic()
        self._prune(now)
        self._entries[(account, entity_kind)] = (now + self.ttl.total_seconds(), dict(rights))

    def _prune(self, now: float) -> None:
        expired = [key for key, (expires, _) in self._entries.items() if expires <= now]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug(f"Pruned {len(expired)} expired membership cache entries")

    async def invalidate(self, account: EntityIdentifiers) -> None:
        for kind in EntityKind:
            self._entries.pop((account, kind), None)

    def clear(self) -> None:
        self._entries.clear()
