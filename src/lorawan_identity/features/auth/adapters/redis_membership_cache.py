"""Redis implementation of the membership cache."""

import json
import logging
from datetime import timedelta
from typing import Dict, Optional

import redis.asyncio as redis

from ....core.exceptions.infrastructure import CacheError
from ....core.value_objects.identifiers import EntityIdentifiers, EntityKind
from ...rights.entities.rights import Rights
from ..entities.protocols import MembershipCache

logger = logging.getLogger(__name__)


class RedisMembershipCache(MembershipCache):
    """Membership cache kept in Redis.

    One key per account and entity kind holds a JSON object mapping entity
    IDs to rights. Every failure is logged and reported as a miss.
    """

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379",
        redis_password: Optional[str] = None,
        redis_db: int = 0,
        key_prefix: str = "lorawan_is",
        ttl: timedelta = timedelta(minutes=10),
        client: Optional[redis.Redis] = None,
    ):
        self.redis_url = redis_url
        self.redis_password = redis_password
        self.redis_db = redis_db
        self.key_prefix = key_prefix
        self.ttl = ttl

        self._redis: Optional[redis.Redis] = client

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.disconnect()

    async def connect(self) -> None:
        """Connect to Redis."""
        if self._redis is not None:
            return
        try:
            self._redis = redis.from_url(
                self.redis_url,
                password=self.redis_password,
                db=self.redis_db,
                decode_responses=True,
            )
            await self._redis.ping()
            logger.info("Connected to Redis for membership cache")
        except Exception as e:
            self._redis = None
            logger.error(f"Failed to connect to Redis: {e}")
            raise CacheError(f"Redis connection failed: {e}") from e

    async def disconnect(self) -> None:
        """Disconnect from Redis."""
        if self._redis:
            await self._redis.aclose()
            self._redis = None
            logger.info("Disconnected from Redis")

    def _ensure_connected(self) -> redis.Redis:
        if not self._redis:
            raise CacheError("Redis not connected. Use async context manager or call connect().")
        return self._redis

    def _make_key(self, account: EntityIdentifiers, entity_kind: EntityKind) -> str:
        return f"{self.key_prefix}:memberships:{account.unique_id}:{entity_kind.value}"

    @property
    def enabled(self) -> bool:
        return self.ttl.total_seconds() > 0

    async def get_member_rights(
        self, account: EntityIdentifiers, entity_kind: EntityKind
    ) -> Optional[Dict[str, Rights]]:
        if not self.enabled:
            return None
        key = self._make_key(account, entity_kind)
        try:
            cached = await self._ensure_connected().get(key)
        except Exception as e:
            logger.warning(f"Failed to get membership cache key {key}: {e}")
            return None
        if cached is None:
            logger.debug(f"Membership cache miss for {key}")
            return None
        try:
            data = json.loads(cached)
            result = {entity_id: Rights(rights) for entity_id, rights in data.items()}
        except Exception as e:
            logger.warning(f"Failed to deserialize membership cache key {key}: {e}")
            await self._delete(key)
            return None
        logger.debug(f"Membership cache hit for {key}")
        return result

    async def set_member_rights(
        self, account: EntityIdentifiers, entity_kind: EntityKind, rights: Dict[str, Rights]
    ) -> None:
        if not self.enabled:
            return
        key = self._make_key(account, entity_kind)
        payload = json.dumps({entity_id: value.to_list() for entity_id, value in rights.items()})
        try:
            await self._ensure_connected().setex(key, int(self.ttl.total_seconds()), payload)
            logger.debug(f"Cached memberships {key} for {self.ttl}")
        except Exception as e:
            logger.warning(f"Failed to set membership cache key {key}: {e}")

    async def invalidate(self, account: EntityIdentifiers) -> None:
        keys = [self._make_key(account, kind) for kind in EntityKind]
        await self._delete(*keys)

    async def _delete(self, *keys: str) -> None:
        try:
            await self._ensure_connected().delete(*keys)
            logger.debug(f"Deleted membership cache keys {', '.join(keys)}")
        except Exception as e:
            logger.warning(f"Failed to delete membership cache keys: {e}")
