"""Redis adapters for the resolve cache and the failure counters.

Key layout:
    {prefix}:subscriptions:{tenant_id}:{event_type}  JSON list of subscriptions
    {prefix}:failures:{subscription_id}              windowed failure counter
"""

import json
import logging
from typing import Iterable, List, Optional

from redis.asyncio import Redis
from redis.exceptions import RedisError

from ....core.exceptions import CacheError
from ....core.value_objects import SubscriptionId
from ....utils import SecretEncryption
from ..entities.subscription import Subscription


logger = logging.getLogger(__name__)


class RedisSubscriptionCache:
    """Resolve cache keyed by (tenant, event type).

    Cached entries carry the secret because the dispatch path signs with
    it; it is stored as a Fernet token, same as in the durable store.
    """

    def __init__(self, redis_client: Redis, encryption: SecretEncryption, key_prefix: str = "webhook"):
        if redis_client is None:
            raise ValueError("Redis client is required")
        self.redis_client = redis_client
        self.key_prefix = key_prefix
        self._encryption = encryption

    def _make_cache_key(self, tenant_id: str, event_type: str) -> str:
        return f"{self.key_prefix}:subscriptions:{tenant_id}:{event_type}"

    async def get(self, tenant_id: str, event_type: str) -> Optional[List[Subscription]]:
        key = self._make_cache_key(tenant_id, event_type)
        try:
            raw = await self.redis_client.get(key)
            if raw is None:
                return None
            return [self._decode(item) for item in json.loads(raw)]
        except (RedisError, OSError) as e:
            raise CacheError(f"Failed to read cache key {key}: {e}") from e
        except (ValueError, KeyError, TypeError) as e:
            # Undecodable entry, drop it and treat as a miss
            logger.warning(f"Discarding corrupt cache entry {key}: {e}")
            await self._delete_quietly(key)
            return None

    async def set(
        self, tenant_id: str, event_type: str, subscriptions: List[Subscription], ttl_seconds: int
    ) -> None:
        key = self._make_cache_key(tenant_id, event_type)
        payload = json.dumps([
            {**s.to_dict(), "encrypted_secret": self._encryption.encrypt_secret(s.secret)}
            for s in subscriptions
        ])
        try:
            await self.redis_client.set(key, payload, ex=ttl_seconds)
        except (RedisError, OSError) as e:
            raise CacheError(f"Failed to write cache key {key}: {e}") from e

    async def invalidate(self, tenant_id: str, event_types: Iterable[str]) -> None:
        keys = [self._make_cache_key(tenant_id, event_type) for event_type in event_types]
        if not keys:
            return
        try:
            await self.redis_client.delete(*keys)
            logger.debug(f"Invalidated {len(keys)} subscription cache keys for tenant {tenant_id}")
        except (RedisError, OSError) as e:
            raise CacheError(f"Failed to invalidate cache for tenant {tenant_id}: {e}") from e

    def _decode(self, item: dict) -> Subscription:
        secret = self._encryption.decrypt_secret(item.pop("encrypted_secret"))
        return Subscription.from_dict({**item, "secret": secret})

    async def _delete_quietly(self, key: str) -> None:
        try:
            await self.redis_client.delete(key)
        except (RedisError, OSError) as e:
            logger.warning(f"Failed to delete cache key {key}: {e}")


class RedisFailureCounter:
    """Windowed failure counter; every increment refreshes the window."""

    def __init__(self, redis_client: Redis, key_prefix: str = "webhook"):
        if redis_client is None:
            raise ValueError("Redis client is required")
        self.redis_client = redis_client
        self.key_prefix = key_prefix

    def _make_key(self, subscription_id: SubscriptionId) -> str:
        return f"{self.key_prefix}:failures:{subscription_id}"

    async def increment(self, subscription_id: SubscriptionId, window_seconds: int) -> int:
        key = self._make_key(subscription_id)
        try:
            # INCR and EXPIRE in one MULTI/EXEC so the key never lives without a TTL
            pipe = self.redis_client.pipeline(transaction=True)
            pipe.incr(key)
            pipe.expire(key, window_seconds)
            count, _ = await pipe.execute()
            return int(count)
        except (RedisError, OSError) as e:
            raise CacheError(f"Failed to increment failure counter {key}: {e}") from e

    async def get(self, subscription_id: SubscriptionId) -> int:
        key = self._make_key(subscription_id)
        try:
            raw = await self.redis_client.get(key)
            return int(raw) if raw is not None else 0
        except (RedisError, OSError) as e:
            raise CacheError(f"Failed to read failure counter {key}: {e}") from e

    async def reset(self, subscription_id: SubscriptionId) -> None:
        key = self._make_key(subscription_id)
        try:
            await self.redis_client.delete(key)
        except (RedisError, OSError) as e:
            raise CacheError(f"Failed to reset failure counter {key}: {e}") from e
