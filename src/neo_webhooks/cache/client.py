"""
Redis client factory.

Builds the shared redis.asyncio client used by the subscription cache and
the failure counters.
"""
import logging
from typing import Optional

from redis.asyncio import Redis, ConnectionPool

logger = logging.getLogger(__name__)


class RedisClientManager:
    """Owns the Redis connection pool for the lifetime of the platform."""

    def __init__(self, redis_url: str, max_connections: int = 10):
        self.redis_url = redis_url
        self.max_connections = max_connections
        self.pool: Optional[ConnectionPool] = None
        self.client: Optional[Redis] = None

    async def connect(self) -> Redis:
        """Create the pool and verify connectivity."""
        if self.client is None:
            logger.info("Creating Redis connection pool...")
            self.pool = ConnectionPool.from_url(
                self.redis_url,
                max_connections=self.max_connections,
                decode_responses=True,
                health_check_interval=30
            )
            self.client = Redis(connection_pool=self.pool)
            await self.client.ping()
            logger.info("Redis connection established successfully")
        return self.client

    async def disconnect(self) -> None:
        """Close Redis connection."""
        if self.client:
            await self.client.aclose()
            if self.pool:
                await self.pool.disconnect()
            self.client = None
            self.pool = None
            logger.info("Redis connection closed")
