"""Redis cache client."""

from .client import RedisClientManager

__all__ = ["RedisClientManager"]
