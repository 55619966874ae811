"""Adapters for outbound HTTP, Redis and their in-memory equivalents."""

from .http_delivery_adapter import HttpDeliveryAdapter
from .redis_adapters import RedisSubscriptionCache, RedisFailureCounter
from .memory_adapters import SystemClock, InMemorySubscriptionCache, InMemoryFailureCounter

__all__ = [
    "HttpDeliveryAdapter",
    "RedisSubscriptionCache",
    "RedisFailureCounter",
    "SystemClock",
    "InMemorySubscriptionCache",
    "InMemoryFailureCounter",
]
