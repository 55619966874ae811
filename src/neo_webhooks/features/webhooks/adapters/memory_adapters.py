"""In-memory resolve cache, failure counters and clocks.

Single-process equivalents of the Redis adapters, used when REDIS_URL is
not configured and in tests. Expiry follows the injected clock so tests
can move time forward deterministically.
"""

import asyncio
import copy
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional, Tuple

from ....core.value_objects import SubscriptionId
from ....utils import utc_now
from ..entities.protocols import Clock
from ..entities.subscription import Subscription


class SystemClock:
    """Wall clock in UTC."""

    def now(self) -> datetime:
        return utc_now()


class InMemorySubscriptionCache:
    """Dictionary-backed resolve cache with per-key TTL."""

    def __init__(self, clock: Optional[Clock] = None):
        self._clock = clock or SystemClock()
        self._lock = asyncio.Lock()
        self._entries: Dict[Tuple[str, str], Tuple[datetime, List[Subscription]]] = {}

    async def get(self, tenant_id: str, event_type: str) -> Optional[List[Subscription]]:
        async with self._lock:
            entry = self._entries.get((tenant_id, event_type))
            if entry is None:
                return None
            expires_at, subscriptions = entry
            if expires_at <= self._clock.now():
                del self._entries[(tenant_id, event_type)]
                return None
            return copy.deepcopy(subscriptions)

    async def set(
        self, tenant_id: str, event_type: str, subscriptions: List[Subscription], ttl_seconds: int
    ) -> None:
        async with self._lock:
            expires_at = self._clock.now() + timedelta(seconds=ttl_seconds)
            self._entries[(tenant_id, event_type)] = (expires_at, copy.deepcopy(subscriptions))

    async def invalidate(self, tenant_id: str, event_types: Iterable[str]) -> None:
        async with self._lock:
            for event_type in event_types:
                self._entries.pop((tenant_id, event_type), None)


class InMemoryFailureCounter:
    """Windowed failure counter; every increment refreshes the window."""

    def __init__(self, clock: Optional[Clock] = None):
        self._clock = clock or SystemClock()
        self._lock = asyncio.Lock()
        self._counters: Dict[SubscriptionId, Tuple[int, datetime]] = {}

    def _current(self, subscription_id: SubscriptionId) -> int:
        entry = self._counters.get(subscription_id)
        if entry is None:
            return 0
        count, expires_at = entry
        if expires_at <= self._clock.now():
            del self._counters[subscription_id]
            return 0
        return count

    async def increment(self, subscription_id: SubscriptionId, window_seconds: int) -> int:
        async with self._lock:
            count = self._current(subscription_id) + 1
            self._counters[subscription_id] = (
                count,
                self._clock.now() + timedelta(seconds=window_seconds),
            )
            return count

    async def get(self, subscription_id: SubscriptionId) -> int:
        async with self._lock:
            return self._current(subscription_id)

    async def reset(self, subscription_id: SubscriptionId) -> None:
        async with self._lock:
            self._counters.pop(subscription_id, None)
