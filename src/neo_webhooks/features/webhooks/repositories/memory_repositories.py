"""In-memory subscription store and retry queue.

Used when no DATABASE_URL is configured (development, tests). Same
contracts as the asyncpg repositories but nothing survives a restart.
Entities are deep-copied on the way in and out so callers never share
mutable state with the store.
"""

import asyncio
import copy
import logging
from datetime import datetime
from typing import Dict, List, Optional

from ....core.exceptions import SubscriptionNotFoundError
from ....core.value_objects import RetryItemId, SubscriptionId
from ..entities.retry_item import RetryItem
from ..entities.subscription import Subscription


logger = logging.getLogger(__name__)


class InMemorySubscriptionRepository:
    """Dictionary-backed subscription store."""

    def __init__(self):
        self._lock = asyncio.Lock()
        self._subscriptions: Dict[SubscriptionId, Subscription] = {}

    async def save(self, subscription: Subscription) -> Subscription:
        async with self._lock:
            if subscription.id in self._subscriptions:
                raise ValueError(f"Subscription {subscription.id} already exists")
            self._subscriptions[subscription.id] = copy.deepcopy(subscription)
            return copy.deepcopy(subscription)

    async def update(self, subscription: Subscription) -> Subscription:
        async with self._lock:
            if subscription.id not in self._subscriptions:
                raise SubscriptionNotFoundError(str(subscription.id))
            self._subscriptions[subscription.id] = copy.deepcopy(subscription)
            return copy.deepcopy(subscription)

    async def get_by_id(self, subscription_id: SubscriptionId) -> Optional[Subscription]:
        async with self._lock:
            stored = self._subscriptions.get(subscription_id)
            return copy.deepcopy(stored) if stored else None

    async def find_active(self, tenant_id: str, event_type: str) -> List[Subscription]:
        async with self._lock:
            matches = [
                s for s in self._subscriptions.values()
                if s.tenant_id == tenant_id and s.is_deliverable_for(event_type)
            ]
            matches.sort(key=lambda s: s.created_at)
            return copy.deepcopy(matches)

    async def list_by_tenant(self, tenant_id: str) -> List[Subscription]:
        async with self._lock:
            matches = [s for s in self._subscriptions.values() if s.tenant_id == tenant_id]
            matches.sort(key=lambda s: s.created_at)
            return copy.deepcopy(matches)

    async def record_success(self, subscription_id: SubscriptionId, at: datetime) -> Optional[Subscription]:
        async with self._lock:
            stored = self._subscriptions.get(subscription_id)
            if stored is None:
                return None
            stored.mark_success(at)
            return copy.deepcopy(stored)

    async def record_failure(
        self, subscription_id: SubscriptionId, error: str, at: datetime
    ) -> Optional[Subscription]:
        async with self._lock:
            stored = self._subscriptions.get(subscription_id)
            if stored is None:
                return None
            stored.mark_failure(error, at)
            return copy.deepcopy(stored)

    async def deactivate(
        self, subscription_id: SubscriptionId, reason: str, at: datetime
    ) -> Optional[Subscription]:
        async with self._lock:
            stored = self._subscriptions.get(subscription_id)
            if stored is None or not stored.deactivate(reason, at):
                return None
            return copy.deepcopy(stored)

    async def delete(self, subscription_id: SubscriptionId) -> bool:
        async with self._lock:
            return self._subscriptions.pop(subscription_id, None) is not None


class InMemoryRetryQueue:
    """Dictionary-backed retry queue with the same lease semantics as the database queue."""

    def __init__(self):
        self._lock = asyncio.Lock()
        self._items: Dict[RetryItemId, RetryItem] = {}

    async def add(self, item: RetryItem) -> RetryItem:
        async with self._lock:
            self._items[item.id] = copy.deepcopy(item)
            logger.debug(f"Queued retry item {item.id} for subscription {item.subscription_id}")
            return copy.deepcopy(item)

    async def get_by_id(self, item_id: RetryItemId) -> Optional[RetryItem]:
        async with self._lock:
            stored = self._items.get(item_id)
            return copy.deepcopy(stored) if stored else None

    async def claim_due(
        self, now: datetime, lease_until: datetime, worker_id: str, limit: int
    ) -> List[RetryItem]:
        async with self._lock:
            due = sorted(
                (i for i in self._items.values() if i.is_due(now)),
                key=lambda i: (i.priority, i.next_retry_at),
            )[:limit]
            for item in due:
                item.claimed_until = lease_until
                item.claimed_by = worker_id
            return copy.deepcopy(due)

    async def reschedule(
        self,
        item_id: RetryItemId,
        attempts: int,
        next_retry_at: datetime,
        last_error: Optional[str],
    ) -> Optional[RetryItem]:
        async with self._lock:
            stored = self._items.get(item_id)
            if stored is None:
                return None
            stored.attempts = attempts
            stored.next_retry_at = next_retry_at
            stored.last_error = last_error
            stored.claimed_until = None
            stored.claimed_by = None
            return copy.deepcopy(stored)

    async def release(self, item_id: RetryItemId) -> None:
        async with self._lock:
            stored = self._items.get(item_id)
            if stored is not None:
                stored.claimed_until = None
                stored.claimed_by = None

    async def delete(self, item_id: RetryItemId) -> bool:
        async with self._lock:
            return self._items.pop(item_id, None) is not None

    async def list_for_subscription(self, subscription_id: SubscriptionId) -> List[RetryItem]:
        async with self._lock:
            items = [i for i in self._items.values() if i.subscription_id == subscription_id]
            items.sort(key=lambda i: i.next_retry_at)
            return copy.deepcopy(items)

    async def count(self) -> int:
        async with self._lock:
            return len(self._items)
