"""Protocol interfaces for the webhooks feature.

Defines the contracts for the subscription store, the resolve cache, the
failure counters, the retry queue, outbound delivery and time, so services
receive their collaborators explicitly and tests can swap in fakes.
"""

from abc import abstractmethod
from datetime import datetime
from typing import Iterable, List, Optional, Protocol, runtime_checkable

from ....core.value_objects import SubscriptionId, RetryItemId
from .subscription import Subscription
from .envelope import EventEnvelope
from .retry_item import RetryItem
from .delivery import DeliveryResult


@runtime_checkable
class Clock(Protocol):
    """Source of the current time."""

    def now(self) -> datetime:
        """Return the current timezone-aware UTC time."""
        ...


@runtime_checkable
class SubscriptionRepository(Protocol):
    """Protocol for the durable subscription store."""

    @abstractmethod
    async def save(self, subscription: Subscription) -> Subscription:
        """Insert a new subscription."""
        ...

    @abstractmethod
    async def update(self, subscription: Subscription) -> Subscription:
        """Persist every mutable field of an existing subscription."""
        ...

    @abstractmethod
    async def get_by_id(self, subscription_id: SubscriptionId) -> Optional[Subscription]:
        """Get a subscription by ID."""
        ...

    @abstractmethod
    async def find_active(self, tenant_id: str, event_type: str) -> List[Subscription]:
        """Active subscriptions of a tenant interested in an event type."""
        ...

    @abstractmethod
    async def list_by_tenant(self, tenant_id: str) -> List[Subscription]:
        """All subscriptions of a tenant, active or not."""
        ...

    @abstractmethod
    async def record_success(self, subscription_id: SubscriptionId, at: datetime) -> Optional[Subscription]:
        """Atomically clear last_error, stamp last_triggered_at and reset the retry counter."""
        ...

    @abstractmethod
    async def record_failure(
        self, subscription_id: SubscriptionId, error: str, at: datetime
    ) -> Optional[Subscription]:
        """Atomically set last_error and bump the retry counter while active."""
        ...

    @abstractmethod
    async def deactivate(
        self, subscription_id: SubscriptionId, reason: str, at: datetime
    ) -> Optional[Subscription]:
        """Flip an active subscription to inactive.

        Returns:
            The updated subscription, or None if it was missing or already inactive
        """
        ...

    @abstractmethod
    async def delete(self, subscription_id: SubscriptionId) -> bool:
        """Delete a subscription; False if it did not exist."""
        ...


@runtime_checkable
class SubscriptionCache(Protocol):
    """Protocol for the (tenant, event type) resolve cache."""

    @abstractmethod
    async def get(self, tenant_id: str, event_type: str) -> Optional[List[Subscription]]:
        """Cached subscriptions, or None on a miss."""
        ...

    @abstractmethod
    async def set(
        self, tenant_id: str, event_type: str, subscriptions: List[Subscription], ttl_seconds: int
    ) -> None:
        """Overwrite the cached subscriptions for a key."""
        ...

    @abstractmethod
    async def invalidate(self, tenant_id: str, event_types: Iterable[str]) -> None:
        """Drop the cached entries for each event type of a tenant."""
        ...


@runtime_checkable
class FailureCounter(Protocol):
    """Protocol for the windowed per-subscription failure counters."""

    @abstractmethod
    async def increment(self, subscription_id: SubscriptionId, window_seconds: int) -> int:
        """Atomically increment and refresh the window; returns the new count."""
        ...

    @abstractmethod
    async def get(self, subscription_id: SubscriptionId) -> int:
        """Current count (0 when absent or expired)."""
        ...

    @abstractmethod
    async def reset(self, subscription_id: SubscriptionId) -> None:
        """Delete the counter."""
        ...


@runtime_checkable
class RetryQueueRepository(Protocol):
    """Protocol for the durable webhook retry queue."""

    @abstractmethod
    async def add(self, item: RetryItem) -> RetryItem:
        """Persist a new retry item."""
        ...

    @abstractmethod
    async def get_by_id(self, item_id: RetryItemId) -> Optional[RetryItem]:
        """Get a retry item by ID."""
        ...

    @abstractmethod
    async def claim_due(
        self, now: datetime, lease_until: datetime, worker_id: str, limit: int
    ) -> List[RetryItem]:
        """Atomically lease up to ``limit`` due, unleased items."""
        ...

    @abstractmethod
    async def reschedule(
        self,
        item_id: RetryItemId,
        attempts: int,
        next_retry_at: datetime,
        last_error: Optional[str],
    ) -> Optional[RetryItem]:
        """Store the new attempt count and due time and release the lease."""
        ...

    @abstractmethod
    async def release(self, item_id: RetryItemId) -> None:
        """Release the lease without changing the schedule."""
        ...

    @abstractmethod
    async def delete(self, item_id: RetryItemId) -> bool:
        """Remove an item; False if it did not exist."""
        ...

    @abstractmethod
    async def list_for_subscription(self, subscription_id: SubscriptionId) -> List[RetryItem]:
        """Pending items of one subscription, earliest first."""
        ...

    @abstractmethod
    async def count(self) -> int:
        """Number of pending items."""
        ...


@runtime_checkable
class DeliveryAdapter(Protocol):
    """Protocol for one signed HTTP delivery attempt."""

    @abstractmethod
    async def deliver(self, subscription: Subscription, envelope: EventEnvelope) -> DeliveryResult:
        """POST the envelope to the subscription target. Never raises for delivery errors."""
        ...
