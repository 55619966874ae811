"""Subscription registry service.

Owns the subscription lifecycle on top of the durable store and keeps the
(tenant, event type) resolve cache coherent with it. The cache is an
accelerator only: when it fails, reads fall through to the store.
"""

import logging
from typing import Dict, Iterable, List, Optional, Union

from ....core.exceptions import (
    CacheError,
    RegistryUnavailableError,
    SubscriptionNotFoundError,
    WebhookValidationError,
)
from ....core.value_objects import SubscriptionId
from ..entities.protocols import Clock, SubscriptionCache, SubscriptionRepository
from ..entities.subscription import Subscription
from ..adapters.memory_adapters import SystemClock
from ..utils.signing import generate_secret

logger = logging.getLogger(__name__)


class SubscriptionRegistryService:
    """Registry of webhook subscriptions with a resolve cache.

    Args:
        repository: Durable subscription store (source of truth)
        cache: Optional resolve cache keyed by (tenant, event type)
        cache_ttl_seconds: TTL applied when repopulating the cache
        clock: Time source for lifecycle timestamps
    """

    def __init__(
        self,
        repository: SubscriptionRepository,
        cache: Optional[SubscriptionCache] = None,
        cache_ttl_seconds: int = 3600,
        clock: Optional[Clock] = None,
    ):
        self._repository = repository
        self._cache = cache
        self._cache_ttl = cache_ttl_seconds
        self._clock = clock or SystemClock()

    async def resolve(self, tenant_id: str, event_type: str) -> List[Subscription]:
        """Active subscriptions of ``tenant_id`` interested in ``event_type``.

        Raises:
            RegistryUnavailableError: If the durable store cannot be read
        """
        cached = await self._cache_get(tenant_id, event_type)
        if cached is not None:
            return [s for s in cached if s.is_deliverable_for(event_type)]

        try:
            subscriptions = await self._repository.find_active(tenant_id, event_type)
        except Exception as e:
            raise RegistryUnavailableError(
                f"Cannot resolve subscribers for {event_type}: {e}",
                details={"tenant_id": tenant_id, "event_type": event_type},
            ) from e

        subscriptions = [s for s in subscriptions if s.is_deliverable_for(event_type)]
        await self._cache_set(tenant_id, event_type, subscriptions)
        return subscriptions

    async def register(
        self,
        tenant_id: str,
        url: str,
        secret: Optional[Union[str, bytes]],
        event_types: Iterable[str],
        headers: Optional[Dict[str, str]] = None,
    ) -> Subscription:
        """Validate and persist a new active subscription.

        A None secret is replaced by a generated 32-byte hex secret.

        Raises:
            WebhookValidationError: If the URL, secret, event types or headers are invalid
        """
        now = self._clock.now()
        subscription = Subscription(
            id=SubscriptionId.generate(),
            tenant_id=tenant_id,
            url=url,
            secret=generate_secret() if secret is None else secret,
            event_types=list(event_types) if not isinstance(event_types, str) else event_types,
            headers=headers or {},
            active=True,
            created_at=now,
            updated_at=now,
        )

        saved = await self._repository.save(subscription)
        await self._invalidate(saved.tenant_id, saved.event_types)

        logger.info(
            f"Registered subscription {saved.id} for tenant {saved.tenant_id}",
            extra={
                "subscription_id": str(saved.id),
                "tenant_id": saved.tenant_id,
                "event_types": saved.event_types,
            },
        )
        return saved

    async def record_outcome(
        self,
        subscription_id: SubscriptionId,
        success: bool,
        error_message: Optional[str] = None,
    ) -> None:
        """Persist the outcome of a delivery attempt on the subscription record.

        The resolve cache is left alone: outcome fields do not affect routing.
        """
        now = self._clock.now()
        if success:
            updated = await self._repository.record_success(subscription_id, now)
        else:
            updated = await self._repository.record_failure(
                subscription_id, error_message or "Delivery failed", now
            )

        if updated is None:
            logger.warning(f"Cannot record delivery outcome for unknown subscription {subscription_id}")

    async def deactivate(self, subscription_id: SubscriptionId, reason: str) -> bool:
        """Deactivate a subscription and purge it from the resolve cache.

        Returns:
            False when the subscription was already inactive

        Raises:
            SubscriptionNotFoundError: If the subscription does not exist
        """
        subscription_id = self._coerce_id(subscription_id)
        updated = await self._repository.deactivate(subscription_id, reason, self._clock.now())

        if updated is None:
            if await self._repository.get_by_id(subscription_id) is None:
                raise SubscriptionNotFoundError(str(subscription_id))
            logger.info(f"Subscription {subscription_id} is already inactive")
            return False

        await self._invalidate(updated.tenant_id, updated.event_types)
        logger.warning(
            f"Subscription {subscription_id} deactivated: {reason}",
            extra={"subscription_id": str(subscription_id), "tenant_id": updated.tenant_id},
        )
        return True

    async def reactivate(self, subscription_id: SubscriptionId) -> Subscription:
        """Manually bring a deactivated subscription back into rotation."""
        subscription = await self.get(subscription_id)
        if not subscription.reactivate(self._clock.now()):
            return subscription

        updated = await self._repository.update(subscription)
        await self._invalidate(updated.tenant_id, updated.event_types)
        logger.info(f"Subscription {updated.id} reactivated")
        return updated

    async def get(self, subscription_id: SubscriptionId) -> Subscription:
        """Get a subscription by ID.

        Raises:
            SubscriptionNotFoundError: If the subscription does not exist
        """
        subscription_id = self._coerce_id(subscription_id)
        subscription = await self._repository.get_by_id(subscription_id)
        if subscription is None:
            raise SubscriptionNotFoundError(str(subscription_id))
        return subscription

    async def list_for_tenant(self, tenant_id: str) -> List[Subscription]:
        """All subscriptions owned by a tenant."""
        return await self._repository.list_by_tenant(tenant_id)

    async def delete(self, subscription_id: SubscriptionId) -> None:
        """Delete a subscription on behalf of its owner."""
        subscription = await self.get(subscription_id)
        if not await self._repository.delete(subscription.id):
            raise SubscriptionNotFoundError(str(subscription.id))
        await self._invalidate(subscription.tenant_id, subscription.event_types)
        logger.info(f"Deleted subscription {subscription.id}")

    @staticmethod
    def _coerce_id(subscription_id: Union[SubscriptionId, str]) -> SubscriptionId:
        if isinstance(subscription_id, SubscriptionId):
            return subscription_id
        try:
            return SubscriptionId.from_string(subscription_id)
        except ValueError as e:
            raise WebhookValidationError(str(e)) from e

    async def _cache_get(self, tenant_id: str, event_type: str) -> Optional[List[Subscription]]:
        if self._cache is None:
            return None
        try:
            return await self._cache.get(tenant_id, event_type)
        except CacheError as e:
            logger.warning(f"Subscription cache read failed, falling back to store: {e}")
            return None

    async def _cache_set(self, tenant_id: str, event_type: str, subscriptions: List[Subscription]) -> None:
        if self._cache is None:
            return
        try:
            await self._cache.set(tenant_id, event_type, subscriptions, self._cache_ttl)
        except CacheError as e:
            logger.warning(f"Subscription cache write failed: {e}")

    async def _invalidate(self, tenant_id: str, event_types: Iterable[str]) -> None:
        if self._cache is None:
            return
        try:
            await self._cache.invalidate(tenant_id, event_types)
        except CacheError as e:
            # Entries age out with the TTL
            logger.warning(f"Subscription cache invalidation failed for tenant {tenant_id}: {e}")
