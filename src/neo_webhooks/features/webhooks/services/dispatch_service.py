"""Dispatch engine for raised events.

For one event: build the envelope, resolve the matching subscriptions and
deliver to all of them concurrently. Outcomes feed the registry and the
failure tracker; failed first attempts are handed to the retry scheduler
unless the breaker just tripped.
"""

import asyncio
import logging
from typing import Any, Awaitable, Optional

from ....core.exceptions import RegistryUnavailableError
from ....core.value_objects import SubscriptionId
from ..adapters.memory_adapters import SystemClock
from ..entities.circuit_state import CircuitState
from ..entities.delivery import DeliveryResult, DispatchSummary
from ..entities.envelope import EventEnvelope
from ..entities.protocols import Clock, DeliveryAdapter
from ..entities.subscription import Subscription
from .failure_tracker_service import FailureTrackerService
from .retry_scheduler_service import MAX_RETRIES_REASON, RetrySchedulerService
from .subscription_registry_service import SubscriptionRegistryService

logger = logging.getLogger(__name__)


# Per-subscription outcomes, tallied into DispatchSummary
_DELIVERED = "delivered"
_SKIPPED = "skipped"
_QUEUED = "queued"
_TRIPPED = "tripped"
_FAILED = "failed"


class DispatchService:
    """Fans one raised event out to its subscribers.

    Never raises for per-subscriber problems; an unavailable registry is
    logged and treated as "no subscribers" for this round.
    """

    def __init__(
        self,
        registry: SubscriptionRegistryService,
        failure_tracker: FailureTrackerService,
        delivery_adapter: DeliveryAdapter,
        retry_scheduler: RetrySchedulerService,
        clock: Optional[Clock] = None,
    ):
        self._registry = registry
        self._failure_tracker = failure_tracker
        self._delivery = delivery_adapter
        self._retry_scheduler = retry_scheduler
        self._clock = clock or SystemClock()

    async def dispatch(self, tenant_id: str, event_type: str, payload: Any) -> DispatchSummary:
        """Deliver one event to every matching active subscription.

        Returns once every first attempt has been delivered, skipped or
        handed to the retry scheduler.
        """
        envelope = EventEnvelope.create(event_type, tenant_id, payload, now=self._clock.now())
        summary = DispatchSummary()

        try:
            targets = await self._registry.resolve(tenant_id, event_type)
        except RegistryUnavailableError as e:
            logger.error(
                f"Subscription registry unavailable, dropping dispatch of {event_type}: {e}",
                extra={"tenant_id": tenant_id, "event_type": event_type},
            )
            return summary

        summary.matched = len(targets)
        if not targets:
            logger.debug(f"No subscribers for {event_type} in tenant {tenant_id}")
            return summary

        outcomes = await asyncio.gather(
            *(self._deliver_to(subscription, envelope) for subscription in targets)
        )
        for outcome in outcomes:
            setattr(summary, outcome, getattr(summary, outcome) + 1)

        logger.info(
            f"Dispatched {event_type} for tenant {tenant_id}: "
            f"{summary.delivered} delivered, {summary.queued} queued, "
            f"{summary.skipped} skipped, {summary.tripped} tripped, {summary.failed} failed",
            extra={"tenant_id": tenant_id, "event_type": event_type, **summary.to_dict()},
        )
        return summary

    async def _deliver_to(self, subscription: Subscription, envelope: EventEnvelope) -> str:
        try:
            if not await self._failure_tracker.is_healthy(subscription.id):
                logger.debug(f"Skipping unhealthy subscription {subscription.id}")
                return _SKIPPED

            result = await self._delivery.deliver(subscription, envelope)
            if result.success:
                await self._bookkeep(
                    self._registry.record_outcome(subscription.id, True), "record success", subscription.id
                )
                await self._bookkeep(
                    self._failure_tracker.record_success(subscription.id), "reset failure counter", subscription.id
                )
                return _DELIVERED

            return await self._handle_failure(subscription, envelope, result)

        except Exception as e:
            logger.error(
                f"Unexpected error delivering {envelope.event_type} to subscription {subscription.id}: {e}",
                exc_info=True,
            )
            return _FAILED

    async def _handle_failure(
        self, subscription: Subscription, envelope: EventEnvelope, result: DeliveryResult
    ) -> str:
        await self._bookkeep(
            self._registry.record_outcome(subscription.id, False, result.error),
            "record failure",
            subscription.id,
        )

        try:
            state = await self._failure_tracker.record_failure(subscription.id)
        except Exception as e:
            logger.error(f"Failed to record failure for subscription {subscription.id}: {e}")
            state = None

        if state is CircuitState.TRIPPED:
            # Subscription is now inactive; a retry would be dropped anyway
            return _TRIPPED

        if self._retry_scheduler.max_attempts <= 1:
            # The first attempt was the only one allowed
            logger.warning(
                f"Abandoning {envelope.event_type} delivery to subscription {subscription.id} "
                f"after 1 attempt: {result.error}",
                extra={"subscription_id": str(subscription.id), "event_type": envelope.event_type, "attempts": 1},
            )
            await self._bookkeep(
                self._failure_tracker.trip(subscription.id, MAX_RETRIES_REASON),
                "deactivate after exhaustion",
                subscription.id,
            )
            return _TRIPPED

        try:
            await self._retry_scheduler.enqueue(
                subscription.id, envelope, attempts=1, last_error=result.error
            )
        except Exception as e:
            logger.error(
                f"Failed to queue retry of {envelope.event_type} for subscription {subscription.id}: {e}",
                exc_info=True,
            )
            return _FAILED
        return _QUEUED

    async def _bookkeep(self, operation: Awaitable, action: str, subscription_id: SubscriptionId) -> None:
        try:
            await operation
        except Exception as e:
            logger.error(f"Failed to {action} for subscription {subscription_id}: {e}")
