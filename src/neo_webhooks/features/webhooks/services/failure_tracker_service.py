"""Failure tracker (circuit breaker) for webhook subscriptions.

Counts consecutive delivery failures per subscription inside a rolling
window. Reaching the threshold trips the breaker: the subscription is
deactivated through the registry and the counter is cleared. A single
success resets the counter entirely.
"""

import logging

from ....core.exceptions import CacheError, SubscriptionNotFoundError
from ....core.value_objects import SubscriptionId
from ..entities.circuit_state import CircuitState
from ..entities.protocols import FailureCounter
from .subscription_registry_service import SubscriptionRegistryService

logger = logging.getLogger(__name__)


EXCESSIVE_FAILURES_REASON = "Deactivated due to excessive failures"


class FailureTrackerService:
    """Per-subscription circuit breaker.

    States: HEALTHY (no failures), DEGRADED (1..threshold-1 failures in the
    window) and TRIPPED (threshold reached, subscription deactivated).
    """

    def __init__(
        self,
        counter: FailureCounter,
        registry: SubscriptionRegistryService,
        threshold: int = 3,
        window_seconds: int = 3600,
    ):
        if threshold < 1:
            raise ValueError("threshold must be at least 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        self._counter = counter
        self._registry = registry
        self._threshold = threshold
        self._window_seconds = window_seconds

    @property
    def threshold(self) -> int:
        return self._threshold

    async def record_failure(self, subscription_id: SubscriptionId) -> CircuitState:
        """Count a failure; trips the breaker when the threshold is reached."""
        count = await self._counter.increment(subscription_id, self._window_seconds)
        state = CircuitState.from_count(count, self._threshold)

        if state is CircuitState.TRIPPED:
            logger.warning(
                f"Circuit breaker tripped for subscription {subscription_id} after {count} failures",
                extra={"subscription_id": str(subscription_id), "failure_count": count},
            )
            await self.trip(subscription_id, EXCESSIVE_FAILURES_REASON)
        else:
            logger.debug(f"Subscription {subscription_id} failure {count}/{self._threshold}")

        return state

    async def record_success(self, subscription_id: SubscriptionId) -> None:
        """One success fully heals the circuit."""
        await self._counter.reset(subscription_id)

    async def trip(self, subscription_id: SubscriptionId, reason: str) -> bool:
        """Deactivate the subscription and clear its counter.

        Also used by the retry scheduler when a delivery exhausts its attempts.

        Returns:
            True if this call deactivated the subscription
        """
        try:
            deactivated = await self._registry.deactivate(subscription_id, reason)
        except SubscriptionNotFoundError:
            logger.warning(f"Cannot trip breaker for unknown subscription {subscription_id}")
            deactivated = False

        # Cleared only once deactivation went through; until then the
        # counter keeps is_healthy() false.
        await self._counter.reset(subscription_id)
        return deactivated

    async def is_healthy(self, subscription_id: SubscriptionId) -> bool:
        """True unless the windowed count has reached the threshold.

        The registry's active flag stays authoritative, so an unreachable
        counter store reports healthy rather than blocking deliveries.
        """
        try:
            count = await self._counter.get(subscription_id)
        except CacheError as e:
            logger.warning(f"Failure counter unavailable for subscription {subscription_id}: {e}")
            return True
        return count < self._threshold

    async def get_state(self, subscription_id: SubscriptionId) -> CircuitState:
        count = await self._counter.get(subscription_id)
        return CircuitState.from_count(count, self._threshold)
