"""Retry scheduler for failed webhook deliveries.

Failed first attempts are persisted as retry items with exponential
backoff. A background sweep leases due items, redelivers each one to its
specific subscription and then deletes, reschedules or abandons it. An
abandoned delivery deactivates the subscription, same as a tripped breaker.
"""

import asyncio
import logging
import os
import socket
from datetime import datetime, timedelta
from typing import Awaitable, Optional

from ....core.exceptions import SubscriptionNotFoundError
from ....core.value_objects import RetryItemId, SubscriptionId
from ....utils import generate_uuid_v4
from ..adapters.memory_adapters import SystemClock
from ..entities.envelope import EventEnvelope
from ..entities.protocols import Clock, DeliveryAdapter, RetryQueueRepository
from ..entities.retry_item import RetryItem, DEFAULT_RETRY_PRIORITY
from .failure_tracker_service import FailureTrackerService
from .subscription_registry_service import SubscriptionRegistryService

logger = logging.getLogger(__name__)


MAX_RETRIES_REASON = "Deactivated after exhausting retry attempts"


def default_worker_id() -> str:
    """Identify this process in lease columns."""
    return f"{socket.gethostname()}:{os.getpid()}:{generate_uuid_v4()[:8]}"


class RetrySchedulerService:
    """Durable retry queue consumer.

    ``attempts`` on an item counts the HTTP attempts already made; a retry
    that fails and brings the count to ``max_attempts`` abandons the item.
    """

    def __init__(
        self,
        queue: RetryQueueRepository,
        registry: SubscriptionRegistryService,
        failure_tracker: FailureTrackerService,
        delivery_adapter: DeliveryAdapter,
        clock: Optional[Clock] = None,
        max_attempts: int = 5,
        base_delay_ms: int = 1000,
        poll_interval_seconds: float = 10.0,
        batch_size: int = 100,
        lease_seconds: int = 60,
        worker_id: Optional[str] = None,
        priority: int = DEFAULT_RETRY_PRIORITY,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if base_delay_ms <= 0:
            raise ValueError("base_delay_ms must be positive")
        self._queue = queue
        self._registry = registry
        self._failure_tracker = failure_tracker
        self._delivery = delivery_adapter
        self._clock = clock or SystemClock()
        self._max_attempts = max_attempts
        self._base_delay_ms = base_delay_ms
        self._poll_interval = poll_interval_seconds
        self._batch_size = batch_size
        self._lease = timedelta(seconds=lease_seconds)
        self._priority = priority
        self.worker_id = worker_id or default_worker_id()

        self._task: Optional[asyncio.Task] = None
        self._stopping: Optional[asyncio.Event] = None

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def compute_next_retry_at(self, attempts: int, now: datetime) -> datetime:
        """``now + base_delay * 2^(attempts-1)``: 1s, 2s, 4s, 8s, 16s with the defaults."""
        return now + timedelta(milliseconds=self._base_delay_ms * (2 ** (attempts - 1)))

    async def enqueue(
        self,
        subscription_id: SubscriptionId,
        envelope: EventEnvelope,
        attempts: int = 1,
        last_error: Optional[str] = None,
    ) -> RetryItem:
        """Persist a redelivery for ``envelope`` after ``attempts`` failed attempts."""
        now = self._clock.now()
        item = RetryItem(
            id=RetryItemId.generate(),
            subscription_id=subscription_id,
            envelope=envelope,
            attempts=attempts,
            next_retry_at=self.compute_next_retry_at(attempts, now),
            priority=self._priority,
            last_error=last_error,
            created_at=now,
        )
        saved = await self._queue.add(item)
        logger.info(
            f"Queued retry for subscription {subscription_id} ({envelope.event_type}) "
            f"at {saved.next_retry_at.isoformat()}",
            extra={"subscription_id": str(subscription_id), "attempts": attempts},
        )
        return saved

    async def drain_once(self) -> int:
        """Lease and process every due item once.

        Returns:
            Number of items processed in this sweep
        """
        now = self._clock.now()
        items = await self._queue.claim_due(now, now + self._lease, self.worker_id, self._batch_size)
        if not items:
            return 0

        logger.debug(f"Processing {len(items)} due webhook retries")
        await asyncio.gather(*(self._process_item(item) for item in items))
        return len(items)

    async def _process_item(self, item: RetryItem) -> None:
        # Each item is isolated: nothing raised here may stop the sweep
        try:
            try:
                subscription = await self._registry.get(item.subscription_id)
            except SubscriptionNotFoundError:
                await self._queue.delete(item.id)
                logger.info(f"Dropped retry {item.id}: subscription {item.subscription_id} no longer exists")
                return

            if not subscription.active:
                await self._queue.delete(item.id)
                logger.info(f"Dropped retry {item.id}: subscription {subscription.id} is inactive")
                return

            result = await self._delivery.deliver(subscription, item.envelope)
            attempt_number = item.attempts + 1

            if result.success:
                await self._queue.delete(item.id)
                await self._bookkeep(
                    self._registry.record_outcome(subscription.id, True), "record success", subscription.id
                )
                await self._bookkeep(
                    self._failure_tracker.record_success(subscription.id), "reset failure counter", subscription.id
                )
                logger.info(
                    f"Retry attempt {attempt_number} delivered {item.envelope.event_type} "
                    f"to subscription {subscription.id}"
                )
                return

            await self._bookkeep(
                self._registry.record_outcome(subscription.id, False, result.error),
                "record failure",
                subscription.id,
            )

            if attempt_number >= self._max_attempts:
                await self._queue.delete(item.id)
                logger.warning(
                    f"Abandoning {item.envelope.event_type} delivery to subscription {subscription.id} "
                    f"after {attempt_number} attempts: {result.error}",
                    extra={
                        "subscription_id": str(subscription.id),
                        "event_type": item.envelope.event_type,
                        "attempts": attempt_number,
                    },
                )
                await self._bookkeep(
                    self._failure_tracker.trip(subscription.id, MAX_RETRIES_REASON),
                    "deactivate after exhaustion",
                    subscription.id,
                )
                return

            next_retry_at = self.compute_next_retry_at(attempt_number, self._clock.now())
            await self._queue.reschedule(item.id, attempt_number, next_retry_at, result.error)
            logger.info(
                f"Retry attempt {attempt_number} for subscription {subscription.id} failed "
                f"({result.error}); next at {next_retry_at.isoformat()}"
            )

        except Exception as e:
            logger.error(f"Unexpected error processing retry {item.id}: {e}", exc_info=True)
            try:
                await self._queue.release(item.id)
            except Exception as release_error:
                # Lease expiry makes the item claimable again
                logger.error(f"Failed to release retry {item.id}: {release_error}")

    async def _bookkeep(self, operation: Awaitable, action: str, subscription_id: SubscriptionId) -> None:
        try:
            await operation
        except Exception as e:
            logger.error(f"Failed to {action} for subscription {subscription_id}: {e}")

    async def start(self) -> None:
        """Start the background sweep."""
        if self.is_running:
            return
        self._stopping = asyncio.Event()
        self._task = asyncio.create_task(self._run(), name="webhook-retry-scheduler")
        logger.info(
            f"Retry scheduler {self.worker_id} started "
            f"(interval={self._poll_interval}s, batch={self._batch_size})"
        )

    async def stop(self) -> None:
        """Stop the sweep after the current batch completes."""
        if self._task is None:
            return
        self._stopping.set()
        try:
            await self._task
        finally:
            self._task = None
            logger.info(f"Retry scheduler {self.worker_id} stopped")

    async def _run(self) -> None:
        while not self._stopping.is_set():
            processed = 0
            try:
                processed = await self.drain_once()
            except Exception as e:
                logger.error(f"Retry sweep failed: {e}", exc_info=True)

            # A full batch means more items are probably due
            if processed >= self._batch_size:
                continue

            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=self._poll_interval)
            except asyncio.TimeoutError:
                pass
