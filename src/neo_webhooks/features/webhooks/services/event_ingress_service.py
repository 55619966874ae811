"""Event ingress: the single entry point business code uses to raise events.

``raise_event`` validates synchronously and hands the event to an internal
queue, then returns. Worker tasks drain the queue into the dispatch engine
so subscriber availability never blocks the caller.
"""

import asyncio
import copy
import logging
from dataclasses import dataclass
from typing import Any, List, Optional

from ....core.exceptions import EventValidationError
from ..utils.validation import WebhookValidationRules
from .dispatch_service import DispatchService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PendingEvent:
    """An accepted event waiting for a dispatch worker."""

    tenant_id: str
    event_type: str
    payload: Any


class EventIngressService:
    """Non-blocking event intake in front of the dispatch engine.

    Args:
        dispatch_service: Engine that performs the deliveries
        worker_count: Number of concurrent dispatch workers
        max_pending_events: Queue bound; 0 means unbounded
    """

    def __init__(
        self,
        dispatch_service: DispatchService,
        worker_count: int = 4,
        max_pending_events: int = 10000,
    ):
        if worker_count < 1:
            raise ValueError("worker_count must be at least 1")
        self._dispatch = dispatch_service
        self._worker_count = worker_count
        self._queue: "asyncio.Queue[PendingEvent]" = asyncio.Queue(maxsize=max_pending_events or 0)
        self._workers: List[asyncio.Task] = []

    @property
    def pending(self) -> int:
        """Events accepted but not yet picked up by a worker."""
        return self._queue.qsize()

    @property
    def is_running(self) -> bool:
        return any(not worker.done() for worker in self._workers)

    def raise_event(self, tenant_id: str, event_type: str, payload: Any) -> None:
        """Accept an event for asynchronous delivery.

        Only malformed input raises; everything downstream is logged.

        Raises:
            EventValidationError: If the tenant id, event type or payload is invalid
        """
        try:
            WebhookValidationRules.validate_tenant_id(tenant_id)
            WebhookValidationRules.validate_event_type(event_type)
            WebhookValidationRules.validate_payload(payload)
        except ValueError as e:
            raise EventValidationError(str(e), details={"event_type": event_type}) from e

        # Later mutation by the caller must not change what gets delivered
        event = PendingEvent(tenant_id, event_type, copy.deepcopy(payload))
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            logger.error(
                f"Event ingress queue full ({self._queue.maxsize}), dropping {event_type} for tenant {tenant_id}",
                extra={"tenant_id": tenant_id, "event_type": event_type},
            )
            return

        logger.debug(f"Accepted {event_type} for tenant {tenant_id}")

    async def start(self) -> None:
        """Start the dispatch workers."""
        if self.is_running:
            return
        self._workers = [
            asyncio.create_task(self._worker(index), name=f"webhook-ingress-{index}")
            for index in range(self._worker_count)
        ]
        logger.info(f"Event ingress started with {self._worker_count} workers")

    async def join(self) -> None:
        """Wait until every accepted event has been dispatched."""
        await self._queue.join()

    async def stop(self, drain_timeout: Optional[float] = None) -> None:
        """Drain accepted events, then cancel the workers.

        Args:
            drain_timeout: Upper bound on the drain wait; None waits indefinitely
        """
        if not self._workers:
            return
        if self.is_running:
            try:
                await asyncio.wait_for(self.join(), timeout=drain_timeout)
            except asyncio.TimeoutError:
                logger.warning(f"Event ingress stopped with {self.pending} events undispatched")

        for worker in self._workers:
            worker.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers = []
        logger.info("Event ingress stopped")

    async def _worker(self, index: int) -> None:
        while True:
            event = await self._queue.get()
            try:
                await self._dispatch.dispatch(event.tenant_id, event.event_type, event.payload)
            except Exception as e:
                logger.error(
                    f"Ingress worker {index} failed to dispatch {event.event_type} "
                    f"for tenant {event.tenant_id}: {e}",
                    exc_info=True,
                )
            finally:
                self._queue.task_done()
