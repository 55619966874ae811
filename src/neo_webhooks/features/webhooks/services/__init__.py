"""Webhook services."""

from .subscription_registry_service import SubscriptionRegistryService
from .failure_tracker_service import FailureTrackerService, EXCESSIVE_FAILURES_REASON
from .retry_scheduler_service import RetrySchedulerService, MAX_RETRIES_REASON
from .dispatch_service import DispatchService
from .event_ingress_service import EventIngressService, PendingEvent

__all__ = [
    "SubscriptionRegistryService",
    "FailureTrackerService",
    "EXCESSIVE_FAILURES_REASON",
    "RetrySchedulerService",
    "MAX_RETRIES_REASON",
    "DispatchService",
    "EventIngressService",
    "PendingEvent",
]
