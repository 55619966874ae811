"""Webhook event delivery feature.

Subscription registry, signing, circuit breaker, dispatch, retry
scheduling and event ingress.
"""

from .entities import (
    Subscription,
    EventEnvelope,
    RetryItem,
    CircuitState,
    DeliveryResult,
    DispatchSummary,
)
from .services import (
    SubscriptionRegistryService,
    FailureTrackerService,
    RetrySchedulerService,
    DispatchService,
    EventIngressService,
)
from .utils import sign, verify
from .module import WebhookPlatform

__all__ = [
    "Subscription",
    "EventEnvelope",
    "RetryItem",
    "CircuitState",
    "DeliveryResult",
    "DispatchSummary",
    "SubscriptionRegistryService",
    "FailureTrackerService",
    "RetrySchedulerService",
    "DispatchService",
    "EventIngressService",
    "sign",
    "verify",
    "WebhookPlatform",
]
