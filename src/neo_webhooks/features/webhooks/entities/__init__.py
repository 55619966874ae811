"""Webhook entities and protocols."""

from .subscription import Subscription
from .envelope import EventEnvelope
from .retry_item import RetryItem, DEFAULT_RETRY_PRIORITY
from .circuit_state import CircuitState
from .delivery import DeliveryResult, DispatchSummary
from .protocols import (
    Clock,
    SubscriptionRepository,
    SubscriptionCache,
    FailureCounter,
    RetryQueueRepository,
    DeliveryAdapter,
)

__all__ = [
    "Subscription",
    "EventEnvelope",
    "RetryItem",
    "DEFAULT_RETRY_PRIORITY",
    "CircuitState",
    "DeliveryResult",
    "DispatchSummary",
    "Clock",
    "SubscriptionRepository",
    "SubscriptionCache",
    "FailureCounter",
    "RetryQueueRepository",
    "DeliveryAdapter",
]
