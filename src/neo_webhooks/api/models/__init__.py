"""API request and response models."""

from .requests import (
    RegisterSubscriptionRequest,
    DeactivateSubscriptionRequest,
    RaiseEventRequest,
)
from .responses import (
    SubscriptionResponse,
    RegisteredSubscriptionResponse,
    SubscriptionListResponse,
    DeactivationResponse,
    EventAcceptedResponse,
)

__all__ = [
    "RegisterSubscriptionRequest",
    "DeactivateSubscriptionRequest",
    "RaiseEventRequest",
    "SubscriptionResponse",
    "RegisteredSubscriptionResponse",
    "SubscriptionListResponse",
    "DeactivationResponse",
    "EventAcceptedResponse",
]
