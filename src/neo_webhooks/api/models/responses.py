"""
Webhook API response models.

Subscription responses never carry the shared secret, except the
registration response for a server-generated one.
"""

from datetime import datetime
from typing import Dict, List, Optional
from pydantic import BaseModel, Field

from ...features.webhooks.entities import Subscription


class SubscriptionResponse(BaseModel):
    """Public view of a subscription."""

    id: str
    tenant_id: str
    url: str
    event_types: List[str]
    headers: Dict[str, str] = Field(default_factory=dict)
    active: bool
    last_triggered_at: Optional[datetime] = None
    last_error: Optional[str] = None
    consecutive_retry_count: int = 0
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_domain(cls, subscription: Subscription) -> "SubscriptionResponse":
        """Create response from the domain entity."""
        return cls(
            id=str(subscription.id),
            tenant_id=subscription.tenant_id,
            url=subscription.url,
            event_types=list(subscription.event_types),
            headers=dict(subscription.headers),
            active=subscription.active,
            last_triggered_at=subscription.last_triggered_at,
            last_error=subscription.last_error,
            consecutive_retry_count=subscription.consecutive_retry_count,
            created_at=subscription.created_at,
            updated_at=subscription.updated_at,
        )


class RegisteredSubscriptionResponse(SubscriptionResponse):
    """Registration result; the only response that may carry a secret."""

    secret: Optional[str] = Field(
        default=None,
        description="Generated signing secret, returned only here and only when the request omitted it",
    )


class SubscriptionListResponse(BaseModel):
    """Subscriptions of one tenant."""

    items: List[SubscriptionResponse]
    total: int


class DeactivationResponse(BaseModel):
    """Result of a deactivation request."""

    subscription: SubscriptionResponse
    changed: bool = Field(description="False when the subscription was already inactive")


class EventAcceptedResponse(BaseModel):
    """Acknowledgement that an event was accepted for delivery."""

    accepted: bool = True
    tenant_id: str
    event_type: str
