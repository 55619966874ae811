"""
Webhook API request models.

ONLY handles request shape validation; domain rules (URL form, event type
format, header names) are enforced by the services.
"""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field


class RegisterSubscriptionRequest(BaseModel):
    """Request model for registering a webhook subscription."""

    tenant_id: str = Field(
        ...,
        description="Owning tenant",
        min_length=1,
        max_length=255,
        examples=["tenant-42"],
    )

    url: str = Field(
        ...,
        description="Absolute HTTP(S) callback URL",
        examples=["https://api.example.com/webhooks/events"],
    )

    secret: Optional[str] = Field(
        default=None,
        description="Shared secret used to sign deliveries (HMAC-SHA256); generated when omitted",
        min_length=1,
    )

    event_types: List[str] = Field(
        ...,
        description="Event types to deliver to this subscription (exact match)",
        min_length=1,
        examples=[["product.created", "order.updated"]],
    )

    headers: Optional[Dict[str, str]] = Field(
        default=None,
        description="Additional headers sent with every delivery",
    )


class DeactivateSubscriptionRequest(BaseModel):
    """Request model for manually deactivating a subscription."""

    reason: str = Field(
        default="Deactivated manually",
        description="Recorded as the subscription's last error",
        min_length=1,
        max_length=500,
    )


class RaiseEventRequest(BaseModel):
    """Request model for raising a domain event."""

    tenant_id: str = Field(
        ...,
        description="Tenant (or user) that triggered the event",
        min_length=1,
        max_length=255,
    )

    event_type: str = Field(
        ...,
        description="Dot separated event type",
        examples=["product.created"],
    )

    payload: Any = Field(
        default=None,
        description="JSON payload delivered as the envelope's data field",
    )
