"""Subscription entity for the webhooks feature.

A subscription is one external system's interest in a tenant's events:
the callback URL, the shared secret used to sign deliveries, the event
types it listens to and the lifecycle flags updated on every delivery
outcome.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from ....core.exceptions import WebhookValidationError
from ....core.value_objects import SubscriptionId
from ....utils import utc_now, ensure_utc, parse_iso


@dataclass
class Subscription:
    """Webhook subscription entity.

    ``secret`` is an opaque byte string. It is excluded from ``repr`` and from
    ``to_dict`` so it never ends up in logs or API responses; storage adapters
    encrypt it themselves.
    """

    # Identity
    id: SubscriptionId
    tenant_id: str

    # Target
    url: str
    secret: bytes = field(repr=False)
    event_types: List[str] = field(default_factory=list)
    headers: Dict[str, str] = field(default_factory=dict)

    # Lifecycle
    active: bool = True
    last_triggered_at: Optional[datetime] = None
    last_error: Optional[str] = None
    consecutive_retry_count: int = 0

    # Timestamps
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    def __post_init__(self):
        """Post-init validation and normalization."""
        from ..utils.validation import WebhookValidationRules

        try:
            WebhookValidationRules.validate_tenant_id(self.tenant_id)
            WebhookValidationRules.validate_webhook_url(self.url)
            self.secret = WebhookValidationRules.normalize_secret(self.secret)
            self.event_types = WebhookValidationRules.normalize_event_types(self.event_types)
            self.headers = WebhookValidationRules.validate_custom_headers(self.headers)
        except ValueError as e:
            raise WebhookValidationError(f"Invalid subscription: {e}") from e

        if self.consecutive_retry_count < 0:
            raise WebhookValidationError("consecutive_retry_count cannot be negative")

        # Ensure timestamps are timezone-aware
        self.created_at = ensure_utc(self.created_at)
        self.updated_at = ensure_utc(self.updated_at)
        if self.last_triggered_at is not None:
            self.last_triggered_at = ensure_utc(self.last_triggered_at)

    def is_subscribed_to(self, event_type: str) -> bool:
        """Exact match against the subscribed event types."""
        return event_type in self.event_types

    def is_deliverable_for(self, event_type: str) -> bool:
        """Check if this subscription should receive the given event type."""
        return self.active and self.is_subscribed_to(event_type)

    def mark_success(self, now: Optional[datetime] = None) -> None:
        """Record a successful delivery."""
        now = now or utc_now()
        self.last_triggered_at = now
        self.last_error = None
        self.consecutive_retry_count = 0
        self.updated_at = now

    def mark_failure(self, error: str, now: Optional[datetime] = None) -> None:
        """Record a failed delivery.

        The retry counter only moves while the subscription is active.
        """
        now = now or utc_now()
        self.last_error = error
        if self.active:
            self.consecutive_retry_count += 1
        self.updated_at = now

    def deactivate(self, reason: str, now: Optional[datetime] = None) -> bool:
        """Deactivate this subscription.

        Returns:
            False if the subscription was already inactive
        """
        if not self.active:
            return False
        now = now or utc_now()
        self.active = False
        self.last_error = reason
        self.updated_at = now
        return True

    def reactivate(self, now: Optional[datetime] = None) -> bool:
        """Reactivate this subscription after manual intervention.

        Returns:
            False if the subscription was already active
        """
        if self.active:
            return False
        now = now or utc_now()
        self.active = True
        self.last_error = None
        self.consecutive_retry_count = 0
        self.updated_at = now
        return True

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-compatible dictionary, without the secret."""
        return {
            "id": str(self.id),
            "tenant_id": self.tenant_id,
            "url": self.url,
            "event_types": list(self.event_types),
            "headers": dict(self.headers),
            "active": self.active,
            "last_triggered_at": self.last_triggered_at.isoformat() if self.last_triggered_at else None,
            "last_error": self.last_error,
            "consecutive_retry_count": self.consecutive_retry_count,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Subscription":
        """Create a subscription from its dictionary form plus a plaintext ``secret``."""
        subscription_id = data["id"]
        if not isinstance(subscription_id, SubscriptionId):
            subscription_id = SubscriptionId.from_string(subscription_id)

        def _dt(value):
            if value is None or isinstance(value, datetime):
                return value
            return parse_iso(value)

        now = utc_now()
        return cls(
            id=subscription_id,
            tenant_id=data["tenant_id"],
            url=data["url"],
            secret=data["secret"],
            event_types=list(data.get("event_types") or []),
            headers=dict(data.get("headers") or {}),
            active=data.get("active", True),
            last_triggered_at=_dt(data.get("last_triggered_at")),
            last_error=data.get("last_error"),
            consecutive_retry_count=data.get("consecutive_retry_count", 0),
            created_at=_dt(data.get("created_at")) or now,
            updated_at=_dt(data.get("updated_at")) or now,
        )
