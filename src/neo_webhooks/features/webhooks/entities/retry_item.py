"""Retry queue item for failed webhook deliveries."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from ....core.value_objects import RetryItemId, SubscriptionId
from ....utils import utc_now, ensure_utc, parse_iso
from .envelope import EventEnvelope


DEFAULT_RETRY_PRIORITY = 3


@dataclass
class RetryItem:
    """Durable record of one pending redelivery.

    ``attempts`` counts the delivery attempts already made for the envelope,
    so the first item written after a failed dispatch carries ``attempts=1``.
    Lower ``priority`` values are drained first.
    """

    id: RetryItemId
    subscription_id: SubscriptionId
    envelope: EventEnvelope
    attempts: int
    next_retry_at: datetime
    priority: int = DEFAULT_RETRY_PRIORITY
    last_error: Optional[str] = None
    created_at: datetime = field(default_factory=utc_now)

    # Lease, set while a drain cycle owns the item
    claimed_until: Optional[datetime] = None
    claimed_by: Optional[str] = None

    def __post_init__(self):
        if self.attempts < 1:
            raise ValueError("Retry item attempts must be at least 1")
        self.next_retry_at = ensure_utc(self.next_retry_at)
        self.created_at = ensure_utc(self.created_at)
        if self.claimed_until is not None:
            self.claimed_until = ensure_utc(self.claimed_until)

    def is_due(self, now: datetime) -> bool:
        """Check if the item is due and not leased by another worker."""
        if self.next_retry_at > now:
            return False
        return self.claimed_until is None or self.claimed_until <= now

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-compatible dictionary."""
        return {
            "id": str(self.id),
            "subscription_id": str(self.subscription_id),
            "envelope": self.envelope.to_dict(),
            "attempts": self.attempts,
            "next_retry_at": self.next_retry_at.isoformat(),
            "priority": self.priority,
            "last_error": self.last_error,
            "created_at": self.created_at.isoformat(),
            "claimed_until": self.claimed_until.isoformat() if self.claimed_until else None,
            "claimed_by": self.claimed_by,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RetryItem":
        """Create a retry item from its dictionary form."""
        def _dt(value):
            if value is None or isinstance(value, datetime):
                return value
            return parse_iso(value)

        return cls(
            id=RetryItemId.from_string(data["id"]),
            subscription_id=SubscriptionId.from_string(data["subscription_id"]),
            envelope=EventEnvelope.from_dict(data["envelope"]),
            attempts=data["attempts"],
            next_retry_at=_dt(data["next_retry_at"]),
            priority=data.get("priority", DEFAULT_RETRY_PRIORITY),
            last_error=data.get("last_error"),
            created_at=_dt(data.get("created_at")) or utc_now(),
            claimed_until=_dt(data.get("claimed_until")),
            claimed_by=data.get("claimed_by"),
        )
