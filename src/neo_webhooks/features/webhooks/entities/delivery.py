"""Delivery outcome value objects."""

from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class DeliveryResult:
    """Outcome of one HTTP attempt against one subscription.

    Delivery failures are values, never exceptions: non-2xx responses,
    timeouts and network errors all produce ``success=False`` with an
    ``error`` description.
    """

    success: bool
    status_code: Optional[int] = None
    error: Optional[str] = None
    request_id: Optional[str] = None
    duration_ms: float = 0.0

    @classmethod
    def from_status(cls, status_code: int, request_id: str, duration_ms: float) -> "DeliveryResult":
        """Classify an HTTP response status."""
        if 200 <= status_code < 300:
            return cls(True, status_code, None, request_id, duration_ms)
        return cls(False, status_code, f"HTTP {status_code}", request_id, duration_ms)

    @classmethod
    def failure(cls, error: str, request_id: Optional[str] = None, duration_ms: float = 0.0) -> "DeliveryResult":
        """Failure without an HTTP response (timeout, connection error...)."""
        return cls(False, None, error, request_id, duration_ms)


@dataclass
class DispatchSummary:
    """Per-call tally of what happened to each matched subscription.

    A failed first attempt lands in exactly one of ``queued`` (retry
    persisted), ``tripped`` (breaker opened, no retry) or ``failed``
    (the retry could not be persisted).
    """

    matched: int = 0
    delivered: int = 0
    skipped: int = 0
    queued: int = 0
    tripped: int = 0
    failed: int = 0

    @property
    def attempted(self) -> int:
        """Number of subscriptions that were not skipped."""
        return self.delivered + self.queued + self.tripped + self.failed

    def to_dict(self) -> Dict[str, Any]:
        return {
            "matched": self.matched,
            "delivered": self.delivered,
            "skipped": self.skipped,
            "queued": self.queued,
            "tripped": self.tripped,
            "failed": self.failed,
        }
