"""Circuit breaker states for subscriptions."""

from enum import Enum


class CircuitState(Enum):
    """Per-subscription breaker state derived from the windowed failure count."""

    HEALTHY = "healthy"    # No failures in the window
    DEGRADED = "degraded"  # Between one and threshold-1 failures
    TRIPPED = "tripped"    # Threshold reached, subscription deactivated

    @classmethod
    def from_count(cls, count: int, threshold: int) -> "CircuitState":
        """Derive the state from a failure count."""
        if count <= 0:
            return cls.HEALTHY
        if count >= threshold:
            return cls.TRIPPED
        return cls.DEGRADED
