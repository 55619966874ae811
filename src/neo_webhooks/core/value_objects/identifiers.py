"""Value objects for identifiers in neo-webhooks.

Immutable identifier wrappers so a subscription id can never be passed
where a retry item id is expected.
"""

from dataclasses import dataclass
from uuid import UUID

from ...utils import generate_uuid_v7


@dataclass(frozen=True)
class SubscriptionId:
    """Subscription identifier backed by a UUIDv7."""

    value: UUID

    def __post_init__(self):
        if not isinstance(self.value, UUID):
            raise ValueError("Subscription ID must be a UUID")

    @classmethod
    def generate(cls) -> "SubscriptionId":
        """Generate a new subscription ID using UUIDv7."""
        return cls(UUID(generate_uuid_v7()))

    @classmethod
    def from_string(cls, id_str: str) -> "SubscriptionId":
        """Create a subscription ID from its string representation."""
        try:
            return cls(UUID(str(id_str)))
        except (ValueError, TypeError) as e:
            raise ValueError(f"Invalid Subscription ID format: {id_str}") from e

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class RetryItemId:
    """Retry queue item identifier backed by a UUIDv7."""

    value: UUID

    def __post_init__(self):
        if not isinstance(self.value, UUID):
            raise ValueError("Retry item ID must be a UUID")

    @classmethod
    def generate(cls) -> "RetryItemId":
        """Generate a new retry item ID using UUIDv7."""
        return cls(UUID(generate_uuid_v7()))

    @classmethod
    def from_string(cls, id_str: str) -> "RetryItemId":
        """Create a retry item ID from its string representation."""
        try:
            return cls(UUID(str(id_str)))
        except (ValueError, TypeError) as e:
            raise ValueError(f"Invalid Retry item ID format: {id_str}") from e

    def __str__(self) -> str:
        return str(self.value)
