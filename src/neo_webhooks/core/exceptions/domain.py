"""Domain-specific exceptions for neo-webhooks.

Validation failures are the only errors that reach the business caller
synchronously; everything else in the delivery path is logged and absorbed.
"""

from .base import NeoWebhooksError


class ValidationError(NeoWebhooksError):
    """Raised when input fails validation."""

    status_code = 422


class WebhookValidationError(ValidationError):
    """Raised when a subscription registration is rejected (bad URL, empty secret...)."""
    pass


class EventValidationError(ValidationError):
    """Raised when a raised event is malformed (bad event type, unserializable payload)."""
    pass


class EntityNotFoundError(NeoWebhooksError):
    """Raised when a requested entity does not exist."""

    status_code = 404

    def __init__(self, entity_type: str, entity_id: str):
        super().__init__(
            f"{entity_type} {entity_id} not found",
            details={"entity_type": entity_type, "entity_id": entity_id},
        )
        self.entity_type = entity_type
        self.entity_id = entity_id


class SubscriptionNotFoundError(EntityNotFoundError):
    """Raised when a subscription id does not resolve."""

    def __init__(self, subscription_id: str):
        super().__init__("Subscription", str(subscription_id))


class ConfigurationError(NeoWebhooksError):
    """Raised when there's a configuration issue."""
    pass
