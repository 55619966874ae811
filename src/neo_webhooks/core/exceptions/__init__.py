"""Exception hierarchy for neo-webhooks."""

from .base import NeoWebhooksError, create_error_response
from .domain import (
    ValidationError,
    WebhookValidationError,
    EventValidationError,
    EntityNotFoundError,
    SubscriptionNotFoundError,
    ConfigurationError,
)
from .infrastructure import (
    InfrastructureError,
    DatabaseError,
    CacheError,
    QueueError,
    RegistryUnavailableError,
)

__all__ = [
    "NeoWebhooksError",
    "create_error_response",
    "ValidationError",
    "WebhookValidationError",
    "EventValidationError",
    "EntityNotFoundError",
    "SubscriptionNotFoundError",
    "ConfigurationError",
    "InfrastructureError",
    "DatabaseError",
    "CacheError",
    "QueueError",
    "RegistryUnavailableError",
]
