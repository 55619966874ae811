"""Infrastructure-specific exceptions for neo-webhooks.

Exceptions related to the durable store, the cache and the retry queue.
"""

from .base import NeoWebhooksError


class InfrastructureError(NeoWebhooksError):
    """Base class for backing-service failures."""

    status_code = 503


class DatabaseError(InfrastructureError):
    """Raised when a database operation fails."""
    pass


class CacheError(InfrastructureError):
    """Raised when a cache operation fails."""
    pass


class QueueError(InfrastructureError):
    """Raised when a retry queue operation fails."""
    pass


class RegistryUnavailableError(InfrastructureError):
    """Raised when the subscription registry cannot resolve subscribers."""
    pass
