"""Error handling utilities for the webhooks feature.

Centralized logging and exception mapping for the subscription store and
the retry queue, so raw driver errors never leak past the repositories.
"""

import logging
from typing import Optional, Union
from uuid import UUID

from ....core.exceptions import (
    NeoWebhooksError,
    EntityNotFoundError,
    DatabaseError,
    QueueError,
)
from ....core.value_objects import SubscriptionId, RetryItemId


logger = logging.getLogger(__name__)


def handle_webhook_error(
    operation: str,
    entity_type: str,
    entity_id: Optional[Union[str, UUID, SubscriptionId, RetryItemId]] = None,
    error: Optional[Exception] = None,
    context: Optional[dict] = None
) -> None:
    """Handle webhook-related errors with consistent logging and exception mapping.

    Args:
        operation: The operation being performed (e.g., 'save', 'claim_due')
        entity_type: Type of entity (e.g., 'subscription', 'retry_item')
        entity_id: ID of the entity involved (optional)
        error: Original exception (optional)
        context: Additional context for logging (optional)

    Raises:
        Appropriate neo-webhooks exception based on the error type
    """
    context = context or {}
    entity_id_str = str(entity_id) if entity_id else "unknown"

    logger.error(
        f"Webhook {operation} failed for {entity_type} {entity_id_str}",
        extra={
            "operation": operation,
            "entity_type": entity_type,
            "entity_id": entity_id_str,
            "error_type": type(error).__name__ if error else "unknown",
            "error_message": str(error) if error else "unknown error",
            "context": context
        },
        exc_info=error
    )

    if error:
        if isinstance(error, NeoWebhooksError):
            # Already mapped, re-raise as-is
            raise error
        elif "not found" in str(error).lower():
            raise EntityNotFoundError(entity_type, entity_id_str) from error
        elif entity_type == "retry_item":
            raise QueueError(f"Retry queue error during {operation}: {error}") from error
        else:
            raise DatabaseError(f"Database error during {operation} of {entity_type}: {error}") from error
    else:
        raise DatabaseError(f"Unknown error during {operation} of {entity_type} {entity_id_str}")


def handle_subscription_error(
    operation: str,
    subscription_id: Optional[Union[str, UUID, SubscriptionId]] = None,
    error: Optional[Exception] = None,
    context: Optional[dict] = None
) -> None:
    """Handle subscription store specific errors."""
    handle_webhook_error(
        operation=operation,
        entity_type="subscription",
        entity_id=subscription_id,
        error=error,
        context=context
    )


def handle_retry_queue_error(
    operation: str,
    item_id: Optional[Union[str, UUID, RetryItemId]] = None,
    error: Optional[Exception] = None,
    context: Optional[dict] = None
) -> None:
    """Handle retry queue specific errors."""
    handle_webhook_error(
        operation=operation,
        entity_type="retry_item",
        entity_id=item_id,
        error=error,
        context=context
    )
