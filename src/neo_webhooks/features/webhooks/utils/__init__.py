"""Utilities for the webhooks feature."""

from .signing import sign, verify, generate_secret, SIGNATURE_HEADER, TIMESTAMP_HEADER, REQUEST_ID_HEADER
from .header_builder import WebhookHeaderBuilder
from .validation import WebhookValidationRules
from .error_handling import (
    handle_webhook_error,
    handle_subscription_error,
    handle_retry_queue_error,
)

__all__ = [
    "sign",
    "verify",
    "generate_secret",
    "SIGNATURE_HEADER",
    "TIMESTAMP_HEADER",
    "REQUEST_ID_HEADER",
    "WebhookHeaderBuilder",
    "WebhookValidationRules",
    "handle_webhook_error",
    "handle_subscription_error",
    "handle_retry_queue_error",
]
