"""Identifier value objects."""

from .identifiers import SubscriptionId, RetryItemId

__all__ = ["SubscriptionId", "RetryItemId"]
