"""Subscription store and retry queue implementations."""

from .subscription_repository import SubscriptionDatabaseRepository
from .retry_queue_repository import RetryQueueDatabaseRepository
from .memory_repositories import InMemorySubscriptionRepository, InMemoryRetryQueue

__all__ = [
    "SubscriptionDatabaseRepository",
    "RetryQueueDatabaseRepository",
    "InMemorySubscriptionRepository",
    "InMemoryRetryQueue",
]
