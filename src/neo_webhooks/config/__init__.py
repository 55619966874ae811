"""Configuration for neo-webhooks."""

from .settings import WebhookSettings, get_settings
from .logging_config import LoggingConfig

__all__ = [
    "WebhookSettings",
    "get_settings",
    "LoggingConfig",
]
