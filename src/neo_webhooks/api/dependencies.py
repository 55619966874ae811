"""FastAPI dependencies for the webhook API."""

from fastapi import Request

from ..core.exceptions import ConfigurationError
from ..features.webhooks.module import WebhookPlatform


def get_platform(request: Request) -> WebhookPlatform:
    """The platform assembled by the application lifespan."""
    platform = getattr(request.app.state, "platform", None)
    if platform is None:
        raise ConfigurationError("Webhook platform is not initialized")
    return platform
