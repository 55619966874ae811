"""neo-webhooks FastAPI application.

The lifespan assembles the webhook platform from settings (unless one is
injected), starts its workers and stops them on shutdown.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Depends

from ..__version__ import __version__
from ..config import WebhookSettings, get_settings
from ..features.webhooks.module import WebhookPlatform
from .dependencies import get_platform
from .exception_handlers import register_exception_handlers
from .routers import webhooks_router

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[WebhookSettings] = None,
    platform: Optional[WebhookPlatform] = None,
) -> FastAPI:
    """Create the webhook API.

    Args:
        settings: Settings used to build the platform (defaults to get_settings())
        platform: Pre-built platform (tests); it is still started and
            stopped by the lifespan

    Returns:
        Configured FastAPI application
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler."""
        app.state.platform = platform or await WebhookPlatform.create(settings)
        await app.state.platform.start()
        logger.info(f"{settings.app_name} started in {settings.environment} mode")

        yield

        await app.state.platform.stop()
        app.state.platform = None

    app = FastAPI(
        title="Neo Webhooks API",
        version=__version__,
        description="Webhook subscriptions and signed event delivery",
        lifespan=lifespan,
    )
    register_exception_handlers(app)
    app.include_router(webhooks_router, prefix="/api/v1/webhooks")

    @app.get("/health", tags=["System"])
    async def health(platform: WebhookPlatform = Depends(get_platform)) -> dict:
        return await platform.health_check()

    return app
