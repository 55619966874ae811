"""API routers."""

from .webhooks_router import router as webhooks_router

__all__ = ["webhooks_router"]
