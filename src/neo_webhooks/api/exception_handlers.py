"""Map neo-webhooks exceptions onto HTTP responses."""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ..core.exceptions import NeoWebhooksError, create_error_response

logger = logging.getLogger(__name__)


async def neo_webhooks_error_handler(request: Request, exc: NeoWebhooksError) -> JSONResponse:
    """Render any NeoWebhooksError with its own status code."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    else:
        logger.debug(f"{request.method} {request.url.path} rejected: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=create_error_response(exc))


def register_exception_handlers(app: FastAPI) -> None:
    """Install the exception handlers on an application."""
    app.add_exception_handler(NeoWebhooksError, neo_webhooks_error_handler)
