"""neo-webhooks main entry point."""

import os

import uvicorn

from .config import LoggingConfig

# Configure logging based on environment
LoggingConfig.configure()

from .api import create_app

logger = LoggingConfig.get_logger(__name__)

# Create the FastAPI application
app = create_app()


def main() -> None:
    """Run the application."""
    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8002"))
    debug = os.getenv("DEBUG", "false").lower() == "true"

    logger.info(f"Starting neo-webhooks on {host}:{port}")

    uvicorn.run(
        "neo_webhooks.main:app",
        host=host,
        port=port,
        reload=debug,
        log_level="debug" if debug else "info",
        access_log=True,
    )


if __name__ == "__main__":
    main()
