"""Main entry point - runs the API server."""

import logging
import sys

import uvicorn

from peanutlink.api.app import create_app
from peanutlink.config import get_settings
from peanutlink.errors import ConfigurationError

logger = logging.getLogger(__name__)


def configure_logging(debug: bool) -> None:
    """Configure root logging once for the process."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def main() -> None:
    """Main entry point.

    Exits with status 1 when the seed phrase or network configuration is
    unusable; nothing is served in that case.
    """
    settings = get_settings()
    configure_logging(settings.debug)

    logger.info("Starting Peanut Link server...")
    logger.info(f"Environment: {settings.environment} (dry_run={settings.dry_run})")

    try:
        settings.require_mnemonic()
    except ConfigurationError as e:
        logger.critical(str(e))
        sys.exit(1)

    app = create_app(settings)
    config = uvicorn.Config(
        app,
        host=settings.host,
        port=settings.port,
        log_level="debug" if settings.debug else "info",
        access_log=False,
        lifespan="on",
    )
    server = uvicorn.Server(config)

    logger.info(f"Server listening at http://{settings.host}:{settings.port}")
    server.run()

    # Startup failures inside the lifespan stop uvicorn without raising
    if not server.started:
        logger.critical("Server failed to start")
        sys.exit(1)


if __name__ == "__main__":
    main()
