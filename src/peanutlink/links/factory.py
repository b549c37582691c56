"""Factory for creating the link issuer."""

import logging

from peanutlink.config import Settings
from peanutlink.errors import ConfigurationError
from peanutlink.links.base import LinkIssuer

logger = logging.getLogger(__name__)


def create_link_issuer(settings: Settings) -> LinkIssuer:
    """Create the link issuer for the current configuration.

    Dry-run mode without an issuer URL uses the simulated issuer. Live
    mode requires LINK_ISSUER_URL.

    Raises:
        ConfigurationError: If live mode has no issuer URL
    """
    if settings.link_issuer_url:
        from peanutlink.links.http import HttpLinkIssuer

        logger.info(f"Using link issuer at {settings.link_issuer_url}")
        return HttpLinkIssuer(
            base_url=settings.link_issuer_url,
            api_key=settings.link_issuer_api_key or None,
            timeout=settings.http_timeout,
        )

    if not settings.dry_run:
        raise ConfigurationError("LINK_ISSUER_URL is required when DRY_RUN is disabled")

    from peanutlink.links.dry_run import SimulatedLinkIssuer

    logger.warning("LINK_ISSUER_URL not set - using simulated link issuer")
    return SimulatedLinkIssuer()
