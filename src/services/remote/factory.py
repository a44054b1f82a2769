"""Factory for creating remote progress gateway instances."""

from typing import Optional

from src.config import settings
from src.core.logging import get_logger
from src.services.remote.base import RemoteProgressGateway
from src.services.remote.http import HttpProgressGateway
from src.services.remote.memory import InMemoryProgressGateway

logger = get_logger(__name__)


def get_remote_gateway(provider_name: Optional[str] = None) -> RemoteProgressGateway:
    """Get a remote progress gateway instance.

    Args:
        provider_name: Optional provider name. If not specified,
                      uses REMOTE_PROVIDER from config.

    Returns:
        A RemoteProgressGateway instance.
    """
    name = provider_name or settings.REMOTE_PROVIDER

    if name == "memory":
        logger.debug("Using InMemoryProgressGateway")
        return InMemoryProgressGateway()

    if name == "http":
        if settings.REMOTE_API_URL:
            logger.debug("Using HttpProgressGateway: %s", settings.REMOTE_API_URL)
            return HttpProgressGateway(
                base_url=settings.REMOTE_API_URL,
                timeout=settings.REMOTE_TIMEOUT,
            )
        logger.warning("REMOTE_API_URL not set, falling back to InMemoryProgressGateway")
        return InMemoryProgressGateway()

    logger.warning("Unknown remote provider '%s', falling back to memory", name)
    return InMemoryProgressGateway()
