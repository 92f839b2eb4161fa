"""Shared Redis client for the real submission path.

Only ``disabled`` mode talks to Redis; fake and inline modes never create a
connection. Tests inject a stand-in with :func:`set_redis_client`.
"""

import logging
from typing import Any

import redis

from .config import get_settings_instance

logger = logging.getLogger(__name__)

# Global Redis client instance (singleton)
_redis_client: Any | None = None


def _create_redis_client() -> "redis.Redis":
    settings = get_settings_instance()
    client = redis.Redis.from_url(
        settings.redis_url,
        socket_connect_timeout=settings.redis_connection_timeout,
        socket_timeout=settings.redis_socket_timeout,
        decode_responses=True,
    )
    logger.info("Created Redis client", extra={"redis_url": settings.redis_url})
    return client


def get_redis_client() -> Any:
    """Get or create the shared Redis client.

    The connection is opened lazily by redis-py on the first command, so
    this never blocks.
    """
    global _redis_client  # noqa: PLW0603
    if _redis_client is None:
        _redis_client = _create_redis_client()
    return _redis_client


def set_redis_client(client: Any) -> None:
    """Install ``client`` as the shared Redis client (for testing only)."""
    global _redis_client  # noqa: PLW0603
    _redis_client = client


def reset_redis_client() -> None:
    """Drop the shared Redis client (for testing only)."""
    global _redis_client  # noqa: PLW0603
    _redis_client = None
