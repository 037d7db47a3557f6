# ruff: noqa: PLW0603
"""Redis connection management.

Redis is optional. It backs:
- the resource listing cache (src.core.cache)
- the revoked-session list checked on every authenticated request
"""

import redis.asyncio as redis

from src.config import get_settings
from src.core.logging import get_logger


logger = get_logger(__name__)

_redis_client: redis.Redis | None = None


async def init_redis() -> redis.Redis:
    """Initialize Redis connection pool."""
    global _redis_client

    settings = get_settings()

    _redis_client = redis.from_url(
        settings.redis_url,
        max_connections=settings.redis_max_connections,
        socket_timeout=settings.redis_socket_timeout,
        socket_connect_timeout=settings.redis_socket_connect_timeout,
        retry_on_timeout=settings.redis_retry_on_timeout,
        health_check_interval=settings.redis_health_check_interval,
        decode_responses=True,
    )

    try:
        await _redis_client.ping()
        logger.info("redis_connected", url=settings.redis_url)
    except redis.ConnectionError as e:
        logger.warning("redis_connection_failed", error=str(e))
        _redis_client = None
        raise

    return _redis_client


async def shutdown_redis() -> None:
    """Close Redis connection."""
    global _redis_client

    if _redis_client:
        await _redis_client.aclose()
        logger.info("redis_disconnected")
        _redis_client = None


def get_redis() -> redis.Redis | None:
    """Get Redis client instance (None when Redis is not configured)."""
    return _redis_client


def revoked_session_key(jti: str) -> str:
    """Key marking a session token as revoked."""
    return f"session:revoked:{jti}"


def cache_key(*parts: object) -> str:
    """Build a cache key from its parts, e.g. cache:courses:tenant:<id>."""
    return ":".join(["cache", *(str(p) for p in parts)])
