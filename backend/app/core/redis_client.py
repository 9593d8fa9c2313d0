"""
Redis client initialization and connection management.

Redis backs the token revocation list used by logout.
"""

import logging
import redis.asyncio as redis
from backend.app.core.config import settings

logger = logging.getLogger(__name__)

# Create async Redis client (connects lazily on first command)
redis_client = redis.from_url(
    settings.redis_url,
    decode_responses=settings.redis_decode_responses,
)


def get_redis_client():
    """Return the active client; tests swap the module attribute."""
    return redis_client


async def ping_redis() -> bool:
    """
    Test Redis connection.

    Returns:
        True if connection successful, False otherwise
    """
    try:
        return await get_redis_client().ping()
    except Exception as exc:
        logger.warning("Redis ping failed", extra={"error": str(exc)})
        return False
