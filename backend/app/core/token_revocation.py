"""
Token Revocation using Redis.

Logout blacklists the presented JWT until it would have expired anyway.
"""

import logging
from backend.app.core.redis_client import get_redis_client
from backend.app.core.config import settings

logger = logging.getLogger(__name__)

# Redis key prefix for blacklisted tokens
TOKEN_BLACKLIST_PREFIX = "blacklist:token:"


async def revoke_token(token: str, user_id: int) -> bool:
    """
    Revoke a specific JWT token by adding it to the blacklist.

    Args:
        token: The JWT token string to revoke
        user_id: User ID who owns the token

    Returns:
        True if successfully revoked, False otherwise
    """
    try:
        ttl_seconds = settings.access_token_expire_minutes * 60
        key = f"{TOKEN_BLACKLIST_PREFIX}{token}"
        await get_redis_client().setex(key, ttl_seconds, str(user_id))
        return True
    except Exception as exc:
        logger.error("Error revoking token", extra={"user_id": user_id, "error": str(exc)})
        return False


async def is_token_revoked(token: str) -> bool:
    """
    Check if a token has been revoked.

    If Redis is unreachable the token is treated as valid (availability over
    strictness); the failure is logged.
    """
    try:
        key = f"{TOKEN_BLACKLIST_PREFIX}{token}"
        exists = await get_redis_client().exists(key)
        return exists > 0
    except Exception as exc:
        logger.error("Error checking token revocation", extra={"error": str(exc)})
        return False
