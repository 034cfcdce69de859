"""
Redis client initialization and connection management.

Redis backs the token revocation list (logout and blocked users).
"""

import redis.asyncio as redis
from paylog.app.core.config import settings


# Create async Redis client
redis_client = redis.from_url(
    settings.redis_url,
    decode_responses=settings.redis_decode_responses,
)


async def get_redis():
    """
    Get the active Redis client instance.

    Looked up at call time so tests can swap in a double.
    """
    return redis_client


async def ping_redis() -> bool:
    """
    Test Redis connection.

    Returns:
        True if connection successful, False otherwise
    """
    try:
        return await redis_client.ping()
    except Exception:
        return False
