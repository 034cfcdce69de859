"""
Token Revocation System using Redis.

Implements token blacklisting to immediately invalidate JWT tokens
when users log out or are blocked by an administrator.
"""

import logging
from paylog.app.core import redis_client as redis_module
from paylog.app.core.config import settings

logger = logging.getLogger(__name__)

# Redis key prefix for blacklisted tokens
TOKEN_BLACKLIST_PREFIX = "blacklist:token:"
USER_TOKENS_PREFIX = "user:tokens:"


def _ttl_seconds() -> int:
    # Tokens expire on their own after this window
    return settings.access_token_expire_minutes * 60


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
        key = f"{TOKEN_BLACKLIST_PREFIX}{token}"
        await redis_module.redis_client.setex(key, _ttl_seconds(), str(user_id))
        return True
    except Exception as e:
        logger.warning("Error revoking token for user %s: %s", user_id, e)
        return False


async def is_token_revoked(token: str) -> bool:
    """
    Check if a token has been revoked.

    Fails open when Redis is unreachable; the database active-user check
    in the auth dependency still applies.
    """
    try:
        key = f"{TOKEN_BLACKLIST_PREFIX}{token}"
        exists = await redis_module.redis_client.exists(key)
        return exists > 0
    except Exception as e:
        logger.warning("Error checking token revocation: %s", e)
        return False


async def revoke_all_user_tokens(user_id: int) -> bool:
    """
    Revoke all active tokens for a specific user.

    Called when a user is blocked to immediately terminate all sessions.
    """
    try:
        key = f"{USER_TOKENS_PREFIX}{user_id}:revoked"
        await redis_module.redis_client.setex(key, _ttl_seconds(), "1")
        return True
    except Exception as e:
        logger.warning("Error revoking all tokens for user %s: %s", user_id, e)
        return False


async def are_user_tokens_revoked(user_id: int) -> bool:
    """Check if all tokens for a user have been revoked."""
    try:
        key = f"{USER_TOKENS_PREFIX}{user_id}:revoked"
        exists = await redis_module.redis_client.exists(key)
        return exists > 0
    except Exception as e:
        logger.warning("Error checking user token revocation for %s: %s", user_id, e)
        return False


async def clear_user_token_revocation(user_id: int) -> bool:
    """
    Clear the global token revocation flag for a user.

    Called when a blocked user is unblocked.
    """
    try:
        key = f"{USER_TOKENS_PREFIX}{user_id}:revoked"
        await redis_module.redis_client.delete(key)
        return True
    except Exception as e:
        logger.warning("Error clearing token revocation for user %s: %s", user_id, e)
        return False
