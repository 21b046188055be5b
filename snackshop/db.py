"""
Database Module - Upstash Redis Client

Provides a singleton async Upstash Redis client used as the cart's
durable key-value store and change feed.
"""

from typing import Optional

from upstash_redis.asyncio import Redis as AsyncRedis

from snackshop import config

_redis_client: Optional[AsyncRedis] = None


def get_redis() -> AsyncRedis:
    """
    Get async Upstash Redis client (singleton).

    Uses standard Upstash env var names:
    - UPSTASH_REDIS_REST_URL
    - UPSTASH_REDIS_REST_TOKEN

    Raises:
        ValueError: If the credentials are not configured
    """
    global _redis_client

    if _redis_client is None:
        if not config.UPSTASH_REDIS_REST_URL or not config.UPSTASH_REDIS_REST_TOKEN:
            raise ValueError("UPSTASH_REDIS_REST_URL and UPSTASH_REDIS_REST_TOKEN must be set")
        _redis_client = AsyncRedis(
            url=config.UPSTASH_REDIS_REST_URL,
            token=config.UPSTASH_REDIS_REST_TOKEN,
        )

    return _redis_client


class RedisKeys:
    """Redis key prefixes for cart data."""

    CART = "cart:"  # cart:{storage_key}
    CART_CHANGES = "stream:cart:"  # stream:cart:{storage_key}

    @staticmethod
    def cart_key(storage_key: str) -> str:
        return f"{RedisKeys.CART}{storage_key}"

    @staticmethod
    def changes_key(storage_key: str) -> str:
        return f"{RedisKeys.CART_CHANGES}{storage_key}"


# Change feed entries kept per cart; older entries are trimmed on XADD
CHANGE_FEED_MAXLEN = 100
