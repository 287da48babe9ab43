import logging

from redis.asyncio import Redis as AsyncRedis

from ..config import settings

logger = logging.getLogger("conducky.redis")


def get_async_redis_client(redis_url: str | None = None) -> AsyncRedis:
    """Create an async Redis client from REDIS_URL (or an explicit URL)."""
    url = redis_url or settings.redis_url
    if not url:
        raise ValueError("REDIS_URL environment variable must be set")
    return AsyncRedis.from_url(url, decode_responses=True)
