import logging

from redis import asyncio as aioredis
from redis.exceptions import RedisError

from app.core.config import settings
from app.db.redis_conn import redis_client

logger = logging.getLogger(__name__)


class RateLimitService:
    """Fixed-window request counters stored in Redis.

    If Redis cannot be reached the request is allowed through; rate limiting
    must never take the API down with it.
    """

    KEY_PREFIX = "rate_limit"

    def __init__(self, client: aioredis.Redis = redis_client):
        self.client = client
        self._logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    async def is_rate_limited(
        self, identifier: str, max_requests: int, window_seconds: int
    ) -> bool:
        """Count this request and report whether ``identifier`` is over its limit."""
        if not settings.RATE_LIMIT_ENABLED:
            return False

        key = f"{self.KEY_PREFIX}:{identifier}:{window_seconds}"
        try:
            async with self.client.pipeline(transaction=True) as pipe:
                # The key is created together with its TTL, so it can never outlive the window
                pipe.set(key, 0, ex=window_seconds, nx=True)
                pipe.incr(key)
                _, count = await pipe.execute()
        except RedisError:
            self._logger.warning(
                "Rate limit check skipped, Redis unavailable",
                exc_info=True,
                extra={"identifier": identifier},
            )
            return False

        return int(count) > max_requests


rate_limit_service = RateLimitService()
