"""
Read-through Redis cache for provider catalog lookups
"""
import json
import logging
from typing import Any, Awaitable, Callable, Optional

import redis.asyncio as redis

logger = logging.getLogger(__name__)


class RedisCache:
    """
    Distributed caching utility with direct-execution fallback.

    With no client (REDIS_URL unset) or when Redis errors, the fallback runs
    every time and nothing is stored.
    """

    def __init__(self, client: Optional[redis.Redis] = None):
        self.client = client

    @classmethod
    def from_url(cls, redis_url: Optional[str]) -> "RedisCache":
        if not redis_url:
            logger.info("REDIS_URL not set. Caching will fall back to direct execution.")
            return cls(None)
        return cls(redis.from_url(redis_url, decode_responses=True))

    async def get_cached(
        self,
        key: str,
        fallback_func: Callable[[], Awaitable[Any]],
        ttl_seconds: int,
        should_cache: Callable[[Any], bool] = lambda value: True,
    ) -> Any:
        """
        Return the cached JSON value for key, or compute it with fallback_func.

        Args:
            key: Redis cache key (e.g., "stripe:products")
            fallback_func: Async callable producing a JSON-serializable value
            ttl_seconds: Time-to-live for the stored value
            should_cache: Predicate deciding whether a computed value is stored
        """
        if self.client is not None:
            try:
                cached_value = await self.client.get(key)
                if cached_value is not None:
                    return json.loads(cached_value)
            except (redis.RedisError, json.JSONDecodeError) as e:
                logger.warning(f"Redis cache get failed for key '{key}': {e}. Executing fallback.")

        result = await fallback_func()

        if self.client is not None and should_cache(result):
            try:
                await self.client.setex(key, ttl_seconds, json.dumps(result, default=str))
            except (redis.RedisError, TypeError) as e:
                logger.warning(f"Redis cache set failed for key '{key}': {e}. Result not cached.")

        return result

    async def aclose(self) -> None:
        if self.client is not None:
            await self.client.aclose()
