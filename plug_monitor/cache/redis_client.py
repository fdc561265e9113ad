"""
Redis client for chart cache operations.

Caches the ``/main-chart/data`` payload per timezone offset for a short TTL
so dashboards refreshing in parallel do not each rerun three aggregations.
Caching is best-effort: connection failures are logged but never propagate,
and the whole cache is disabled when no Redis URL is configured.

CHANGELOG:
- 2026-10-20: Treat an unparseable cache entry as a miss (STORY-018)
- 2026-10-11: Initial creation (STORY-014)

TODO:
- None
"""

from __future__ import annotations

import json
import logging
from typing import Any

import redis.asyncio as redis

logger = logging.getLogger(__name__)


def chart_cache_key(offset_label: str) -> str:
    """Return the cache key for chart data in a given offset (``+06:00``)."""
    return f"chart:{offset_label}"


class ChartCache:
    """Best-effort JSON cache backed by Redis.

    Args:
        redis_url: Redis connection URL, or None to disable caching.
        ttl_s: Expiry for cached entries in seconds.
    """

    def __init__(self, redis_url: str | None, *, ttl_s: int = 5) -> None:
        self._redis_url = redis_url
        self._ttl_s = ttl_s

    @property
    def enabled(self) -> bool:
        return bool(self._redis_url) and self._ttl_s > 0

    async def get_redis(self) -> redis.Redis:
        """Create an async Redis client for the configured URL."""
        return redis.from_url(self._redis_url)

    async def get_json(self, key: str) -> Any | None:
        """Return the cached JSON value for ``key`` or None on miss/failure."""
        if not self.enabled:
            return None
        try:
            client = await self.get_redis()
            try:
                cached = await client.get(key)
            finally:
                await client.aclose()
            if cached is None:
                return None
            return json.loads(cached)
        except Exception:
            logger.warning(
                "Redis read failed for key %s, recomputing",
                key,
                exc_info=True,
            )
            return None

    async def set_json(self, key: str, value: Any) -> None:
        """Store ``value`` under ``key`` with the configured TTL."""
        if not self.enabled:
            return
        try:
            client = await self.get_redis()
            try:
                await client.set(key, json.dumps(value), ex=self._ttl_s)
            finally:
                await client.aclose()
        except Exception:
            logger.warning(
                "Redis write failed for key %s",
                key,
                exc_info=True,
            )
