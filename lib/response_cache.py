# =============================================================================
# lib/response_cache.py - Edge Response Cache
# =============================================================================
# Caches full HTTP responses (status, headers, body) in Redis, keyed by the
# exact inbound request URL. Used by:
# - GET /api/get-products (10 minute feed cache)
# - GET /images/<path>   (long-lived image cache)
#
# Cache failures are never fatal: a read error is treated as a miss and a
# write error is logged.
# =============================================================================

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from app.config import settings

logger = logging.getLogger(__name__)

KEY_PREFIX = "tesatiki:cache:"


@dataclass
class CachedResponse:
    """A response snapshot that can be replayed from the cache."""
    body: bytes
    status_code: int = 200
    headers: dict[str, str] = field(default_factory=dict)


class ResponseCache:
    """
    Redis-backed response cache.

    Each entry is a hash with `status`, `headers` (JSON) and `body` fields,
    expiring after the TTL passed to `put`.
    """

    def __init__(self, redis_url: str | None = None, client: aioredis.Redis | None = None):
        self._redis_url = redis_url or settings.REDIS_URL
        self._client = client

    def _redis(self) -> aioredis.Redis:
        if self._client is None:
            self._client = aioredis.from_url(self._redis_url)
        return self._client

    @staticmethod
    def _key(cache_key: str) -> str:
        return f"{KEY_PREFIX}{cache_key}"

    async def get(self, cache_key: str) -> CachedResponse | None:
        try:
            entry = await self._redis().hgetall(self._key(cache_key))
        except RedisError as e:
            logger.warning(f"Cache read failed for {cache_key}: {e}")
            return None

        if not entry:
            return None

        try:
            return CachedResponse(
                body=entry[b"body"],
                status_code=int(entry[b"status"]),
                headers=json.loads(entry[b"headers"]),
            )
        except (KeyError, ValueError) as e:
            logger.warning(f"Discarding malformed cache entry {cache_key}: {e}")
            return None

    async def put(self, cache_key: str, response: CachedResponse, ttl_seconds: int) -> None:
        if ttl_seconds <= 0:
            return
        key = self._key(cache_key)
        try:
            async with self._redis().pipeline(transaction=True) as pipe:
                pipe.hset(key, mapping={
                    "body": response.body,
                    "status": str(response.status_code),
                    "headers": json.dumps(response.headers),
                })
                pipe.expire(key, ttl_seconds)
                await pipe.execute()
            logger.debug(f"Cached {cache_key} for {ttl_seconds}s")
        except RedisError as e:
            logger.warning(f"Cache write failed for {cache_key} (non-critical): {e}")

    async def ping(self) -> bool:
        try:
            return bool(await self._redis().ping())
        except RedisError as e:
            logger.warning(f"Cache ping failed: {e}")
            return False

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
