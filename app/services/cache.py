"""Read-through cache for rendered progress dashboards.

Flow:  GET dashboard -> cache hit  -> return cached JSON
                     -> cache miss -> load collection, aggregate,
                                      store JSON with TTL, return

Two invalidation mechanisms cover each other:

  1. TTL (DASHBOARD_CACHE_TTL): stale entries disappear on their own even
     if an invalidation is missed.
  2. Explicit: every recorded completion drops the course dashboard and
     every module dashboard of that course, so the next read recomputes.

Keys percent-encode each tag, so no tag can contain the ":" separator or
a Redis glob metacharacter:

    dashboard:<course>            course dashboard
    dashboard:<course>:<module>   module dashboard

Only the final payload is cached.  The ProgressCollection behind it is
rebuilt from the store on every miss.
"""

from __future__ import annotations

import logging
import re
from collections import defaultdict
from typing import Protocol, runtime_checkable
from urllib.parse import quote

from redis.exceptions import RedisError

from app.db.redis import redis_pool

logger = logging.getLogger(__name__)


@runtime_checkable
class CacheService(Protocol):
    async def get(self, key: str) -> str | None:
        """Fetch a cached value.  Returns None on cache miss."""
        ...

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        """Store a value with a TTL (time to live)."""
        ...

    async def delete(self, key: str) -> None:
        """Explicitly invalidate a cached entry."""
        ...

    async def delete_prefix(self, prefix: str) -> None:
        """Delete every key starting with the literal prefix."""
        ...


class InMemoryCacheService:
    """In-memory cache for dev and tests — no TTL enforcement.

    The autouse fixture in conftest.py clears the store between tests.
    """

    def __init__(self) -> None:
        self._store: dict[str, str] = {}

    async def get(self, key: str) -> str | None:
        return self._store.get(key)

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        self._store[key] = value

    async def delete(self, key: str) -> None:
        self._store.pop(key, None)

    async def delete_prefix(self, prefix: str) -> None:
        for k in [k for k in self._store if k.startswith(prefix)]:
            del self._store[k]


_GLOB_SPECIAL = re.compile(r"([\\*?\[\]])")


def glob_escape(text: str) -> str:
    """Escape Redis glob metacharacters so `text` only matches itself."""
    return _GLOB_SPECIAL.sub(r"\\\1", text)


class RedisCacheService:
    """Redis-backed cache — shared across all API instances.

    Best effort: a Redis error is logged and treated as a miss (reads) or
    a no-op (writes), so dashboards fall back to computing from the store.
    A failed invalidation is bounded by the TTL.
    """

    _PREFIX = "cache:"

    def __init__(self, redis_client) -> None:
        self._redis = redis_client

    async def get(self, key: str) -> str | None:
        try:
            return await self._redis.get(f"{self._PREFIX}{key}")
        except RedisError as exc:
            logger.warning("Cache read failed for %s: %s", key, exc)
            return None

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        try:
            await self._redis.setex(f"{self._PREFIX}{key}", ttl_seconds, value)
        except RedisError as exc:
            logger.warning("Cache write failed for %s: %s", key, exc)

    async def delete(self, key: str) -> None:
        try:
            await self._redis.delete(f"{self._PREFIX}{key}")
        except RedisError as exc:
            logger.warning("Cache delete failed for %s: %s", key, exc)

    async def delete_prefix(self, prefix: str) -> None:
        # SCAN, not KEYS: KEYS blocks the server while it walks every key.
        match = glob_escape(f"{self._PREFIX}{prefix}") + "*"
        cursor = 0
        try:
            while True:
                cursor, keys = await self._redis.scan(cursor, match=match, count=100)
                if keys:
                    await self._redis.delete(*keys)
                if cursor == 0:
                    break
        except RedisError as exc:
            logger.warning("Cache invalidation failed for %s: %s", prefix, exc)


# ---------------------------------------------------------------------------
# Dashboard keys
# ---------------------------------------------------------------------------


def _segment(tag: str) -> str:
    return quote(tag, safe="")


def dashboard_cache_key(course_tag: str, module_tag: str | None = None) -> str:
    if module_tag is None:
        return f"dashboard:{_segment(course_tag)}"
    return f"dashboard:{_segment(course_tag)}:{_segment(module_tag)}"


# Bumped on every invalidation.  A computation that saw the course change
# under it must not store its (possibly stale) result.  Per process only:
# across instances the TTL bounds the same race.
_course_generations: defaultdict[str, int] = defaultdict(int)


def course_generation(course_tag: str) -> int:
    return _course_generations[course_tag]


async def invalidate_course_dashboards(cache: CacheService, course_tag: str) -> None:
    _course_generations[course_tag] += 1
    course_key = dashboard_cache_key(course_tag)
    await cache.delete(course_key)
    await cache.delete_prefix(f"{course_key}:")


# ---------------------------------------------------------------------------
# Module-level singleton
# ---------------------------------------------------------------------------

if redis_pool is not None:
    cache_service: CacheService = RedisCacheService(redis_pool)
else:
    cache_service = InMemoryCacheService()
