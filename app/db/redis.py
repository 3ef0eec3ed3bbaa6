"""Redis connection management for the dashboard cache.

Mirrors engine.py: with REDIS_URL a shared pool is created at import time,
without it `redis_pool` is None and the cache falls back to memory.
Redis only ever holds rendered dashboards, which can be recomputed from
the progress store, so losing it costs latency, not data.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import redis.asyncio as aioredis

from app.core.config import SETTINGS

logger = logging.getLogger(__name__)

if SETTINGS.redis_url:
    redis_pool: aioredis.Redis | None = aioredis.from_url(  # type: ignore[type-arg]
        SETTINGS.redis_url,
        decode_responses=True,
        max_connections=20,
    )
else:
    redis_pool = None


@asynccontextmanager
async def lifespan_redis():
    """Startup/shutdown hook for Redis — mirrors lifespan_db()."""
    if redis_pool is None:
        logger.info("No REDIS_URL configured — dashboard cache is in memory")
        yield
        return

    try:
        await redis_pool.ping()  # type: ignore[misc]  # redis stubs mistype async ping as bool
        logger.info("Redis connected: %s", SETTINGS.redis_url)
    except Exception:
        # Start anyway: RedisCacheService treats errors as misses, so
        # dashboards are computed from the store until Redis is back.
        logger.exception("Redis connection failed on startup")
        yield
        return

    yield

    await redis_pool.aclose()
    logger.info("Redis connection pool closed")
