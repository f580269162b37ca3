"""Redis connection management.

Mirrors engine.py: with REDIS_URL set there is a shared async client,
otherwise ``redis_pool`` is None and the progress cache stays in process.
Redis only ever holds derived data (cached completion summaries), so
losing it costs a recomputation, never a contract state.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import redis.asyncio as aioredis

from musicschool.core.config import SETTINGS

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
    """Verify Redis on startup and close the pool on shutdown.

    An unreachable Redis is logged but does not stop the service.
    """
    if redis_pool is None:
        logger.info("No REDIS_URL configured, progress cache is in-memory")
        yield
        return

    try:
        await redis_pool.ping()  # type: ignore[misc]
        logger.info("Redis connected: %s", SETTINGS.redis_url)
    except Exception:
        logger.exception("Redis connection failed on startup")
        yield
        return

    yield

    await redis_pool.aclose()
    logger.info("Redis connection pool closed")
