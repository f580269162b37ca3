"""Read-through cache for contract progress summaries.

    Client -> cache -> hit  -> return
    Client -> cache -> miss -> ledger -> populate cache -> return

Entries expire after a TTL and are also deleted explicitly by every
operation that can change a contract's ledger or status (lesson update,
batch update, save, manual completion).  The TTL bounds staleness if an
invalidation is ever missed.

Only derived data lives here; the ledger stays the source of truth.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable
from uuid import UUID

from musicschool.core.metrics import CACHE_OPERATIONS
from musicschool.db.redis import redis_pool

PROGRESS_TTL_SECONDS = 300


def progress_key(contract_id: UUID) -> str:
    return f"contract-progress:{contract_id}"


@runtime_checkable
class CacheService(Protocol):
    async def get(self, key: str) -> str | None:
        """Fetch a cached value.  Returns None on cache miss."""
        ...

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        ...

    async def delete(self, key: str) -> None:
        ...


class InMemoryCacheService:
    """In-process cache without TTL enforcement (tests, single process)."""

    def __init__(self) -> None:
        self._store: dict[str, str] = {}

    async def get(self, key: str) -> str | None:
        value = self._store.get(key)
        CACHE_OPERATIONS.labels(operation="hit" if value is not None else "miss").inc()
        return value

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        CACHE_OPERATIONS.labels(operation="set").inc()
        self._store[key] = value

    async def delete(self, key: str) -> None:
        CACHE_OPERATIONS.labels(operation="delete").inc()
        self._store.pop(key, None)


class RedisCacheService:
    """Redis-backed cache shared across API instances."""

    # Namespaces cache keys within a shared Redis
    _PREFIX = "cache:"

    def __init__(self, redis_client) -> None:
        self._redis = redis_client

    async def get(self, key: str) -> str | None:
        value = await self._redis.get(f"{self._PREFIX}{key}")
        CACHE_OPERATIONS.labels(operation="hit" if value is not None else "miss").inc()
        return value

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        CACHE_OPERATIONS.labels(operation="set").inc()
        await self._redis.setex(f"{self._PREFIX}{key}", ttl_seconds, value)

    async def delete(self, key: str) -> None:
        CACHE_OPERATIONS.labels(operation="delete").inc()
        await self._redis.delete(f"{self._PREFIX}{key}")


if redis_pool is not None:
    cache_service: CacheService = RedisCacheService(redis_pool)
else:
    cache_service = InMemoryCacheService()
