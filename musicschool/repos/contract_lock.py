"""Per-contract mutual exclusion.

Every operation that mutates a contract or its lessons holds the contract's
lock around "evaluate + mutate + notify".  The key is a stable signed
64-bit integer derived from the contract id, the same number on every
process and restart, so it doubles as a PostgreSQL advisory lock key (see
pg_contract_lock.py).

Acquisition waits at most ``timeout`` seconds and then raises
ContractBusyError; it never proceeds without the lock.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
from collections.abc import AsyncIterator
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import Protocol
from uuid import UUID

from musicschool.core.errors import ContractBusyError
from musicschool.core.metrics import CONTRACT_LOCK_BUSY

logger = logging.getLogger(__name__)


def lock_key(contract_id: UUID) -> int:
    """Stable signed 64-bit key for ``contract_id``."""
    digest = hashlib.sha256(b"contract:" + contract_id.bytes).digest()
    return int.from_bytes(digest[:8], "big", signed=True)


class ContractLock(Protocol):
    def hold(self, contract_id: UUID) -> AbstractAsyncContextManager[None]: ...


class InMemoryContractLock:
    """asyncio.Lock per key, for a single process.

    Entries are dropped once nobody holds or waits on them, so no lock
    outlives the event loop it was created on (tests run one loop per
    asyncio.run call).
    """

    def __init__(self, timeout: float) -> None:
        self._timeout = timeout
        self._locks: dict[int, asyncio.Lock] = {}
        self._users: dict[int, int] = {}

    @asynccontextmanager
    async def hold(self, contract_id: UUID) -> AsyncIterator[None]:
        key = lock_key(contract_id)
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._users[key] = self._users.get(key, 0) + 1
        try:
            try:
                await asyncio.wait_for(lock.acquire(), timeout=self._timeout)
            except asyncio.TimeoutError:
                CONTRACT_LOCK_BUSY.inc()
                logger.warning(
                    "Contract lock busy",
                    extra={"contract_id": str(contract_id)},
                )
                raise ContractBusyError(contract_id) from None
            try:
                yield
            finally:
                lock.release()
        finally:
            self._users[key] -= 1
            if self._users[key] == 0:
                del self._users[key]
                del self._locks[key]
