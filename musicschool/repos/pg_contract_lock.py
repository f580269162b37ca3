"""PostgreSQL implementation of ContractLock.

Transaction-scoped advisory lock: released by the commit/rollback at the
end of the request session, never explicitly.  ``SET LOCAL lock_timeout``
bounds the wait and is reset to the session default once the lock is
held, so later row locks in the request keep their usual timeout.

A wait that times out (SQLSTATE 55P03, lock_not_available) or that
PostgreSQL cancels as a deadlock (40P01) becomes ContractBusyError.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from uuid import UUID

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession

from musicschool.core.errors import ContractBusyError
from musicschool.core.metrics import CONTRACT_LOCK_BUSY
from musicschool.repos.contract_lock import lock_key

logger = logging.getLogger(__name__)

_LOCK_NOT_AVAILABLE = "55P03"
_DEADLOCK_DETECTED = "40P01"
BUSY_SQLSTATES = frozenset({_LOCK_NOT_AVAILABLE, _DEADLOCK_DETECTED})


class PgContractLock:
    def __init__(self, session: AsyncSession, timeout: float) -> None:
        self._session = session
        self._timeout_ms = max(1, int(timeout * 1000))

    @asynccontextmanager
    async def hold(self, contract_id: UUID) -> AsyncIterator[None]:
        # SET does not take bind parameters; the value is an int we built
        await self._session.execute(
            text(f"SET LOCAL lock_timeout = {self._timeout_ms}")
        )
        try:
            await self._session.execute(
                text("SELECT pg_advisory_xact_lock(:key)"),
                {"key": lock_key(contract_id)},
            )
        except DBAPIError as exc:
            if _sqlstate(exc) not in BUSY_SQLSTATES:
                raise
            CONTRACT_LOCK_BUSY.inc()
            logger.warning(
                "Contract advisory lock busy (sqlstate %s)",
                _sqlstate(exc),
                extra={"contract_id": str(contract_id)},
            )
            raise ContractBusyError(contract_id) from exc
        await self._session.execute(text("SET LOCAL lock_timeout = DEFAULT"))
        yield


def _sqlstate(exc: DBAPIError) -> str | None:
    orig = exc.orig
    # asyncpg errors expose .sqlstate (possibly on the wrapped cause),
    # psycopg2 errors .pgcode
    for candidate in (orig, getattr(orig, "__cause__", None)):
        code = getattr(candidate, "sqlstate", None) or getattr(
            candidate, "pgcode", None
        )
        if code:
            return code
    return None
