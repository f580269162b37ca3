from __future__ import annotations

import asyncio
from uuid import UUID, uuid4

import pytest
from prometheus_client import REGISTRY
from sqlalchemy.exc import DBAPIError

from musicschool.core.errors import ContractBusyError
from musicschool.repos.contract_lock import InMemoryContractLock, lock_key
from musicschool.repos.pg_contract_lock import PgContractLock


def _busy_count() -> float:
    return REGISTRY.get_sample_value("contract_lock_busy_total") or 0.0


def test_lock_key_is_stable_signed_64_bit() -> None:
    contract_id = UUID("3f2b8d1e-6c4a-4e0b-9f7d-1a2b3c4d5e6f")
    key = lock_key(contract_id)
    assert key == lock_key(UUID(str(contract_id)))
    assert -(2**63) <= key < 2**63


def test_lock_keys_differ_per_contract() -> None:
    keys = {lock_key(uuid4()) for _ in range(200)}
    assert len(keys) == 200


def test_second_holder_times_out_with_busy_error() -> None:
    locks = InMemoryContractLock(timeout=0.05)
    contract_id = uuid4()
    before = _busy_count()

    async def scenario() -> None:
        async with locks.hold(contract_id):
            with pytest.raises(ContractBusyError) as exc_info:
                async with locks.hold(contract_id):
                    pass
            assert exc_info.value.contract_id == contract_id

    asyncio.run(scenario())
    assert _busy_count() - before == 1


def test_waiter_gets_lock_after_release() -> None:
    locks = InMemoryContractLock(timeout=1.0)
    contract_id = uuid4()
    order: list[str] = []

    async def first() -> None:
        async with locks.hold(contract_id):
            order.append("first-in")
            await asyncio.sleep(0.01)
            order.append("first-out")

    async def second() -> None:
        await asyncio.sleep(0)
        async with locks.hold(contract_id):
            order.append("second-in")

    async def scenario() -> None:
        await asyncio.gather(first(), second())

    asyncio.run(scenario())
    assert order == ["first-in", "first-out", "second-in"]


def test_different_contracts_do_not_block_each_other() -> None:
    locks = InMemoryContractLock(timeout=0.05)

    async def scenario() -> None:
        async with locks.hold(uuid4()):
            async with locks.hold(uuid4()):
                pass

    asyncio.run(scenario())


def test_lock_released_when_body_raises() -> None:
    locks = InMemoryContractLock(timeout=0.05)
    contract_id = uuid4()

    async def scenario() -> None:
        with pytest.raises(RuntimeError):
            async with locks.hold(contract_id):
                raise RuntimeError("boom")
        async with locks.hold(contract_id):
            pass

    asyncio.run(scenario())
    assert locks._locks == {}


# ---- PostgreSQL advisory lock, against a recording session ----


class _PgError(Exception):
    def __init__(self, sqlstate: str) -> None:
        super().__init__(sqlstate)
        self.sqlstate = sqlstate


class _RecordingSession:
    """Records statements; the advisory lock fails with ``sqlstate`` if set."""

    def __init__(self, sqlstate: str | None = None) -> None:
        self.sqlstate = sqlstate
        self.statements: list[str] = []

    async def execute(self, statement, params=None) -> None:
        self.statements.append(str(statement))
        if self.sqlstate and "pg_advisory_xact_lock" in str(statement):
            raise DBAPIError(str(statement), params, _PgError(self.sqlstate))


def _hold_pg(session: _RecordingSession) -> None:
    async def scenario() -> None:
        async with PgContractLock(session, timeout=0.5).hold(uuid4()):  # type: ignore[arg-type]
            pass

    asyncio.run(scenario())


def test_pg_lock_bounds_the_wait_then_resets_the_timeout() -> None:
    session = _RecordingSession()

    _hold_pg(session)

    assert session.statements == [
        "SET LOCAL lock_timeout = 500",
        "SELECT pg_advisory_xact_lock(:key)",
        "SET LOCAL lock_timeout = DEFAULT",
    ]


@pytest.mark.parametrize("sqlstate", ["55P03", "40P01"])
def test_pg_lock_timeout_and_deadlock_are_busy(sqlstate: str) -> None:
    before = _busy_count()

    with pytest.raises(ContractBusyError):
        _hold_pg(_RecordingSession(sqlstate))

    assert _busy_count() - before == 1


def test_pg_lock_reraises_other_database_errors() -> None:
    with pytest.raises(DBAPIError):
        _hold_pg(_RecordingSession("08006"))
