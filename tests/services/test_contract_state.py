from __future__ import annotations

import asyncio
from dataclasses import replace
from uuid import UUID, uuid4

import pytest
from prometheus_client import REGISTRY

from musicschool.core.errors import NotFoundError, PermissionDeniedError
from musicschool.models.principal import Principal
from musicschool.repos.store import ContractStore
from musicschool.services.contract_state import (
    LESSON_UPDATE,
    MANUAL,
    SyncResult,
    complete_contract,
    sync_contract,
)
from tests.conftest import (
    ADMIN,
    FIRST_LESSON_DAY,
    FailingNotificationRepo,
    contract_of,
    seed_contract,
    set_lessons,
)

TEACHER = Principal(user_id="teacher-profile", roles=frozenset({"teacher"}))


def _sample(name: str, labels: dict[str, str]) -> float:
    return REGISTRY.get_sample_value(name, labels) or 0.0


def _sync(store: ContractStore, contract_id: UUID, trigger: str = LESSON_UPDATE) -> SyncResult:
    async def run() -> SyncResult:
        async with store.locks.hold(contract_id):
            return await sync_contract(store, contract_id, trigger=trigger)

    return asyncio.run(run())


def _notification_count(store: ContractStore) -> int:
    return len(asyncio.run(store.notifications.list_all()))


# ---- automatic transition ----


def test_fully_dated_ledger_completes_contract(store: ContractStore) -> None:
    contract = seed_contract(store, total_lessons=10)
    set_lessons(store, contract.id, dated=range(1, 11))
    before = _sample("contract_transitions_total", {"trigger": LESSON_UPDATE})

    result = _sync(store, contract.id)

    assert result.transitioned is True
    assert result.notification_created is True
    stored = contract_of(store, contract.id)
    assert stored.status == "completed"
    assert stored.completed_at is not None
    assert stored.attendance_count == "10/10"
    assert len(stored.attendance_dates) == 10
    assert stored.attendance_dates[0] == FIRST_LESSON_DAY
    assert _notification_count(store) == 1
    assert _sample("contract_transitions_total", {"trigger": LESSON_UPDATE}) - before == 1


def test_partial_ledger_only_refreshes_attendance(store: ContractStore) -> None:
    contract = seed_contract(store, total_lessons=10)
    set_lessons(store, contract.id, dated=range(1, 10))

    result = _sync(store, contract.id)

    assert result.transitioned is False
    stored = contract_of(store, contract.id)
    assert stored.status == "active"
    assert stored.completed_at is None
    assert stored.attendance_count == "9/10"
    assert _notification_count(store) == 0


def test_excluded_lessons_do_not_block_completion(store: ContractStore) -> None:
    contract = seed_contract(store, total_lessons=10)
    set_lessons(store, contract.id, dated=range(1, 9), excluded=[9, 10])

    result = _sync(store, contract.id)

    assert result.transitioned is True
    assert contract_of(store, contract.id).attendance_count == "8/8"
    (notification,) = asyncio.run(store.notifications.list_all())
    assert "(8 of 8 lessons, 2 excluded)" in notification.message


def test_fully_excluded_ledger_stays_active(store: ContractStore) -> None:
    contract = seed_contract(store, total_lessons=3)
    set_lessons(store, contract.id, excluded=[1, 2, 3])

    result = _sync(store, contract.id)

    assert result.transitioned is False
    assert contract_of(store, contract.id).attendance_count == "0/0"


# ---- writes ----


def test_transition_is_a_single_contract_write(store: ContractStore) -> None:
    contract = seed_contract(store, total_lessons=4)
    set_lessons(store, contract.id, dated=range(1, 5))
    writes = store.contracts.write_count  # type: ignore[attr-defined]

    _sync(store, contract.id)

    assert store.contracts.write_count - writes == 1  # type: ignore[attr-defined]
    assert contract_of(store, contract.id).version == contract.version + 1


def test_unchanged_ledger_writes_nothing(store: ContractStore) -> None:
    contract = seed_contract(store, total_lessons=4)
    set_lessons(store, contract.id, dated=[1])
    _sync(store, contract.id)
    writes = store.contracts.write_count  # type: ignore[attr-defined]

    result = _sync(store, contract.id)

    assert result.transitioned is False
    assert store.contracts.write_count == writes  # type: ignore[attr-defined]


def test_unknown_contract_is_not_found(store: ContractStore) -> None:
    with pytest.raises(NotFoundError):
        _sync(store, uuid4())


# ---- completed is terminal ----


def test_completed_contract_never_reopens(store: ContractStore) -> None:
    contract = seed_contract(store, total_lessons=2)
    set_lessons(store, contract.id, dated=[1, 2])
    _sync(store, contract.id)
    completed_at = contract_of(store, contract.id).completed_at

    # Clearing a date afterwards only changes the attendance figures
    async def clear_second() -> None:
        lessons = await store.lessons.list_by_contract(contract.id)
        await store.lessons.save(replace(lessons[1], date=None))

    asyncio.run(clear_second())
    result = _sync(store, contract.id)

    assert result.transitioned is False
    stored = contract_of(store, contract.id)
    assert stored.status == "completed"
    assert stored.completed_at == completed_at
    assert stored.attendance_count == "1/2"
    assert _notification_count(store) == 1


# ---- manual transition ----


def test_manual_completion_ignores_ledger(store: ContractStore) -> None:
    contract = seed_contract(store, total_lessons=10)
    set_lessons(store, contract.id, dated=[1, 2, 3])
    before = _sample("contract_transitions_total", {"trigger": MANUAL})

    result = asyncio.run(complete_contract(store, ADMIN, contract.id))

    assert result.transitioned is True
    assert result.notification_created is True
    assert result.contract.status == "completed"
    assert result.contract.attendance_count == "3/10"
    (notification,) = asyncio.run(store.notifications.list_all())
    assert "(3 of 10 lessons)" in notification.message
    assert _sample("contract_transitions_total", {"trigger": MANUAL}) - before == 1


def test_manual_completion_of_completed_contract_is_noop(store: ContractStore) -> None:
    contract = seed_contract(store, total_lessons=2)
    asyncio.run(complete_contract(store, ADMIN, contract.id))
    writes = store.contracts.write_count  # type: ignore[attr-defined]

    result = asyncio.run(complete_contract(store, ADMIN, contract.id))

    assert result.transitioned is False
    assert result.notification_created is False
    assert store.contracts.write_count == writes  # type: ignore[attr-defined]
    assert _notification_count(store) == 1


def test_manual_completion_requires_admin(store: ContractStore) -> None:
    contract = seed_contract(store)
    with pytest.raises(PermissionDeniedError):
        asyncio.run(complete_contract(store, TEACHER, contract.id))
    assert contract_of(store, contract.id).status == "active"


# ---- notification failure ----


def test_notification_failure_keeps_transition(
    store: ContractStore, caplog: pytest.LogCaptureFixture
) -> None:
    contract = seed_contract(store, total_lessons=2)
    set_lessons(store, contract.id, dated=[1, 2])
    store.notifications = FailingNotificationRepo()
    before = _sample("contract_notifications_total", {"result": "failed"})

    result = _sync(store, contract.id)

    assert result.transitioned is True
    assert result.notification_created is False
    assert contract_of(store, contract.id).status == "completed"
    assert _sample("contract_notifications_total", {"result": "failed"}) - before == 1
    assert any(
        r.levelname == "ERROR" and getattr(r, "contract_id", None) == str(contract.id)
        for r in caplog.records
    )
