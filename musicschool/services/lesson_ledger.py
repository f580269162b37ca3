"""Lesson ledger mutations: single and batch partial updates.

Every change is validated against the lesson's contract before anything
is written, then applied while the contract lock is held, followed by
the state machine sync for that contract when a completion field
(date or is_available) was touched.

A lesson can never lose its contract: the record written back always
carries the stored contract_id, and an update that names no contract
(explicit None) or another contract is an IntegrityViolationError.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date
from uuid import UUID

from musicschool.core.errors import (
    ContractBusyError,
    ContractServiceError,
    IntegrityViolationError,
    LessonValidationError,
    NotFoundError,
    PermissionDeniedError,
)
from musicschool.core.metrics import LESSON_UPDATES
from musicschool.models.contract import Contract
from musicschool.models.lesson import UNSET, Lesson, LessonUpdate
from musicschool.models.principal import Principal
from musicschool.repos.contract_lock import lock_key
from musicschool.repos.store import ContractStore
from musicschool.services.authorization import ensure_can_track
from musicschool.services.contract_state import (
    BATCH_UPDATE,
    LESSON_UPDATE,
    SyncResult,
    sync_contract,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class LessonUpdateResult:
    lesson: Lesson
    sync: SyncResult | None  # None when no completion field changed


@dataclass(frozen=True, slots=True)
class BatchFailure:
    lesson_id: UUID
    reason: str
    code: str


@dataclass(frozen=True, slots=True)
class BatchUpdateSummary:
    success_count: int
    failures: tuple[BatchFailure, ...]
    processed_contracts: tuple[UUID, ...]
    completed_contracts: tuple[UUID, ...]


def apply_update(
    lesson: Lesson,
    contract: Contract,
    update: LessonUpdate,
    siblings: list[Lesson],
) -> Lesson:
    """Validate ``update`` against ``contract`` and return the new lesson.

    Raises IntegrityViolationError or LessonValidationError; never writes.
    """
    if update.contract_id is not UNSET:
        if update.contract_id is None:
            raise IntegrityViolationError(
                f"lesson {lesson.id} cannot be detached from its contract"
            )
        if update.contract_id != lesson.contract_id:
            raise IntegrityViolationError(
                f"lesson {lesson.id} belongs to contract {lesson.contract_id}, "
                f"not {update.contract_id}"
            )

    changes: dict[str, object] = {}

    if update.date is not UNSET:
        if update.date is not None and not isinstance(update.date, date):
            raise LessonValidationError("date must be a date or null", field="date")
        changes["date"] = update.date

    if update.comment is not UNSET:
        if update.comment is not None and not isinstance(update.comment, str):
            raise LessonValidationError(
                "comment must be a string or null", field="comment"
            )
        changes["comment"] = update.comment

    if update.is_available is not UNSET:
        if not isinstance(update.is_available, bool):
            raise LessonValidationError(
                "is_available must be a boolean", field="is_available"
            )
        changes["is_available"] = update.is_available

    if update.lesson_number is not UNSET:
        number = update.lesson_number
        if isinstance(number, bool) or not isinstance(number, int):
            raise LessonValidationError(
                "lesson_number must be an integer", field="lesson_number"
            )
        if not 1 <= number <= contract.total_lessons:
            raise LessonValidationError(
                f"lesson_number {number} is outside 1..{contract.total_lessons}",
                field="lesson_number",
            )
        if any(s.lesson_number == number and s.id != lesson.id for s in siblings):
            raise IntegrityViolationError(
                f"lesson_number {number} is already used in contract {contract.id}"
            )
        changes["lesson_number"] = number

    return replace(lesson, **changes)


async def authorize_tracking(store: ContractStore, actor: Principal, contract: Contract) -> None:
    if actor.is_admin():
        return
    acting = await store.directory.get_teacher_by_profile(actor.user_id)
    fallback = None
    if contract.teacher_id is None:
        student = await store.directory.get_student(contract.student_id)
        fallback = student.teacher_id if student else None
    ensure_can_track(actor, contract, acting, fallback_teacher_id=fallback)


async def _load_contract(store: ContractStore, contract_id: UUID) -> Contract:
    contract = await store.contracts.get(contract_id)
    if contract is None:
        # Lessons reference contracts through a non-null FK
        raise IntegrityViolationError(f"contract {contract_id} of lesson is missing")
    return contract


async def _apply_locked(
    store: ContractStore,
    contract: Contract,
    update: LessonUpdate,
) -> Lesson:
    lesson = await store.lessons.get(update.lesson_id)
    if lesson is None or lesson.contract_id != contract.id:
        raise NotFoundError("lesson", update.lesson_id)
    siblings = await store.lessons.list_by_contract(contract.id)
    updated = apply_update(lesson, contract, update, siblings)
    await store.lessons.save(updated)
    return updated


async def read_contract(
    store: ContractStore,
    actor: Principal,
    contract_id: UUID,
) -> Contract:
    """Contract visible to ``actor`` (admin or its teacher)."""
    contract = await store.contracts.get(contract_id)
    if contract is None:
        raise NotFoundError("contract", contract_id)
    await authorize_tracking(store, actor, contract)
    return contract


async def read_ledger(
    store: ContractStore,
    actor: Principal,
    contract_id: UUID,
) -> tuple[Contract, list[Lesson]]:
    contract = await read_contract(store, actor, contract_id)
    return contract, await store.lessons.list_by_contract(contract_id)


async def update_lesson(
    store: ContractStore,
    actor: Principal,
    update: LessonUpdate,
) -> LessonUpdateResult:
    lesson = await store.lessons.get(update.lesson_id)
    if lesson is None:
        LESSON_UPDATES.labels(result="not_found").inc()
        raise NotFoundError("lesson", update.lesson_id)

    contract = await _load_contract(store, lesson.contract_id)
    await authorize_tracking(store, actor, contract)

    try:
        async with store.locks.hold(contract.id):
            # Re-read under the lock; the unlocked reads only routed us here
            contract = await _load_contract(store, contract.id)
            updated = await _apply_locked(store, contract, update)
            sync = None
            if update.touches_completion:
                sync = await sync_contract(store, contract.id, trigger=LESSON_UPDATE)
    except ContractServiceError as exc:
        LESSON_UPDATES.labels(result=exc.code).inc()
        raise

    LESSON_UPDATES.labels(result="success").inc()
    logger.info(
        "Lesson %s updated (fields=%s)",
        updated.lesson_number,
        sorted(update.provided()),
        extra={"contract_id": str(contract.id), "lesson_id": str(updated.id)},
    )
    return LessonUpdateResult(lesson=updated, sync=sync)


async def batch_update_lessons(
    store: ContractStore,
    actor: Principal,
    updates: list[LessonUpdate],
) -> BatchUpdateSummary:
    """Apply each update independently; never raises for a single item.

    Items are grouped by contract.  Groups take their locks in lock key
    order, so two batches over the same contracts cannot deadlock, and
    each group runs in its own savepoint: a group that fails rolls back
    alone while the others still commit.  The contract is synced once,
    after its items.  A group whose lock is busy, or whose contract the
    actor may not track, fails every one of its items.  Processed and
    completed contracts are reported in first-seen order.
    """
    failures: list[BatchFailure] = []
    groups: dict[UUID, list[LessonUpdate]] = {}

    for update in updates:
        lesson = await store.lessons.get(update.lesson_id)
        if lesson is None:
            failures.append(
                BatchFailure(
                    update.lesson_id,
                    f"lesson {update.lesson_id} not found",
                    NotFoundError.code,
                )
            )
            continue
        groups.setdefault(lesson.contract_id, []).append(update)

    success_count = 0
    processed: set[UUID] = set()
    completed: set[UUID] = set()

    for contract_id in sorted(groups, key=lock_key):
        items = groups[contract_id]
        item_failures: list[BatchFailure] = []
        try:
            async with store.savepoint():
                contract = await _load_contract(store, contract_id)
                await authorize_tracking(store, actor, contract)
                async with store.locks.hold(contract_id):
                    contract = await _load_contract(store, contract_id)
                    touched = False
                    for update in items:
                        try:
                            await _apply_locked(store, contract, update)
                        except ContractServiceError as exc:
                            item_failures.append(
                                BatchFailure(update.lesson_id, exc.reason, exc.code)
                            )
                            continue
                        touched = touched or update.touches_completion

                    sync = None
                    if touched:
                        sync = await sync_contract(store, contract_id, trigger=BATCH_UPDATE)
        except (ContractBusyError, PermissionDeniedError, IntegrityViolationError) as exc:
            logger.warning(
                "Batch group failed: %s",
                exc.reason,
                extra={"contract_id": str(contract_id)},
            )
            failures.extend(
                BatchFailure(update.lesson_id, exc.reason, exc.code) for update in items
            )
            continue

        failures.extend(item_failures)
        success_count += len(items) - len(item_failures)
        processed.add(contract_id)
        if sync is not None and sync.transitioned:
            completed.add(contract_id)

    LESSON_UPDATES.labels(result="success").inc(success_count)
    if failures:
        LESSON_UPDATES.labels(result="batch_failure").inc(len(failures))
    logger.info(
        "Batch lesson update: %d ok, %d failed, %d contracts",
        success_count,
        len(failures),
        len(processed),
    )
    return BatchUpdateSummary(
        success_count=success_count,
        failures=tuple(failures),
        processed_contracts=tuple(c for c in groups if c in processed),
        completed_contracts=tuple(c for c in groups if c in completed),
    )
