"""Contract create/update (save_contract).

Order of work for one save:

  1. capability check (admins only)
  2. draft validation, ValidationError before anything is read or written
  3. integrity: student, teacher, variant and discounts must exist
  4. price quote from the variant and discounts
  5. under the contract lock: reopen check, lesson plan, contract write,
     lesson inserts/deletes, state machine sync, audit entry

The lesson plan keeps slots 1..total_lessons.  Missing slots are added
(available, undated); existing slots keep their progress; undated slots
above the total are removed.  Shrinking below a dated slot is refused.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from decimal import Decimal
from uuid import UUID, uuid4

from musicschool.core.errors import (
    IntegrityViolationError,
    NotFoundError,
    ValidationError,
)
from musicschool.models.catalog import LEGACY_TYPE_BY_CATEGORY, ContractVariant
from musicschool.models.contract import (
    ACTIVE,
    COMPLETED,
    CONTRACT_STATUSES,
    CONTRACT_TYPES,
    DEFAULT_LESSONS_BY_TYPE,
    FALLBACK_LESSON_COUNT,
    Contract,
    ContractOperation,
)
from musicschool.models.lesson import Lesson
from musicschool.models.principal import Principal
from musicschool.repos.store import ContractStore
from musicschool.services.authorization import Capability, ensure_capability
from musicschool.services.contract_state import CONTRACT_SAVE, MANUAL, sync_contract
from musicschool.services.pricing import calculate_price

logger = logging.getLogger(__name__)

MAX_LESSONS = 100


@dataclass(frozen=True, slots=True)
class ContractDraft:
    """Caller-supplied contract fields.  contract_id=None creates."""

    student_id: UUID
    type: str | None = None  # derived from the variant's category when None
    contract_id: UUID | None = None
    teacher_id: UUID | None = None
    contract_variant_id: UUID | None = None
    total_lessons: int | None = None
    discount_ids: tuple[UUID, ...] = ()
    custom_discount_percent: Decimal | None = None
    status: str | None = None


@dataclass(frozen=True, slots=True)
class SaveContractResult:
    contract_id: UUID
    warnings: tuple[str, ...]
    contract: Contract


@dataclass(frozen=True, slots=True)
class _LessonPlan:
    add: list[Lesson]
    remove: list[UUID]


def validate_draft(draft: ContractDraft) -> None:
    if draft.type is not None and draft.type not in CONTRACT_TYPES:
        raise ValidationError(
            f"type must be one of {', '.join(CONTRACT_TYPES)} (got {draft.type!r})",
            field="type",
        )
    if draft.status is not None and draft.status not in CONTRACT_STATUSES:
        raise ValidationError(
            f"status must be active|completed (got {draft.status!r})", field="status"
        )
    pct = draft.custom_discount_percent
    if pct is not None and not Decimal("0") <= pct <= Decimal("100"):
        raise ValidationError(
            f"custom_discount_percent must be within 0..100 (got {pct})",
            field="custom_discount_percent",
        )
    if draft.total_lessons is not None and not 1 <= draft.total_lessons <= MAX_LESSONS:
        raise ValidationError(
            f"total_lessons must be within 1..{MAX_LESSONS} (got {draft.total_lessons})",
            field="total_lessons",
        )
    if len(set(draft.discount_ids)) != len(draft.discount_ids):
        raise ValidationError("discount_ids contains duplicates", field="discount_ids")


def plan_lessons(contract_id: UUID, existing: list[Lesson], total: int) -> _LessonPlan:
    """Lesson inserts/deletes that bring the ledger to 1..total."""
    dated_beyond = [l for l in existing if l.lesson_number > total and l.date is not None]
    if dated_beyond:
        highest = max(l.lesson_number for l in dated_beyond)
        raise ValidationError(
            f"cannot reduce total_lessons to {total}: lesson {highest} is already dated",
            field="total_lessons",
        )

    numbers = {l.lesson_number for l in existing}
    return _LessonPlan(
        add=[
            Lesson.new(contract_id=contract_id, lesson_number=n)
            for n in range(1, total + 1)
            if n not in numbers
        ],
        remove=[l.id for l in existing if l.lesson_number > total],
    )


async def _resolve_type(store: ContractStore, draft: ContractDraft, variant: ContractVariant | None) -> str:
    if draft.type is not None:
        return draft.type
    if variant is not None:
        category = await store.directory.get_category(variant.category_id)
        if category is not None and category.name in LEGACY_TYPE_BY_CATEGORY:
            return LEGACY_TYPE_BY_CATEGORY[category.name]
    raise ValidationError("type is required when no variant determines it", field="type")


async def save_contract(
    store: ContractStore,
    actor: Principal,
    draft: ContractDraft,
) -> SaveContractResult:
    ensure_capability(actor, Capability.MANAGE_CONTRACTS)
    validate_draft(draft)

    if await store.directory.get_student(draft.student_id) is None:
        raise IntegrityViolationError(f"student {draft.student_id} does not exist")
    if draft.teacher_id is not None and await store.directory.get_teacher(draft.teacher_id) is None:
        raise IntegrityViolationError(f"teacher {draft.teacher_id} does not exist")

    warnings: list[str] = []
    variant = None
    if draft.contract_variant_id is not None:
        variant = await store.directory.get_variant(draft.contract_variant_id)
        if variant is None:
            raise IntegrityViolationError(
                f"contract variant {draft.contract_variant_id} does not exist"
            )
        if not variant.is_active:
            warnings.append(f"contract variant '{variant.name}' is inactive")

    discounts = await store.directory.get_discounts(list(draft.discount_ids))
    missing = set(draft.discount_ids) - {d.id for d in discounts}
    if missing:
        raise IntegrityViolationError(
            f"unknown discount ids: {', '.join(sorted(str(m) for m in missing))}"
        )

    contract_type = await _resolve_type(store, draft, variant)
    total = (
        draft.total_lessons
        or (variant.total_lessons if variant else None)
        or DEFAULT_LESSONS_BY_TYPE.get(contract_type, FALLBACK_LESSON_COUNT)
    )

    quote = calculate_price(variant, discounts, draft.custom_discount_percent)
    warnings.extend(quote.warnings)

    creating = draft.contract_id is None
    contract_id = draft.contract_id or uuid4()

    async with store.locks.hold(contract_id):
        existing = None if creating else await store.contracts.get(contract_id)
        if not creating and existing is None:
            raise NotFoundError("contract", contract_id)
        if existing is not None and existing.status == COMPLETED and draft.status == ACTIVE:
            raise ValidationError(
                "a completed contract cannot be set back to active", field="status"
            )

        lessons = await store.lessons.list_by_contract(contract_id) if existing else []
        plan = plan_lessons(contract_id, lessons, total)

        now = store.now()
        fields = {
            "student_id": draft.student_id,
            "type": contract_type,
            "total_lessons": total,
            "teacher_id": draft.teacher_id,
            "contract_variant_id": draft.contract_variant_id,
            "discount_ids": tuple(draft.discount_ids),
            "custom_discount_percent": draft.custom_discount_percent,
            "final_price": quote.final_price,
            "payment_type": quote.payment_type,
        }
        if existing is None:
            contract = replace(
                Contract.new(
                    student_id=draft.student_id,
                    type=contract_type,
                    total_lessons=total,
                    now=now,
                    contract_id=contract_id,
                ),
                **fields,
            )
            await store.contracts.add(contract)
        else:
            contract = replace(
                existing, **fields, updated_at=now, version=existing.version + 1
            )
            await store.contracts.save(contract)

        if plan.remove:
            await store.lessons.delete_many(plan.remove)
        if plan.add:
            await store.lessons.add_many(plan.add)

        manual = draft.status == COMPLETED and contract.is_active
        sync = await sync_contract(
            store, contract_id, trigger=MANUAL if manual else CONTRACT_SAVE
        )

        await store.operations.add(
            ContractOperation.new(
                contract_id=contract_id,
                operation_type="create" if creating else "update",
                created_at=now,
                created_by=actor.user_id,
                details={
                    "total_lessons": total,
                    "lessons_added": len(plan.add),
                    "lessons_removed": len(plan.remove),
                    "status": sync.contract.status,
                    "warnings": warnings,
                },
            )
        )

    logger.info(
        "Contract %s (%s, %d lessons, %d warnings)",
        "created" if creating else "updated",
        contract_type,
        total,
        len(warnings),
        extra={"contract_id": str(contract_id)},
    )
    return SaveContractResult(
        contract_id=contract_id, warnings=tuple(warnings), contract=sync.contract
    )
