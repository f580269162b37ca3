from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

ACTIVE = "active"
COMPLETED = "completed"
CONTRACT_STATUSES = (ACTIVE, COMPLETED)

CONTRACT_TYPES = ("ten_class_card", "half_year", "monthly", "workshop")

# Lesson count when neither the draft nor the variant names one
DEFAULT_LESSONS_BY_TYPE: dict[str, int] = {
    "ten_class_card": 10,
    "half_year": 18,
}
FALLBACK_LESSON_COUNT = 10


@dataclass(frozen=True, slots=True)
class Contract:
    """A student's agreement for a bounded set of lesson slots.

    status and attendance_count/attendance_dates are written only by the
    contract state machine; everything else comes from save_contract.
    """

    id: UUID
    student_id: UUID
    type: str  # ten_class_card|half_year|monthly|workshop
    total_lessons: int
    created_at: int
    updated_at: int
    status: str = ACTIVE  # active|completed
    teacher_id: UUID | None = None
    contract_variant_id: UUID | None = None
    attendance_count: str = "0/0"  # "completed/available"
    attendance_dates: tuple[date, ...] = ()
    discount_ids: tuple[UUID, ...] = ()
    custom_discount_percent: Decimal | None = None
    final_price: Decimal | None = None
    payment_type: str | None = None  # monthly|one_time
    completed_at: int | None = None
    version: int = 1

    @property
    def is_active(self) -> bool:
        return self.status == ACTIVE

    @staticmethod
    def new(
        *,
        student_id: UUID,
        type: str,
        total_lessons: int,
        now: int,
        contract_id: UUID | None = None,
    ) -> Contract:
        return Contract(
            id=contract_id or uuid4(),
            student_id=student_id,
            type=type,
            total_lessons=total_lessons,
            created_at=now,
            updated_at=now,
        )


@dataclass(frozen=True, slots=True)
class ContractOperation:
    """Audit trail entry for a contract save."""

    id: UUID
    contract_id: UUID
    operation_type: str  # create|update|complete
    status: str  # success
    created_at: int
    created_by: str | None = None
    details: dict | None = None

    @staticmethod
    def new(
        *,
        contract_id: UUID,
        operation_type: str,
        created_at: int,
        created_by: str | None,
        details: dict | None = None,
    ) -> ContractOperation:
        return ContractOperation(
            id=uuid4(),
            contract_id=contract_id,
            operation_type=operation_type,
            status="success",
            created_at=created_at,
            created_by=created_by,
            details=details,
        )
