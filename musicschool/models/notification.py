from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID, uuid4

CONTRACT_FULFILLED = "contract_fulfilled"


@dataclass(frozen=True, slots=True)
class Notification:
    """Inbox entry shown in the administration UI.

    teacher_id=None means admin-only: the notification list shows a row to
    a teacher only when teacher_id names that teacher.
    """

    id: UUID
    type: str
    contract_id: UUID | None
    student_id: UUID | None
    teacher_id: UUID | None
    title: str
    message: str
    created_at: int
    updated_at: int
    is_read: bool = False

    @staticmethod
    def new(
        *,
        type: str,
        contract_id: UUID | None,
        student_id: UUID | None,
        title: str,
        message: str,
        now: int,
        teacher_id: UUID | None = None,
    ) -> Notification:
        return Notification(
            id=uuid4(),
            type=type,
            contract_id=contract_id,
            student_id=student_id,
            teacher_id=teacher_id,
            title=title,
            message=message,
            created_at=now,
            updated_at=now,
        )
