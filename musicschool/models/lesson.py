from __future__ import annotations

import enum
from dataclasses import dataclass, fields
from datetime import date
from uuid import UUID, uuid4


class _Unset(enum.Enum):
    UNSET = "UNSET"

    def __repr__(self) -> str:
        return "UNSET"


# Marks a LessonUpdate field the caller did not send.  None is a real
# value ("clear the date"), so absence needs its own marker.
UNSET = _Unset.UNSET


@dataclass(frozen=True, slots=True)
class Lesson:
    """One lesson slot of a contract.

    A dated lesson counts as performed.  is_available=False excludes the
    slot from completion accounting entirely.
    """

    id: UUID
    contract_id: UUID
    lesson_number: int
    date: date | None = None
    comment: str | None = None
    is_available: bool = True

    @staticmethod
    def new(*, contract_id: UUID, lesson_number: int) -> Lesson:
        return Lesson(id=uuid4(), contract_id=contract_id, lesson_number=lesson_number)


@dataclass(frozen=True, slots=True)
class LessonUpdate:
    """Partial update of a single lesson; UNSET fields are left alone."""

    lesson_id: UUID
    contract_id: UUID | None | _Unset = UNSET
    date: date | None | _Unset = UNSET
    comment: str | None | _Unset = UNSET
    is_available: bool | _Unset = UNSET
    lesson_number: int | _Unset = UNSET

    def provided(self) -> dict[str, object]:
        """Fields the caller actually sent, excluding the lesson id."""
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if f.name != "lesson_id" and getattr(self, f.name) is not UNSET
        }

    @property
    def touches_completion(self) -> bool:
        return self.date is not UNSET or self.is_available is not UNSET
