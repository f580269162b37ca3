from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID, uuid4


@dataclass(frozen=True, slots=True)
class Teacher:
    id: UUID
    name: str
    profile_id: str | None = None  # auth subject of the teacher's login

    @staticmethod
    def new(*, name: str, profile_id: str | None = None) -> Teacher:
        return Teacher(id=uuid4(), name=name, profile_id=profile_id)


@dataclass(frozen=True, slots=True)
class Student:
    id: UUID
    name: str
    teacher_id: UUID | None = None

    @staticmethod
    def new(*, name: str, teacher_id: UUID | None = None) -> Student:
        return Student(id=uuid4(), name=name, teacher_id=teacher_id)
