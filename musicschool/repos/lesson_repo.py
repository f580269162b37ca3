from __future__ import annotations

from typing import Protocol
from uuid import UUID

from musicschool.models.lesson import Lesson


class LessonRepo(Protocol):
    async def get(self, lesson_id: UUID) -> Lesson | None: ...
    async def list_by_contract(self, contract_id: UUID) -> list[Lesson]: ...
    async def add_many(self, lessons: list[Lesson]) -> None: ...
    async def save(self, lesson: Lesson) -> None: ...
    async def delete_many(self, lesson_ids: list[UUID]) -> None: ...


class InMemoryLessonRepo:
    """Dict-backed ledger that enforces the same constraints as the table.

    contract_id is required and (contract_id, lesson_number) is unique,
    like the NOT NULL column and unique_contract_lesson constraint.
    """

    def __init__(self) -> None:
        self._by_id: dict[UUID, Lesson] = {}

    async def get(self, lesson_id: UUID) -> Lesson | None:
        return self._by_id.get(lesson_id)

    async def list_by_contract(self, contract_id: UUID) -> list[Lesson]:
        lessons = [l for l in self._by_id.values() if l.contract_id == contract_id]
        return sorted(lessons, key=lambda l: l.lesson_number)

    async def add_many(self, lessons: list[Lesson]) -> None:
        for lesson in lessons:
            self._check(lesson)
            self._by_id[lesson.id] = lesson

    async def save(self, lesson: Lesson) -> None:
        if lesson.id not in self._by_id:
            raise KeyError("lesson not found")
        self._check(lesson)
        self._by_id[lesson.id] = lesson

    async def delete_many(self, lesson_ids: list[UUID]) -> None:
        for lesson_id in lesson_ids:
            self._by_id.pop(lesson_id, None)

    def _check(self, lesson: Lesson) -> None:
        if lesson.contract_id is None:
            raise ValueError("lesson.contract_id must not be null")
        for other in self._by_id.values():
            if (
                other.id != lesson.id
                and other.contract_id == lesson.contract_id
                and other.lesson_number == lesson.lesson_number
            ):
                raise ValueError("lesson number already used in contract")
