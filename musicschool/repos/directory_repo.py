"""Read access to the records contracts refer to: people and the catalog."""

from __future__ import annotations

from typing import Protocol
from uuid import UUID

from musicschool.models.catalog import (
    DEFAULT_CATEGORIES,
    DEFAULT_DISCOUNTS,
    DEFAULT_VARIANTS,
    ContractCategory,
    ContractDiscount,
    ContractVariant,
)
from musicschool.models.people import Student, Teacher


class DirectoryRepo(Protocol):
    async def get_student(self, student_id: UUID) -> Student | None: ...
    async def get_teacher(self, teacher_id: UUID) -> Teacher | None: ...
    async def get_teacher_by_profile(self, profile_id: str) -> Teacher | None: ...
    async def get_category(self, category_id: UUID) -> ContractCategory | None: ...
    async def get_variant(self, variant_id: UUID) -> ContractVariant | None: ...
    async def get_discounts(self, discount_ids: list[UUID]) -> list[ContractDiscount]: ...


class InMemoryDirectoryRepo:
    def __init__(self, *, load_catalog: bool = True) -> None:
        self._students: dict[UUID, Student] = {}
        self._teachers: dict[UUID, Teacher] = {}
        self._categories: dict[UUID, ContractCategory] = {}
        self._variants: dict[UUID, ContractVariant] = {}
        self._discounts: dict[UUID, ContractDiscount] = {}
        if load_catalog:
            for c in DEFAULT_CATEGORIES:
                self.add_category(c)
            for v in DEFAULT_VARIANTS:
                self.add_variant(v)
            for d in DEFAULT_DISCOUNTS:
                self.add_discount(d)

    # Writers are sync: only startup code and tests seed the directory.

    def add_student(self, student: Student) -> None:
        self._students[student.id] = student

    def add_teacher(self, teacher: Teacher) -> None:
        if teacher.profile_id is not None and any(
            t.profile_id == teacher.profile_id for t in self._teachers.values()
        ):
            raise ValueError("profile_id already linked to a teacher")
        self._teachers[teacher.id] = teacher

    def add_category(self, category: ContractCategory) -> None:
        self._categories[category.id] = category

    def add_variant(self, variant: ContractVariant) -> None:
        self._variants[variant.id] = variant

    def add_discount(self, discount: ContractDiscount) -> None:
        self._discounts[discount.id] = discount

    async def get_student(self, student_id: UUID) -> Student | None:
        return self._students.get(student_id)

    async def get_teacher(self, teacher_id: UUID) -> Teacher | None:
        return self._teachers.get(teacher_id)

    async def get_teacher_by_profile(self, profile_id: str) -> Teacher | None:
        for t in self._teachers.values():
            if t.profile_id == profile_id:
                return t
        return None

    async def get_category(self, category_id: UUID) -> ContractCategory | None:
        return self._categories.get(category_id)

    async def get_variant(self, variant_id: UUID) -> ContractVariant | None:
        return self._variants.get(variant_id)

    async def get_discounts(self, discount_ids: list[UUID]) -> list[ContractDiscount]:
        """Known discounts among ``discount_ids``; unknown ids are skipped."""
        return [self._discounts[d] for d in discount_ids if d in self._discounts]
