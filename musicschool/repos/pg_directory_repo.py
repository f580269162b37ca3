"""PostgreSQL implementation of DirectoryRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from musicschool.db.tables import (
    ContractCategoryRow,
    ContractDiscountRow,
    ContractVariantRow,
    StudentRow,
    TeacherRow,
)
from musicschool.models.catalog import (
    ContractCategory,
    ContractDiscount,
    ContractVariant,
)
from musicschool.models.people import Student, Teacher


class PgDirectoryRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_student(self, student_id: UUID) -> Student | None:
        row = await self._session.get(StudentRow, student_id)
        if row is None:
            return None
        return Student(id=row.id, name=row.name, teacher_id=row.teacher_id)

    async def get_teacher(self, teacher_id: UUID) -> Teacher | None:
        row = await self._session.get(TeacherRow, teacher_id)
        if row is None:
            return None
        return _row_to_teacher(row)

    async def get_teacher_by_profile(self, profile_id: str) -> Teacher | None:
        stmt = select(TeacherRow).where(TeacherRow.profile_id == profile_id)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_teacher(row)

    async def get_category(self, category_id: UUID) -> ContractCategory | None:
        row = await self._session.get(ContractCategoryRow, category_id)
        if row is None:
            return None
        return ContractCategory(id=row.id, name=row.name, display_name=row.display_name)

    async def get_variant(self, variant_id: UUID) -> ContractVariant | None:
        row = await self._session.get(ContractVariantRow, variant_id)
        if row is None:
            return None
        return ContractVariant(
            id=row.id,
            category_id=row.category_id,
            name=row.name,
            total_lessons=row.total_lessons,
            monthly_price=row.monthly_price,
            one_time_price=row.one_time_price,
            duration_months=row.duration_months,
            is_active=row.is_active,
        )

    async def get_discounts(self, discount_ids: list[UUID]) -> list[ContractDiscount]:
        if not discount_ids:
            return []
        stmt = select(ContractDiscountRow).where(ContractDiscountRow.id.in_(discount_ids))
        rows = (await self._session.execute(stmt)).scalars().all()
        return [
            ContractDiscount(
                id=r.id,
                name=r.name,
                discount_percent=r.discount_percent,
                is_active=r.is_active,
            )
            for r in rows
        ]


def _row_to_teacher(row: TeacherRow) -> Teacher:
    return Teacher(id=row.id, name=row.name, profile_id=row.profile_id)
