"""PostgreSQL implementation of LessonRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from musicschool.db.tables import LessonRow
from musicschool.models.lesson import Lesson


class PgLessonRepo:
    """Satisfies the LessonRepo Protocol using PostgreSQL via SQLAlchemy.

    save() always writes contract_id from the Lesson record, so a partial
    update can never leave the column out (and null it).
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, lesson_id: UUID) -> Lesson | None:
        stmt = select(LessonRow).where(LessonRow.id == lesson_id)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_lesson(row)

    async def list_by_contract(self, contract_id: UUID) -> list[Lesson]:
        stmt = (
            select(LessonRow)
            .where(LessonRow.contract_id == contract_id)
            .order_by(LessonRow.lesson_number)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_lesson(r) for r in rows]

    async def add_many(self, lessons: list[Lesson]) -> None:
        self._session.add_all(
            [
                LessonRow(
                    id=l.id,
                    contract_id=l.contract_id,
                    lesson_number=l.lesson_number,
                    date=l.date,
                    comment=l.comment,
                    is_available=l.is_available,
                )
                for l in lessons
            ]
        )
        await self._session.flush()

    async def save(self, lesson: Lesson) -> None:
        stmt = (
            update(LessonRow)
            .where(LessonRow.id == lesson.id)
            .values(
                contract_id=lesson.contract_id,
                lesson_number=lesson.lesson_number,
                date=lesson.date,
                comment=lesson.comment,
                is_available=lesson.is_available,
            )
        )
        result = await self._session.execute(stmt)
        if result.rowcount == 0:
            raise KeyError("lesson not found")

    async def delete_many(self, lesson_ids: list[UUID]) -> None:
        if not lesson_ids:
            return
        await self._session.execute(delete(LessonRow).where(LessonRow.id.in_(lesson_ids)))


def _row_to_lesson(row: LessonRow) -> Lesson:
    return Lesson(
        id=row.id,
        contract_id=row.contract_id,
        lesson_number=row.lesson_number,
        date=row.date,
        comment=row.comment,
        is_available=row.is_available,
    )
