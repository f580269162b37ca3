"""PostgreSQL implementation of NotificationRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from musicschool.db.tables import NotificationRow
from musicschool.models.notification import Notification


class PgNotificationRepo:
    """Satisfies the NotificationRepo Protocol using PostgreSQL via SQLAlchemy."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def exists_for_contract(self, contract_id: UUID, type: str) -> bool:
        stmt = select(func.count()).where(
            NotificationRow.contract_id == contract_id,
            NotificationRow.type == type,
        )
        count = (await self._session.execute(stmt)).scalar_one()
        return count > 0

    async def add(self, notification: Notification) -> None:
        # SAVEPOINT: a failed insert rolls back to here and leaves the
        # contract transition in the outer transaction intact.
        async with self._session.begin_nested():
            self._session.add(
                NotificationRow(
                    id=notification.id,
                    type=notification.type,
                    contract_id=notification.contract_id,
                    student_id=notification.student_id,
                    teacher_id=notification.teacher_id,
                    title=notification.title,
                    message=notification.message,
                    is_read=notification.is_read,
                    created_at=notification.created_at,
                    updated_at=notification.updated_at,
                )
            )

    async def get(self, notification_id: UUID) -> Notification | None:
        stmt = select(NotificationRow).where(NotificationRow.id == notification_id)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_notification(row)

    async def list_all(self) -> list[Notification]:
        stmt = select(NotificationRow).order_by(NotificationRow.created_at.desc())
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_notification(r) for r in rows]

    async def list_for_teacher(self, teacher_id: UUID) -> list[Notification]:
        stmt = (
            select(NotificationRow)
            .where(NotificationRow.teacher_id == teacher_id)
            .order_by(NotificationRow.created_at.desc())
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_notification(r) for r in rows]

    async def mark_read(self, notification_id: UUID, now: int) -> Notification | None:
        stmt = (
            update(NotificationRow)
            .where(NotificationRow.id == notification_id)
            .values(is_read=True, updated_at=now)
        )
        result = await self._session.execute(stmt)
        if result.rowcount == 0:
            return None
        return await self.get(notification_id)


def _row_to_notification(row: NotificationRow) -> Notification:
    return Notification(
        id=row.id,
        type=row.type,
        contract_id=row.contract_id,
        student_id=row.student_id,
        teacher_id=row.teacher_id,
        title=row.title,
        message=row.message,
        created_at=row.created_at,
        updated_at=row.updated_at,
        is_read=row.is_read,
    )
