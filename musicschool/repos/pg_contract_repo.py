"""PostgreSQL implementation of ContractRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from musicschool.db.tables import ContractRow
from musicschool.models.contract import Contract


class PgContractRepo:
    """Satisfies the ContractRepo Protocol using PostgreSQL via SQLAlchemy."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, contract_id: UUID) -> Contract | None:
        stmt = select(ContractRow).where(ContractRow.id == contract_id)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_contract(row)

    async def add(self, contract: Contract) -> None:
        self._session.add(ContractRow(id=contract.id, **_columns(contract)))
        await self._session.flush()

    async def save(self, contract: Contract) -> None:
        """Single UPDATE carrying every column, status and attendance included."""
        stmt = (
            update(ContractRow)
            .where(ContractRow.id == contract.id)
            .values(**_columns(contract))
        )
        result = await self._session.execute(stmt)
        if result.rowcount == 0:
            raise KeyError("contract not found")


def _columns(contract: Contract) -> dict:
    return {
        "student_id": contract.student_id,
        "teacher_id": contract.teacher_id,
        "contract_variant_id": contract.contract_variant_id,
        "type": contract.type,
        "status": contract.status,
        "total_lessons": contract.total_lessons,
        "attendance_count": contract.attendance_count,
        "attendance_dates": list(contract.attendance_dates),
        "discount_ids": list(contract.discount_ids),
        "custom_discount_percent": contract.custom_discount_percent,
        "final_price": contract.final_price,
        "payment_type": contract.payment_type,
        "created_at": contract.created_at,
        "updated_at": contract.updated_at,
        "completed_at": contract.completed_at,
        "version": contract.version,
    }


def _row_to_contract(row: ContractRow) -> Contract:
    return Contract(
        id=row.id,
        student_id=row.student_id,
        type=row.type,
        total_lessons=row.total_lessons,
        created_at=row.created_at,
        updated_at=row.updated_at,
        status=row.status,
        teacher_id=row.teacher_id,
        contract_variant_id=row.contract_variant_id,
        attendance_count=row.attendance_count,
        attendance_dates=tuple(row.attendance_dates or ()),
        discount_ids=tuple(row.discount_ids or ()),
        custom_discount_percent=row.custom_discount_percent,
        final_price=row.final_price,
        payment_type=row.payment_type,
        completed_at=row.completed_at,
        version=row.version,
    )
