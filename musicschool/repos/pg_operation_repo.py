"""PostgreSQL implementation of OperationRepo (contract_operation_log)."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from musicschool.db.tables import ContractOperationRow
from musicschool.models.contract import ContractOperation


class PgOperationRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, operation: ContractOperation) -> None:
        self._session.add(
            ContractOperationRow(
                id=operation.id,
                contract_id=operation.contract_id,
                operation_type=operation.operation_type,
                status=operation.status,
                details=operation.details,
                created_at=operation.created_at,
                created_by=operation.created_by,
            )
        )
        await self._session.flush()

    async def list_by_contract(self, contract_id: UUID) -> list[ContractOperation]:
        stmt = (
            select(ContractOperationRow)
            .where(ContractOperationRow.contract_id == contract_id)
            .order_by(ContractOperationRow.created_at)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [
            ContractOperation(
                id=r.id,
                contract_id=r.contract_id,
                operation_type=r.operation_type,
                status=r.status,
                created_at=r.created_at,
                created_by=r.created_by,
                details=r.details,
            )
            for r in rows
        ]
