from __future__ import annotations

from typing import Protocol
from uuid import UUID

from musicschool.models.contract import ContractOperation


class OperationRepo(Protocol):
    async def add(self, operation: ContractOperation) -> None: ...
    async def list_by_contract(self, contract_id: UUID) -> list[ContractOperation]: ...


class InMemoryOperationRepo:
    def __init__(self) -> None:
        self._ops: list[ContractOperation] = []

    async def add(self, operation: ContractOperation) -> None:
        self._ops.append(operation)

    async def list_by_contract(self, contract_id: UUID) -> list[ContractOperation]:
        return [op for op in self._ops if op.contract_id == contract_id]
