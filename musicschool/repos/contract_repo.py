from __future__ import annotations

from typing import Protocol
from uuid import UUID

from musicschool.models.contract import Contract


class ContractRepo(Protocol):
    async def get(self, contract_id: UUID) -> Contract | None: ...
    async def add(self, contract: Contract) -> None: ...
    async def save(self, contract: Contract) -> None: ...


class InMemoryContractRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, Contract] = {}
        # Number of save() calls; tests assert one write per transition
        self.write_count = 0

    async def get(self, contract_id: UUID) -> Contract | None:
        return self._by_id.get(contract_id)

    async def add(self, contract: Contract) -> None:
        if contract.id in self._by_id:
            raise ValueError("contract already exists")
        self._by_id[contract.id] = contract

    async def save(self, contract: Contract) -> None:
        """Replace the whole row in one write."""
        if contract.id not in self._by_id:
            raise KeyError("contract not found")
        self.write_count += 1
        self._by_id[contract.id] = contract
