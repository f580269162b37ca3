from __future__ import annotations

from dataclasses import replace
from typing import Protocol
from uuid import UUID

from musicschool.models.notification import Notification


class NotificationRepo(Protocol):
    async def exists_for_contract(self, contract_id: UUID, type: str) -> bool: ...
    async def add(self, notification: Notification) -> None: ...
    async def get(self, notification_id: UUID) -> Notification | None: ...
    async def list_all(self) -> list[Notification]: ...
    async def list_for_teacher(self, teacher_id: UUID) -> list[Notification]: ...
    async def mark_read(
        self, notification_id: UUID, now: int
    ) -> Notification | None: ...


class InMemoryNotificationRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, Notification] = {}

    async def exists_for_contract(self, contract_id: UUID, type: str) -> bool:
        return any(
            n.contract_id == contract_id and n.type == type
            for n in self._by_id.values()
        )

    async def add(self, notification: Notification) -> None:
        self._by_id[notification.id] = notification

    async def get(self, notification_id: UUID) -> Notification | None:
        return self._by_id.get(notification_id)

    async def list_all(self) -> list[Notification]:
        return sorted(self._by_id.values(), key=lambda n: n.created_at, reverse=True)

    async def list_for_teacher(self, teacher_id: UUID) -> list[Notification]:
        return [n for n in await self.list_all() if n.teacher_id == teacher_id]

    async def mark_read(self, notification_id: UUID, now: int) -> Notification | None:
        n = self._by_id.get(notification_id)
        if n is None:
            return None

        updated = replace(n, is_read=True, updated_at=now)
        self._by_id[notification_id] = updated
        return updated
