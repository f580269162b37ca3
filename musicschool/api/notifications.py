from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter
from pydantic import BaseModel

from musicschool.api.dependencies import CurrentUser, Store
from musicschool.models.notification import Notification
from musicschool.services.notification_inbox import (
    list_notifications,
    mark_notification_read,
)

router = APIRouter(prefix="/v1/notifications", tags=["notifications"])


class NotificationOut(BaseModel):
    id: str
    type: str
    contract_id: str | None
    student_id: str | None
    teacher_id: str | None
    title: str
    message: str
    is_read: bool
    created_at: int
    updated_at: int


def notification_out(n: Notification) -> NotificationOut:
    return NotificationOut(
        id=str(n.id),
        type=n.type,
        contract_id=str(n.contract_id) if n.contract_id else None,
        student_id=str(n.student_id) if n.student_id else None,
        teacher_id=str(n.teacher_id) if n.teacher_id else None,
        title=n.title,
        message=n.message,
        is_read=n.is_read,
        created_at=n.created_at,
        updated_at=n.updated_at,
    )


@router.get("", response_model=list[NotificationOut])
async def get_notifications(principal: CurrentUser, store: Store) -> list[NotificationOut]:
    """Admins see every notification, teachers only their own."""
    return [notification_out(n) for n in await list_notifications(store, principal)]


@router.post("/{notification_id}/read", response_model=NotificationOut)
async def read_notification(
    notification_id: UUID, principal: CurrentUser, store: Store
) -> NotificationOut:
    return notification_out(await mark_notification_read(store, principal, notification_id))
