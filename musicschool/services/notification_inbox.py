"""Reading and acknowledging notifications.

Visibility is decided by the row's teacher_id: admins see every row,
a teacher sees only rows addressed to their own teacher record.  Rows
with teacher_id=None (all contract_fulfilled rows) are therefore
admin-only.
"""

from __future__ import annotations

import logging
from uuid import UUID

from musicschool.core.errors import NotFoundError, PermissionDeniedError
from musicschool.models.notification import Notification
from musicschool.models.principal import Principal
from musicschool.repos.store import ContractStore
from musicschool.services.authorization import Capability, has_capability

logger = logging.getLogger(__name__)


async def list_notifications(store: ContractStore, actor: Principal) -> list[Notification]:
    if has_capability(actor, Capability.READ_ADMIN_NOTIFICATIONS):
        return await store.notifications.list_all()
    if not actor.is_teacher():
        raise PermissionDeniedError(f"user {actor.user_id} cannot read notifications")
    teacher = await store.directory.get_teacher_by_profile(actor.user_id)
    if teacher is None:
        return []
    return await store.notifications.list_for_teacher(teacher.id)


async def mark_notification_read(
    store: ContractStore,
    actor: Principal,
    notification_id: UUID,
) -> Notification:
    notification = await store.notifications.get(notification_id)
    if notification is None:
        raise NotFoundError("notification", notification_id)

    if not has_capability(actor, Capability.READ_ADMIN_NOTIFICATIONS):
        teacher = await store.directory.get_teacher_by_profile(actor.user_id)
        if teacher is None or notification.teacher_id != teacher.id:
            # Same answer as a missing row; admin-only rows stay invisible
            raise NotFoundError("notification", notification_id)

    updated = await store.notifications.mark_read(notification_id, store.now())
    if updated is None:
        raise NotFoundError("notification", notification_id)
    logger.debug("Notification %s marked read by %s", notification_id, actor.user_id)
    return updated
