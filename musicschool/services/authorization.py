"""Capability checks for contract operations.

All permission decisions for the service layer live here.  Routers only
authenticate (bearer token -> Principal); services call ensure_* with the
acting principal before touching any record.

    MANAGE_CONTRACTS          admin
    TRACK_LESSONS             admin, or the teacher assigned to the contract
    READ_ADMIN_NOTIFICATIONS  admin
"""

from __future__ import annotations

import enum
import logging
from uuid import UUID

from musicschool.core.errors import PermissionDeniedError
from musicschool.models.contract import Contract
from musicschool.models.people import Teacher
from musicschool.models.principal import Principal

logger = logging.getLogger(__name__)


class Capability(enum.Enum):
    MANAGE_CONTRACTS = "manage_contracts"
    TRACK_LESSONS = "track_lessons"
    READ_ADMIN_NOTIFICATIONS = "read_admin_notifications"


def has_capability(principal: Principal, capability: Capability) -> bool:
    if principal.is_admin():
        return True
    # Teachers hold TRACK_LESSONS in general; ensure_can_track narrows it
    # to their own contracts.
    return capability is Capability.TRACK_LESSONS and principal.is_teacher()


def ensure_capability(principal: Principal, capability: Capability) -> None:
    if not has_capability(principal, capability):
        logger.warning(
            "Access denied: user=%s lacks capability=%s",
            principal.user_id,
            capability.value,
        )
        raise PermissionDeniedError(
            f"user {principal.user_id} lacks capability {capability.value}"
        )


def ensure_can_track(
    principal: Principal,
    contract: Contract,
    acting_teacher: Teacher | None,
    *,
    fallback_teacher_id: UUID | None = None,
) -> None:
    """Allow admins, and the teacher assigned to ``contract``.

    The assigned teacher is contract.teacher_id, or ``fallback_teacher_id``
    (the student's teacher) when the contract names none.
    """
    ensure_capability(principal, Capability.TRACK_LESSONS)
    if principal.is_admin():
        return

    assigned = contract.teacher_id or fallback_teacher_id
    if acting_teacher is None or assigned is None or acting_teacher.id != assigned:
        logger.warning(
            "Access denied: user=%s is not the teacher of contract=%s",
            principal.user_id,
            contract.id,
        )
        raise PermissionDeniedError(
            f"user {principal.user_id} is not the teacher of contract {contract.id}"
        )
