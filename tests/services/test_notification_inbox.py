from __future__ import annotations

import asyncio
from uuid import uuid4

import pytest

from musicschool.core.errors import NotFoundError, PermissionDeniedError
from musicschool.models.notification import Notification
from musicschool.models.principal import Principal
from musicschool.repos.store import ContractStore
from musicschool.services.notification_inbox import (
    list_notifications,
    mark_notification_read,
)
from tests.conftest import ADMIN, add_teacher

TEACHER = Principal(user_id="teacher-profile", roles=frozenset({"teacher"}))
STUDENT = Principal(user_id="student-profile", roles=frozenset({"student"}))


def _add(store: ContractStore, *, teacher_id=None, created_at: int = 1_700_000_000) -> Notification:
    n = Notification.new(
        type="contract_fulfilled",
        contract_id=uuid4(),
        student_id=uuid4(),
        title="Contract fulfilled",
        message="...",
        now=created_at,
        teacher_id=teacher_id,
    )
    asyncio.run(store.notifications.add(n))
    return n


def test_admin_sees_everything_newest_first(store: ContractStore) -> None:
    teacher = add_teacher(store, profile_id=TEACHER.user_id)
    older = _add(store, created_at=100)
    newer = _add(store, teacher_id=teacher.id, created_at=200)

    rows = asyncio.run(list_notifications(store, ADMIN))

    assert [n.id for n in rows] == [newer.id, older.id]


def test_teacher_sees_only_own_rows(store: ContractStore) -> None:
    teacher = add_teacher(store, profile_id=TEACHER.user_id)
    own = _add(store, teacher_id=teacher.id)
    _add(store)  # admin-only
    _add(store, teacher_id=uuid4())

    rows = asyncio.run(list_notifications(store, TEACHER))

    assert [n.id for n in rows] == [own.id]


def test_teacher_without_record_sees_nothing(store: ContractStore) -> None:
    _add(store)
    assert asyncio.run(list_notifications(store, TEACHER)) == []


def test_other_roles_may_not_list(store: ContractStore) -> None:
    with pytest.raises(PermissionDeniedError):
        asyncio.run(list_notifications(store, STUDENT))


def test_admin_marks_read(store: ContractStore) -> None:
    n = _add(store, created_at=100)

    updated = asyncio.run(mark_notification_read(store, ADMIN, n.id))

    assert updated.is_read is True
    assert updated.updated_at >= updated.created_at
    assert asyncio.run(store.notifications.get(n.id)).is_read is True


def test_teacher_marks_own_row_read(store: ContractStore) -> None:
    teacher = add_teacher(store, profile_id=TEACHER.user_id)
    n = _add(store, teacher_id=teacher.id)
    assert asyncio.run(mark_notification_read(store, TEACHER, n.id)).is_read is True


def test_teacher_cannot_touch_admin_only_row(store: ContractStore) -> None:
    add_teacher(store, profile_id=TEACHER.user_id)
    n = _add(store)

    with pytest.raises(NotFoundError):
        asyncio.run(mark_notification_read(store, TEACHER, n.id))

    assert asyncio.run(store.notifications.get(n.id)).is_read is False


def test_mark_unknown_notification(store: ContractStore) -> None:
    with pytest.raises(NotFoundError, match="notification .* not found"):
        asyncio.run(mark_notification_read(store, ADMIN, uuid4()))
