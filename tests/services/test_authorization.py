from __future__ import annotations

from dataclasses import replace
from uuid import uuid4

import pytest

from musicschool.core.errors import PermissionDeniedError
from musicschool.models.contract import Contract
from musicschool.models.people import Teacher
from musicschool.models.principal import Principal
from musicschool.services.authorization import (
    Capability,
    ensure_can_track,
    ensure_capability,
    has_capability,
)

ADMIN = Principal(user_id="admin", roles=frozenset({"admin"}))
TEACHER = Principal(user_id="teacher-profile", roles=frozenset({"teacher"}))
STUDENT = Principal(user_id="student-profile", roles=frozenset({"student"}))


def _contract(teacher_id=None) -> Contract:
    c = Contract.new(student_id=uuid4(), type="ten_class_card", total_lessons=10, now=0)
    if teacher_id is None:
        return c
    return replace(c, teacher_id=teacher_id)


@pytest.mark.parametrize("capability", list(Capability))
def test_admin_holds_every_capability(capability: Capability) -> None:
    assert has_capability(ADMIN, capability)


def test_teacher_only_tracks_lessons() -> None:
    assert has_capability(TEACHER, Capability.TRACK_LESSONS)
    assert not has_capability(TEACHER, Capability.MANAGE_CONTRACTS)
    assert not has_capability(TEACHER, Capability.READ_ADMIN_NOTIFICATIONS)


def test_other_roles_hold_nothing() -> None:
    assert not any(has_capability(STUDENT, c) for c in Capability)


def test_ensure_capability_raises_permission_denied() -> None:
    with pytest.raises(PermissionDeniedError, match="manage_contracts"):
        ensure_capability(TEACHER, Capability.MANAGE_CONTRACTS)


def test_admin_tracks_any_contract() -> None:
    ensure_can_track(ADMIN, _contract(), None)


def test_assigned_teacher_may_track() -> None:
    teacher = Teacher.new(name="Clara", profile_id=TEACHER.user_id)
    ensure_can_track(TEACHER, _contract(teacher.id), teacher)


def test_other_teacher_may_not_track() -> None:
    teacher = Teacher.new(name="Clara", profile_id=TEACHER.user_id)
    with pytest.raises(PermissionDeniedError, match="is not the teacher"):
        ensure_can_track(TEACHER, _contract(uuid4()), teacher)


def test_teacher_without_record_may_not_track() -> None:
    with pytest.raises(PermissionDeniedError):
        ensure_can_track(TEACHER, _contract(uuid4()), None)


def test_students_teacher_is_the_fallback() -> None:
    teacher = Teacher.new(name="Clara", profile_id=TEACHER.user_id)
    ensure_can_track(TEACHER, _contract(), teacher, fallback_teacher_id=teacher.id)

    with pytest.raises(PermissionDeniedError):
        ensure_can_track(TEACHER, _contract(), teacher, fallback_teacher_id=None)


def test_student_role_may_not_track() -> None:
    with pytest.raises(PermissionDeniedError, match="track_lessons"):
        ensure_can_track(STUDENT, _contract(), None)
