from __future__ import annotations

import asyncio
import sys
from dataclasses import replace
from datetime import date, timedelta
from pathlib import Path
from uuid import UUID

import pytest
from fastapi.testclient import TestClient

# Ensure repo root is on sys.path so `import musicschool` works under pytest.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from musicschool.api import dependencies  # noqa: E402
from musicschool.main import app  # noqa: E402
from musicschool.models.contract import Contract  # noqa: E402
from musicschool.models.lesson import Lesson  # noqa: E402
from musicschool.models.people import Student, Teacher  # noqa: E402
from musicschool.models.principal import Principal  # noqa: E402
from musicschool.repos.notification_repo import InMemoryNotificationRepo  # noqa: E402
from musicschool.repos.store import ContractStore, in_memory_store  # noqa: E402
from musicschool.services import token_service  # noqa: E402
from musicschool.services.cache import cache_service  # noqa: E402
from musicschool.services.contract_service import (  # noqa: E402
    ContractDraft,
    save_contract,
)

ADMIN = Principal(user_id="admin-profile", roles=frozenset({"admin"}))
FIRST_LESSON_DAY = date(2026, 1, 5)


@pytest.fixture(autouse=True)
def store() -> ContractStore:
    """Fresh in-memory store per test, also served to the HTTP app."""
    fresh = in_memory_store(lock_timeout=1.0)
    dependencies.memory_store = fresh
    return fresh


@pytest.fixture(autouse=True)
def reset_cache() -> None:
    """Clear the progress cache between tests."""
    if hasattr(cache_service, "_store"):
        cache_service._store.clear()  # type: ignore[union-attr]


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


def mint_token(username: str = "test-user", roles: list[str] | None = None) -> str:
    """Create a valid ES256 JWT for testing."""
    return token_service.create_access_token(sub=username, roles=roles)


def auth(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_token() -> str:
    return mint_token(username=ADMIN.user_id, roles=["admin"])


# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def add_teacher(
    store: ContractStore, name: str = "Clara Wieck", profile_id: str | None = None
) -> Teacher:
    teacher = Teacher.new(name=name, profile_id=profile_id)
    store.directory.add_teacher(teacher)  # type: ignore[attr-defined]
    return teacher


def add_student(
    store: ContractStore, name: str = "Felix Brandt", teacher_id: UUID | None = None
) -> Student:
    student = Student.new(name=name, teacher_id=teacher_id)
    store.directory.add_student(student)  # type: ignore[attr-defined]
    return student


def seed_contract(
    store: ContractStore,
    *,
    total_lessons: int = 10,
    type: str = "ten_class_card",
    student: Student | None = None,
    teacher_id: UUID | None = None,
) -> Contract:
    """Create an active contract with lessons 1..total_lessons via save_contract."""
    if student is None:
        student = add_student(store)
    draft = ContractDraft(
        student_id=student.id,
        type=type,
        teacher_id=teacher_id,
        total_lessons=total_lessons,
    )
    return asyncio.run(save_contract(store, ADMIN, draft)).contract


def lessons_of(store: ContractStore, contract_id: UUID) -> list[Lesson]:
    return asyncio.run(store.lessons.list_by_contract(contract_id))


def contract_of(store: ContractStore, contract_id: UUID) -> Contract:
    contract = asyncio.run(store.contracts.get(contract_id))
    assert contract is not None
    return contract


def set_lessons(
    store: ContractStore,
    contract_id: UUID,
    *,
    dated: range | list[int] = (),
    excluded: range | list[int] = (),
) -> None:
    """Write lesson state straight into the repo, bypassing the ledger."""

    async def _write() -> None:
        for lesson in await store.lessons.list_by_contract(contract_id):
            changes: dict = {}
            if lesson.lesson_number in dated:
                changes["date"] = FIRST_LESSON_DAY + timedelta(
                    days=7 * (lesson.lesson_number - 1)
                )
            if lesson.lesson_number in excluded:
                changes["is_available"] = False
            if changes:
                await store.lessons.save(replace(lesson, **changes))

    asyncio.run(_write())


def lesson_number(store: ContractStore, contract_id: UUID, number: int) -> Lesson:
    for lesson in lessons_of(store, contract_id):
        if lesson.lesson_number == number:
            return lesson
    raise AssertionError(f"no lesson {number} in contract {contract_id}")


class FailingNotificationRepo(InMemoryNotificationRepo):
    """Notification repo whose inserts always fail."""

    async def add(self, notification) -> None:
        raise ConnectionError("database went away")
