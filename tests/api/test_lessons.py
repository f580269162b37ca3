from __future__ import annotations

import uuid

from fastapi.testclient import TestClient

from musicschool.repos.store import ContractStore
from tests.conftest import (
    add_student,
    add_teacher,
    auth,
    mint_token,
    seed_contract,
    set_lessons,
)

TEACHER_PROFILE = "teacher-profile"


def _lesson_ids(client: TestClient, token: str, contract_id) -> list[str]:
    resp = client.get(f"/v1/contracts/{contract_id}/lessons", headers=auth(token))
    assert resp.status_code == 200, resp.text
    return [l["id"] for l in resp.json()]


def test_patch_date_refreshes_attendance(
    client: TestClient, store: ContractStore, admin_token: str
) -> None:
    contract = seed_contract(store, total_lessons=4)
    first, *_ = _lesson_ids(client, admin_token, contract.id)

    resp = client.patch(
        f"/v1/lessons/{first}", json={"date": "2026-02-02"}, headers=auth(admin_token)
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["lesson"]["date"] == "2026-02-02"
    assert body["contract_status"] == "active"
    assert body["attendance_count"] == "1/4"
    assert body["contract_completed"] is False

    contract_body = client.get(f"/v1/contracts/{contract.id}", headers=auth(admin_token)).json()
    assert contract_body["attendance_dates"] == ["2026-02-02"]


def test_patch_last_lesson_completes_contract(
    client: TestClient, store: ContractStore, admin_token: str
) -> None:
    teacher = add_teacher(store, profile_id=TEACHER_PROFILE)
    contract = seed_contract(store, total_lessons=3, teacher_id=teacher.id)
    set_lessons(store, contract.id, dated=[1, 2])
    last = _lesson_ids(client, admin_token, contract.id)[-1]
    token = mint_token(username=TEACHER_PROFILE, roles=["teacher"])

    resp = client.patch(f"/v1/lessons/{last}", json={"date": "2026-02-16"}, headers=auth(token))

    assert resp.status_code == 200
    assert resp.json()["contract_completed"] is True
    assert resp.json()["contract_status"] == "completed"
    assert resp.json()["attendance_count"] == "3/3"


def test_patch_comment_only_leaves_contract_alone(
    client: TestClient, store: ContractStore, admin_token: str
) -> None:
    contract = seed_contract(store, total_lessons=2)
    first, _ = _lesson_ids(client, admin_token, contract.id)

    resp = client.patch(
        f"/v1/lessons/{first}", json={"comment": "Bring the metronome"}, headers=auth(admin_token)
    )

    assert resp.status_code == 200
    assert resp.json()["lesson"]["comment"] == "Bring the metronome"
    assert resp.json()["contract_status"] is None
    assert resp.json()["contract_completed"] is False


def test_patch_explicit_null_contract_is_409(
    client: TestClient, store: ContractStore, admin_token: str
) -> None:
    contract = seed_contract(store, total_lessons=2)
    first, _ = _lesson_ids(client, admin_token, contract.id)

    resp = client.patch(
        f"/v1/lessons/{first}", json={"contract_id": None}, headers=auth(admin_token)
    )

    assert resp.status_code == 409
    assert resp.json()["code"] == "integrity_violation"


def test_patch_null_is_available_is_422(
    client: TestClient, store: ContractStore, admin_token: str
) -> None:
    contract = seed_contract(store, total_lessons=2)
    first, _ = _lesson_ids(client, admin_token, contract.id)

    resp = client.patch(
        f"/v1/lessons/{first}", json={"is_available": None}, headers=auth(admin_token)
    )

    assert resp.status_code == 422
    assert resp.json()["code"] == "validation_error"


def test_patch_out_of_range_number_is_422(
    client: TestClient, store: ContractStore, admin_token: str
) -> None:
    contract = seed_contract(store, total_lessons=2)
    first, _ = _lesson_ids(client, admin_token, contract.id)

    resp = client.patch(
        f"/v1/lessons/{first}", json={"lesson_number": 3}, headers=auth(admin_token)
    )

    assert resp.status_code == 422
    assert "outside 1..2" in resp.json()["detail"]


def test_patch_malformed_date_is_422(
    client: TestClient, store: ContractStore, admin_token: str
) -> None:
    contract = seed_contract(store, total_lessons=2)
    first, _ = _lesson_ids(client, admin_token, contract.id)

    resp = client.patch(
        f"/v1/lessons/{first}", json={"date": "next tuesday"}, headers=auth(admin_token)
    )

    assert resp.status_code == 422


def test_patch_unknown_lesson_is_404(client: TestClient, admin_token: str) -> None:
    resp = client.patch(
        f"/v1/lessons/{uuid.uuid4()}", json={"date": "2026-02-02"}, headers=auth(admin_token)
    )
    assert resp.status_code == 404


def test_patch_by_unassigned_teacher_is_403(
    client: TestClient, store: ContractStore, admin_token: str
) -> None:
    add_teacher(store, profile_id=TEACHER_PROFILE)
    contract = seed_contract(store, total_lessons=2, teacher_id=add_teacher(store, "Other").id)
    first, _ = _lesson_ids(client, admin_token, contract.id)
    token = mint_token(username=TEACHER_PROFILE, roles=["teacher"])

    resp = client.patch(f"/v1/lessons/{first}", json={"date": "2026-02-02"}, headers=auth(token))

    assert resp.status_code == 403


def test_batch_reports_partial_success(
    client: TestClient, store: ContractStore, admin_token: str
) -> None:
    contract = seed_contract(store, total_lessons=3)
    ids = _lesson_ids(client, admin_token, contract.id)
    missing = str(uuid.uuid4())

    resp = client.post(
        "/v1/lessons/batch",
        json={
            "updates": [
                {"id": ids[0], "date": "2026-03-02"},
                {"id": missing, "date": "2026-03-09"},
                {"id": ids[1], "date": "2026-03-16"},
            ]
        },
        headers=auth(admin_token),
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["success_count"] == 2
    assert body["failures"] == [
        {"lesson_id": missing, "reason": f"lesson {missing} not found", "code": "not_found"}
    ]
    assert body["processed_contracts"] == [str(contract.id)]
    assert body["completed_contracts"] == []


def test_batch_completing_contract(
    client: TestClient, store: ContractStore, admin_token: str
) -> None:
    student = add_student(store, "Ida Weiss")
    contract = seed_contract(store, total_lessons=2, student=student)
    ids = _lesson_ids(client, admin_token, contract.id)

    resp = client.post(
        "/v1/lessons/batch",
        json={"updates": [{"id": ids[0], "date": "2026-03-02"}, {"id": ids[1], "is_available": False}]},
        headers=auth(admin_token),
    )

    assert resp.json()["completed_contracts"] == [str(contract.id)]
    notes = client.get("/v1/notifications", headers=auth(admin_token)).json()
    assert len(notes) == 1
    assert "(1 of 1 lessons, 1 excluded)" in notes[0]["message"]


def test_batch_rejects_missing_id(client: TestClient, admin_token: str) -> None:
    resp = client.post(
        "/v1/lessons/batch",
        json={"updates": [{"date": "2026-03-02"}]},
        headers=auth(admin_token),
    )
    assert resp.status_code == 422
