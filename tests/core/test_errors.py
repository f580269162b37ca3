from __future__ import annotations

import asyncio
import json
from uuid import uuid4

import pytest
from starlette.requests import Request

from musicschool.api.errors import contract_service_error_handler, status_for
from musicschool.core.errors import (
    ContractBusyError,
    ContractServiceError,
    IntegrityViolationError,
    LessonValidationError,
    NotFoundError,
    NotificationDeliveryError,
    PermissionDeniedError,
    ValidationError,
)


def test_lesson_validation_error_is_a_validation_error() -> None:
    exc = LessonValidationError("lesson_number 11 is outside 1..10", field="lesson_number")
    assert isinstance(exc, ValidationError)
    assert exc.code == "validation_error"
    assert exc.field == "lesson_number"
    assert exc.reason == str(exc)


def test_not_found_keeps_entity_and_id() -> None:
    lesson_id = uuid4()
    exc = NotFoundError("lesson", lesson_id)
    assert exc.entity == "lesson"
    assert exc.entity_id == lesson_id
    assert exc.reason == f"lesson {lesson_id} not found"


def test_busy_error_names_contract_and_asks_for_retry() -> None:
    contract_id = uuid4()
    exc = ContractBusyError(contract_id)
    assert exc.contract_id == contract_id
    assert str(contract_id) in exc.reason
    assert "retry" in exc.reason


def test_notification_delivery_error_carries_cause() -> None:
    contract_id = uuid4()
    exc = NotificationDeliveryError(contract_id, "connection reset")
    assert exc.code == "notification_delivery_failure"
    assert exc.reason.endswith("connection reset")


@pytest.mark.parametrize(
    ("exc", "expected"),
    [
        (ValidationError("bad"), 422),
        (LessonValidationError("bad"), 422),
        (IntegrityViolationError("broken"), 409),
        (NotFoundError("contract", "x"), 404),
        (ContractBusyError(uuid4()), 409),
        (PermissionDeniedError("no"), 403),
        (NotificationDeliveryError(uuid4(), "down"), 500),
        (ContractServiceError("other"), 500),
    ],
)
def test_http_status_for_each_error(exc: ContractServiceError, expected: int) -> None:
    assert status_for(exc) == expected


def _request(path: str) -> Request:
    return Request(
        {"type": "http", "method": "POST", "path": path, "headers": [], "query_string": b""}
    )


def test_handler_renders_reason_and_code() -> None:
    exc = NotificationDeliveryError(uuid4(), "down")

    resp = asyncio.run(contract_service_error_handler(_request("/v1/lessons/batch"), exc))

    assert resp.status_code == 500
    assert json.loads(resp.body) == {"detail": exc.reason, "code": exc.code}
    assert "retry-after" not in resp.headers


def test_handler_adds_retry_after_for_busy() -> None:
    resp = asyncio.run(
        contract_service_error_handler(_request("/v1/contracts"), ContractBusyError(uuid4()))
    )

    assert resp.status_code == 409
    assert resp.headers["retry-after"] == "1"
