"""Maps service errors onto HTTP responses.

Body is always {"detail": <reason>, "code": <code>} so clients can show
the reason and branch on the code.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from musicschool.core.errors import (
    ContractBusyError,
    ContractServiceError,
    IntegrityViolationError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)

logger = logging.getLogger(__name__)

BUSY_RETRY_AFTER_SECONDS = 1

_STATUS_BY_ERROR: tuple[tuple[type[ContractServiceError], int], ...] = (
    (ValidationError, 422),
    (IntegrityViolationError, 409),
    (NotFoundError, 404),
    (ContractBusyError, 409),
    (PermissionDeniedError, 403),
)


def status_for(exc: ContractServiceError) -> int:
    for error_type, code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return code
    return 500


async def contract_service_error_handler(
    request: Request, exc: ContractServiceError
) -> JSONResponse:
    http_status = status_for(exc)
    headers = None
    if isinstance(exc, ContractBusyError):
        headers = {"Retry-After": str(BUSY_RETRY_AFTER_SECONDS)}

    log = logger.error if http_status >= 500 else logger.info
    log(
        "%s %s rejected: %s (%s)",
        request.method,
        request.url.path,
        exc.reason,
        exc.code,
    )
    return JSONResponse(
        status_code=http_status,
        content={"detail": exc.reason, "code": exc.code},
        headers=headers,
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(
        ContractServiceError,
        contract_service_error_handler,  # type: ignore[arg-type]
    )
