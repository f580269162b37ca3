"""Typed errors raised by the contract services.

Every class carries a ``code`` class attribute (machine-readable, returned
to API clients next to the reason string) and keeps its context as
attributes rather than only inside the message.

    ContractServiceError
      +-- ValidationError            caller data breaks a documented rule
      |     +-- LessonValidationError
      +-- IntegrityViolationError    a required relationship would break
      +-- NotFoundError              referenced record does not exist
      +-- ContractBusyError          per-contract lock not acquired in time
      +-- PermissionDeniedError      actor lacks the capability
      +-- NotificationDeliveryError  notification insert failed

NotificationDeliveryError never reaches API callers: the state machine
logs and drops it once the contract transition has been written.
"""

from __future__ import annotations

from uuid import UUID


class ContractServiceError(Exception):
    """Base class; ``reason`` is the user-facing explanation."""

    code: str = "contract_service_error"

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)


class ValidationError(ContractServiceError):
    code: str = "validation_error"

    def __init__(self, reason: str, *, field: str | None = None) -> None:
        self.field = field
        super().__init__(reason)


class LessonValidationError(ValidationError):
    """A lesson update carries a value outside the allowed range or type."""


class IntegrityViolationError(ContractServiceError):
    code: str = "integrity_violation"


class NotFoundError(ContractServiceError):
    code: str = "not_found"

    def __init__(self, entity: str, entity_id: UUID | str) -> None:
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class ContractBusyError(ContractServiceError):
    """Another operation holds the contract lock; retry the whole call."""

    code: str = "busy"

    def __init__(self, contract_id: UUID) -> None:
        self.contract_id = contract_id
        super().__init__(
            f"contract {contract_id} is being modified by another operation, "
            "please retry"
        )


class PermissionDeniedError(ContractServiceError):
    code: str = "permission_denied"


class NotificationDeliveryError(ContractServiceError):
    code: str = "notification_delivery_failure"

    def __init__(self, contract_id: UUID, cause: str) -> None:
        self.contract_id = contract_id
        super().__init__(
            f"could not create completion notification for contract "
            f"{contract_id}: {cause}"
        )
