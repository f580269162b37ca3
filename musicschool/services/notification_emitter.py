"""Creates the one "contract fulfilled" notification per contract.

Dedup is a read-then-insert on (contract_id, type).  There is no unique
constraint behind it, so two transactions that both pass the read can
still insert twice; callers serialize on the contract lock, which closes
that window for everything going through this service.

Created rows always have teacher_id=None: the notification list only
shows such rows to admins.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

from musicschool.core.config import SETTINGS
from musicschool.core.errors import NotificationDeliveryError
from musicschool.core.metrics import CONTRACT_NOTIFICATIONS
from musicschool.models.contract import Contract
from musicschool.models.notification import CONTRACT_FULFILLED, Notification
from musicschool.repos.store import ContractStore
from musicschool.services.completion import CompletionSummary

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class FulfilledContext:
    """Everything the message needs, resolved before rendering.

    None in a name field means "could not be resolved"; rendering
    substitutes the locale's fallback.
    """

    contract_id: UUID
    student_id: UUID | None
    student_name: str | None
    teacher_name: str | None
    contract_type: str
    variant_name: str | None
    summary: CompletionSummary
    completed_at: int


@dataclass(frozen=True, slots=True)
class EmitResult:
    created: bool
    notification: Notification | None = None


@dataclass(frozen=True, slots=True)
class _Template:
    title: str
    body: str
    excluded: str
    unknown_student: str
    unknown_teacher: str
    contract: str
    timestamp_format: str
    type_names: dict[str, str]


_TEMPLATES: dict[str, _Template] = {
    "en": _Template(
        title="Contract fulfilled",
        body=(
            "Contract fulfilled: {student} has completed the {contract_type} "
            "({completed} of {available} lessons{excluded}). Teacher: {teacher}. "
            "Completed on: {completed_at}. [Download PDF]({pdf_link})"
        ),
        excluded=", {count} excluded",
        unknown_student="unknown student",
        unknown_teacher="unknown teacher",
        contract="contract",
        timestamp_format="%Y-%m-%d %H:%M UTC",
        type_names={
            "ten_class_card": "10-lesson card",
            "half_year": "half-year contract",
            "monthly": "monthly contract",
            "workshop": "workshop",
        },
    ),
    "de": _Template(
        title="Vertrag abgeschlossen",
        body=(
            "Vertrag abgeschlossen: {student} hat den {contract_type} erfolgreich "
            "abgeschlossen ({completed} von {available} Stunden{excluded}). "
            "Lehrer: {teacher}. Abgeschlossen am: {completed_at}. "
            "[PDF herunterladen]({pdf_link})"
        ),
        excluded=" abgeschlossen, {count} ausgeschlossen",
        unknown_student="Unbekannter Schüler",
        unknown_teacher="Unbekannter Lehrer",
        contract="Vertrag",
        timestamp_format="%d.%m.%Y %H:%M",
        type_names={
            "ten_class_card": "10er Karte",
            "half_year": "Halbjahresvertrag",
        },
    ),
}

DEFAULT_LOCALE = "en"


def pdf_link(contract_id: UUID) -> str:
    return f"/contracts/{contract_id}/pdf"


def render_fulfilled(context: FulfilledContext, locale: str = DEFAULT_LOCALE) -> tuple[str, str]:
    """Return (title, message) for ``context`` in ``locale``."""
    t = _TEMPLATES.get(locale, _TEMPLATES[DEFAULT_LOCALE])
    summary = context.summary

    contract_type = (
        context.variant_name
        or t.type_names.get(context.contract_type)
        or context.contract_type
        or t.contract
    )
    excluded = t.excluded.format(count=summary.excluded) if summary.excluded > 0 else ""
    completed_at = datetime.fromtimestamp(context.completed_at, UTC).strftime(
        t.timestamp_format
    )

    message = t.body.format(
        student=context.student_name or t.unknown_student,
        contract_type=contract_type,
        completed=summary.completed,
        available=summary.available,
        excluded=excluded,
        teacher=context.teacher_name or t.unknown_teacher,
        completed_at=completed_at,
        pdf_link=pdf_link(context.contract_id),
    )
    return t.title, message


async def build_fulfilled_context(
    store: ContractStore,
    contract: Contract,
    summary: CompletionSummary,
) -> FulfilledContext:
    """Resolve display names for ``contract``.

    Teacher is the contract's own teacher, else the student's teacher.
    """
    student = await store.directory.get_student(contract.student_id)

    teacher_id = contract.teacher_id
    if teacher_id is None and student is not None:
        teacher_id = student.teacher_id
    teacher = await store.directory.get_teacher(teacher_id) if teacher_id else None

    variant = None
    if contract.contract_variant_id is not None:
        variant = await store.directory.get_variant(contract.contract_variant_id)

    return FulfilledContext(
        contract_id=contract.id,
        student_id=contract.student_id,
        student_name=student.name if student else None,
        teacher_name=teacher.name if teacher else None,
        contract_type=contract.type,
        variant_name=variant.name if variant else None,
        summary=summary,
        completed_at=contract.completed_at or contract.updated_at,
    )


async def emit_contract_fulfilled(
    store: ContractStore,
    context: FulfilledContext,
    *,
    locale: str | None = None,
) -> EmitResult:
    """Insert the fulfilled notification unless one exists for the contract.

    Raises NotificationDeliveryError when the insert fails.
    """
    if await store.notifications.exists_for_contract(
        context.contract_id, CONTRACT_FULFILLED
    ):
        CONTRACT_NOTIFICATIONS.labels(result="duplicate").inc()
        logger.info(
            "Fulfilled notification already exists, skipping",
            extra={"contract_id": str(context.contract_id)},
        )
        return EmitResult(created=False)

    title, message = render_fulfilled(context, locale or SETTINGS.notification_locale)
    notification = Notification.new(
        type=CONTRACT_FULFILLED,
        contract_id=context.contract_id,
        student_id=context.student_id,
        title=title,
        message=message,
        now=store.now(),
        teacher_id=None,
    )
    try:
        await store.notifications.add(notification)
    except Exception as exc:
        raise NotificationDeliveryError(context.contract_id, str(exc)) from exc

    CONTRACT_NOTIFICATIONS.labels(result="created").inc()
    logger.info(
        "Fulfilled notification created",
        extra={"contract_id": str(context.contract_id)},
    )
    return EmitResult(created=True, notification=notification)
