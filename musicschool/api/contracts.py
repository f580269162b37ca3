"""Contract endpoints: save, read, ledger, progress, manual completion."""

from __future__ import annotations

import datetime
import json
import logging
from dataclasses import asdict
from decimal import Decimal
from uuid import UUID

from fastapi import APIRouter, status
from pydantic import BaseModel, Field

from musicschool.api.dependencies import CurrentUser, Store
from musicschool.models.contract import Contract
from musicschool.models.lesson import Lesson
from musicschool.services.cache import PROGRESS_TTL_SECONDS, cache_service, progress_key
from musicschool.services.completion import evaluate_completion
from musicschool.services.contract_service import ContractDraft, save_contract
from musicschool.services.contract_state import complete_contract
from musicschool.services.lesson_ledger import read_contract, read_ledger

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/contracts", tags=["contracts"])


# --- Pydantic schemas ---


class ContractIn(BaseModel):
    student_id: UUID
    type: str | None = None
    teacher_id: UUID | None = None
    contract_variant_id: UUID | None = None
    total_lessons: int | None = None
    discount_ids: list[UUID] = Field(default_factory=list)
    custom_discount_percent: Decimal | None = None
    status: str | None = None


class ContractOut(BaseModel):
    id: str
    student_id: str
    teacher_id: str | None
    contract_variant_id: str | None
    type: str
    status: str
    total_lessons: int
    attendance_count: str
    attendance_dates: list[datetime.date]
    discount_ids: list[str]
    custom_discount_percent: str | None
    final_price: str | None
    payment_type: str | None
    created_at: int
    updated_at: int
    completed_at: int | None
    version: int


class SaveContractOut(BaseModel):
    contract_id: str
    warnings: list[str]
    contract: ContractOut


class LessonOut(BaseModel):
    id: str
    contract_id: str
    lesson_number: int
    date: datetime.date | None
    comment: str | None
    is_available: bool


class ProgressOut(BaseModel):
    contract_id: str
    status: str
    attendance_count: str
    completed: int
    available: int
    total: int
    excluded: int
    is_complete: bool
    completion_percentage: float


class CompleteOut(BaseModel):
    contract: ContractOut
    transitioned: bool
    notification_created: bool


def _opt(value: object) -> str | None:
    return None if value is None else str(value)


def contract_out(c: Contract) -> ContractOut:
    return ContractOut(
        id=str(c.id),
        student_id=str(c.student_id),
        teacher_id=_opt(c.teacher_id),
        contract_variant_id=_opt(c.contract_variant_id),
        type=c.type,
        status=c.status,
        total_lessons=c.total_lessons,
        attendance_count=c.attendance_count,
        attendance_dates=list(c.attendance_dates),
        discount_ids=[str(d) for d in c.discount_ids],
        custom_discount_percent=_opt(c.custom_discount_percent),
        final_price=_opt(c.final_price),
        payment_type=c.payment_type,
        created_at=c.created_at,
        updated_at=c.updated_at,
        completed_at=c.completed_at,
        version=c.version,
    )


def lesson_out(l: Lesson) -> LessonOut:
    return LessonOut(
        id=str(l.id),
        contract_id=str(l.contract_id),
        lesson_number=l.lesson_number,
        date=l.date,
        comment=l.comment,
        is_available=l.is_available,
    )


def _draft(body: ContractIn, contract_id: UUID | None) -> ContractDraft:
    return ContractDraft(
        contract_id=contract_id,
        student_id=body.student_id,
        type=body.type,
        teacher_id=body.teacher_id,
        contract_variant_id=body.contract_variant_id,
        total_lessons=body.total_lessons,
        discount_ids=tuple(body.discount_ids),
        custom_discount_percent=body.custom_discount_percent,
        status=body.status,
    )


# --- Endpoints ---


@router.post("", response_model=SaveContractOut, status_code=status.HTTP_201_CREATED)
async def create_contract(body: ContractIn, principal: CurrentUser, store: Store) -> SaveContractOut:
    result = await save_contract(store, principal, _draft(body, None))
    return SaveContractOut(
        contract_id=str(result.contract_id),
        warnings=list(result.warnings),
        contract=contract_out(result.contract),
    )


@router.put("/{contract_id}", response_model=SaveContractOut)
async def update_contract(
    contract_id: UUID, body: ContractIn, principal: CurrentUser, store: Store
) -> SaveContractOut:
    result = await save_contract(store, principal, _draft(body, contract_id))
    await cache_service.delete(progress_key(contract_id))
    return SaveContractOut(
        contract_id=str(result.contract_id),
        warnings=list(result.warnings),
        contract=contract_out(result.contract),
    )


@router.get("/{contract_id}", response_model=ContractOut)
async def get_contract(contract_id: UUID, principal: CurrentUser, store: Store) -> ContractOut:
    return contract_out(await read_contract(store, principal, contract_id))


@router.get("/{contract_id}/lessons", response_model=list[LessonOut])
async def list_lessons(
    contract_id: UUID, principal: CurrentUser, store: Store
) -> list[LessonOut]:
    _, lessons = await read_ledger(store, principal, contract_id)
    return [lesson_out(l) for l in lessons]


@router.get("/{contract_id}/progress", response_model=ProgressOut)
async def get_progress(contract_id: UUID, principal: CurrentUser, store: Store) -> ProgressOut:
    """Completion summary, served from cache when possible.

    Authorization runs on every call; only the ledger read is cached.
    """
    contract = await read_contract(store, principal, contract_id)

    key = progress_key(contract_id)
    cached = await cache_service.get(key)
    if cached is not None:
        return ProgressOut(**json.loads(cached))

    lessons = await store.lessons.list_by_contract(contract_id)
    progress = ProgressOut(
        contract_id=str(contract_id),
        status=contract.status,
        attendance_count=contract.attendance_count,
        **asdict(evaluate_completion(lessons)),
    )
    await cache_service.set(key, progress.model_dump_json(), PROGRESS_TTL_SECONDS)
    return progress


@router.post("/{contract_id}/complete", response_model=CompleteOut)
async def complete(contract_id: UUID, principal: CurrentUser, store: Store) -> CompleteOut:
    result = await complete_contract(store, principal, contract_id)
    await cache_service.delete(progress_key(contract_id))
    logger.info(
        "Manual completion requested by %s (transitioned=%s)",
        principal.user_id,
        result.transitioned,
        extra={"contract_id": str(contract_id)},
    )
    return CompleteOut(
        contract=contract_out(result.contract),
        transitioned=result.transitioned,
        notification_created=result.notification_created,
    )
