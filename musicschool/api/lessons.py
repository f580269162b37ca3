"""Lesson ledger endpoints: single PATCH and batch update.

Only the fields present in the request body are applied; an explicit
null is a value ("clear the date"), an absent field is left alone.
"""

from __future__ import annotations

import datetime
from uuid import UUID

from fastapi import APIRouter
from pydantic import BaseModel

from musicschool.api.contracts import LessonOut, lesson_out
from musicschool.api.dependencies import CurrentUser, Store
from musicschool.models.lesson import LessonUpdate
from musicschool.services.cache import cache_service, progress_key
from musicschool.services.lesson_ledger import batch_update_lessons, update_lesson

router = APIRouter(prefix="/v1/lessons", tags=["lessons"])


# --- Pydantic schemas ---


class LessonPatchIn(BaseModel):
    contract_id: UUID | None = None
    date: datetime.date | None = None
    comment: str | None = None
    # None reaches the ledger, which rejects it with a field error
    is_available: bool | None = None
    lesson_number: int | None = None


class LessonBatchItemIn(LessonPatchIn):
    id: UUID


class LessonBatchIn(BaseModel):
    updates: list[LessonBatchItemIn]


class LessonPatchOut(BaseModel):
    lesson: LessonOut
    contract_status: str | None
    attendance_count: str | None
    contract_completed: bool


class BatchFailureOut(BaseModel):
    lesson_id: str
    reason: str
    code: str


class BatchSummaryOut(BaseModel):
    success_count: int
    failures: list[BatchFailureOut]
    processed_contracts: list[str]
    completed_contracts: list[str]


def to_update(lesson_id: UUID, body: LessonPatchIn) -> LessonUpdate:
    sent = body.model_dump(include=body.model_fields_set - {"id"})
    return LessonUpdate(lesson_id=lesson_id, **sent)


# --- Endpoints ---


@router.patch("/{lesson_id}", response_model=LessonPatchOut)
async def patch_lesson(
    lesson_id: UUID, body: LessonPatchIn, principal: CurrentUser, store: Store
) -> LessonPatchOut:
    result = await update_lesson(store, principal, to_update(lesson_id, body))
    await cache_service.delete(progress_key(result.lesson.contract_id))

    sync = result.sync
    return LessonPatchOut(
        lesson=lesson_out(result.lesson),
        contract_status=sync.contract.status if sync else None,
        attendance_count=sync.contract.attendance_count if sync else None,
        contract_completed=bool(sync and sync.transitioned),
    )


@router.post("/batch", response_model=BatchSummaryOut)
async def batch_patch_lessons(
    body: LessonBatchIn, principal: CurrentUser, store: Store
) -> BatchSummaryOut:
    """Partial-success batch; item failures are reported, never raised."""
    updates = [to_update(item.id, item) for item in body.updates]
    summary = await batch_update_lessons(store, principal, updates)
    for contract_id in summary.processed_contracts:
        await cache_service.delete(progress_key(contract_id))

    return BatchSummaryOut(
        success_count=summary.success_count,
        failures=[
            BatchFailureOut(lesson_id=str(f.lesson_id), reason=f.reason, code=f.code)
            for f in summary.failures
        ],
        processed_contracts=[str(c) for c in summary.processed_contracts],
        completed_contracts=[str(c) for c in summary.completed_contracts],
    )
