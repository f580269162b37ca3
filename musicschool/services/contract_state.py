"""The contract state machine: active -> completed.

sync_contract is the only code that writes Contract.status,
attendance_count and attendance_dates.  It runs synchronously inside the
operation that changed the ledger, while that operation holds the
contract lock, and issues exactly one contract write.  Nothing it writes
calls back into it.

Transitions
    automatic  active contract whose ledger evaluates complete
    manual     complete_contract / save_contract(status=completed); always
               honored for an active contract, whatever the ledger says

completed is terminal here.  Once the transition is written, the
fulfilled notification is attempted; if that fails the failure is logged
and the transition stands.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from uuid import UUID

from musicschool.core.errors import NotFoundError
from musicschool.core.metrics import CONTRACT_NOTIFICATIONS, CONTRACT_TRANSITIONS
from musicschool.models.contract import COMPLETED, Contract
from musicschool.models.principal import Principal
from musicschool.repos.store import ContractStore
from musicschool.services.authorization import Capability, ensure_capability
from musicschool.services.completion import (
    CompletionSummary,
    attendance_dates,
    attendance_label,
    evaluate_completion,
)
from musicschool.services.notification_emitter import (
    build_fulfilled_context,
    emit_contract_fulfilled,
)

logger = logging.getLogger(__name__)

# Triggers (metric label values)
LESSON_UPDATE = "lesson_update"
BATCH_UPDATE = "batch_update"
CONTRACT_SAVE = "contract_save"
MANUAL = "manual"


@dataclass(frozen=True, slots=True)
class SyncResult:
    contract: Contract
    summary: CompletionSummary
    transitioned: bool
    notification_created: bool = False


async def sync_contract(
    store: ContractStore,
    contract_id: UUID,
    *,
    trigger: str,
) -> SyncResult:
    """Recompute the ledger summary and settle the contract's state.

    The caller must hold ``store.locks.hold(contract_id)``.  With
    trigger=MANUAL an active contract completes regardless of its ledger.
    """
    contract = await store.contracts.get(contract_id)
    if contract is None:
        raise NotFoundError("contract", contract_id)

    lessons = await store.lessons.list_by_contract(contract_id)
    summary = evaluate_completion(lessons)

    transition = contract.is_active and (trigger == MANUAL or summary.is_complete)
    label = attendance_label(summary)
    dates = attendance_dates(lessons)

    if (
        not transition
        and contract.attendance_count == label
        and contract.attendance_dates == dates
    ):
        return SyncResult(contract=contract, summary=summary, transitioned=False)

    now = store.now()
    changes: dict = {
        "attendance_count": label,
        "attendance_dates": dates,
        "updated_at": now,
        "version": contract.version + 1,
    }
    if transition:
        changes["status"] = COMPLETED
        changes["completed_at"] = now
    updated = replace(contract, **changes)
    await store.contracts.save(updated)

    if not transition:
        return SyncResult(contract=updated, summary=summary, transitioned=False)

    CONTRACT_TRANSITIONS.labels(trigger=trigger).inc()
    logger.info(
        "Contract completed (%s): %s",
        trigger,
        label,
        extra={"contract_id": str(contract_id)},
    )

    created = False
    try:
        context = await build_fulfilled_context(store, updated, summary)
        created = (await emit_contract_fulfilled(store, context)).created
    except Exception:
        CONTRACT_NOTIFICATIONS.labels(result="failed").inc()
        logger.exception(
            "Fulfilled notification failed; contract stays completed",
            extra={"contract_id": str(contract_id)},
        )

    return SyncResult(
        contract=updated,
        summary=summary,
        transitioned=True,
        notification_created=created,
    )


async def complete_contract(
    store: ContractStore,
    actor: Principal,
    contract_id: UUID,
) -> SyncResult:
    """Manual transition; a no-op for an already completed contract."""
    ensure_capability(actor, Capability.MANAGE_CONTRACTS)
    async with store.locks.hold(contract_id):
        return await sync_contract(store, contract_id, trigger=MANUAL)
