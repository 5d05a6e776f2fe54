"""Shared helpers for applying purchase status changes."""

from holepay.common.logging import logger
from holepay.common.metrics import purchase_transitions_total
from holepay.common.state_machine import can_transition
from holepay.services.checkout.ledger import PurchaseLedger
from holepay.services.checkout.models import PurchaseRecord, PurchaseStatus

REMOTE_COMPLETED = "COMPLETED"
REMOTE_APPROVED = "APPROVED"


def advance(
    ledger: PurchaseLedger,
    record: PurchaseRecord,
    new_status: str,
    reason: str,
    service_name: str = "checkout",
) -> PurchaseRecord:
    """Move `record` to `new_status` when the state machine allows it.

    Same-state writes and forbidden moves (anything out of `paid`, or
    `cancelled -> pending`) leave the record untouched and are logged.
    """

    if record.status == new_status:
        return record
    if not can_transition(record.status, new_status):
        logger.info(
            "transition_skipped purchase_id=%s from=%s to=%s reason=%s",
            record.purchase_id,
            record.status,
            new_status,
            reason,
        )
        return record
    updated = ledger.compare_and_swap(record.purchase_id, record.state_version, new_status)
    purchase_transitions_total.labels(service=service_name, from_state=record.status, to_state=new_status).inc()
    logger.info(
        "purchase_transition purchase_id=%s from=%s to=%s reason=%s",
        record.purchase_id,
        record.status,
        new_status,
        reason,
    )
    return updated


def status_after_capture(captured: dict) -> str:
    if captured.get("status") == REMOTE_COMPLETED:
        return PurchaseStatus.PAID.value
    return PurchaseStatus.PENDING.value
