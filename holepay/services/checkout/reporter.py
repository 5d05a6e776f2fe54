"""Status reporter: the poll path.

Answers status queries and, while a purchase is not yet paid, reconciles it
against PayPal. An order the buyer approved but never returned from (browser
closed before the redirect) is captured here.
"""

from holepay.common.locks import KeyedLock
from holepay.common.logging import logger, purchase_id_ctx
from holepay.common.metrics import purchase_captures_total, purchase_reconciliations_total
from holepay.common.state_machine import TERMINAL_STATES
from holepay.services.checkout.errors import GatewayError
from holepay.services.checkout.gateway import PayPalGateway
from holepay.services.checkout.ledger import PurchaseLedger
from holepay.services.checkout.models import PurchaseRecord, PurchaseStatus
from holepay.services.checkout.transitions import (
    REMOTE_APPROVED,
    REMOTE_COMPLETED,
    advance,
    status_after_capture,
)


class StatusReporter:
    """Read path with best-effort reconciliation of remote truth."""

    def __init__(
        self,
        ledger: PurchaseLedger,
        gateway: PayPalGateway,
        locks: KeyedLock,
        service_name: str = "checkout",
    ) -> None:
        self.ledger = ledger
        self.gateway = gateway
        self.locks = locks
        self.service_name = service_name

    async def query(self, purchase_id: str) -> PurchaseRecord | None:
        """Return the current record, reconciling first when it is not terminal.

        Terminal (paid) records are served from the ledger without contacting PayPal.
        Remote failures never fail the query; the last known record is
        returned and the caller's next poll retries.
        """

        purchase_id_ctx.set(purchase_id or "")
        record = self.ledger.get(purchase_id)
        if record is None or record.status in TERMINAL_STATES:
            return record

        async with self.locks.hold(purchase_id):
            # A redirect may have finished while we waited.
            record = self.ledger.get(purchase_id)
            if record is None or record.status in TERMINAL_STATES:
                return record
            try:
                return await self._reconcile(record)
            except GatewayError as exc:
                logger.warning("reconcile_failed purchase_id=%s error=%s", purchase_id, exc)
                return self.ledger.get(purchase_id)

    async def _reconcile(self, record: PurchaseRecord) -> PurchaseRecord:
        credential = await self.gateway.authenticate()
        order = await self.gateway.fetch_order(credential, record.order_id)
        remote_status = order.get("status") or "UNKNOWN"
        purchase_reconciliations_total.labels(service=self.service_name, remote_status=remote_status).inc()

        if remote_status == REMOTE_COMPLETED:
            return advance(self.ledger, record, PurchaseStatus.PAID.value, "poll_remote_completed", self.service_name)

        if remote_status == REMOTE_APPROVED:
            try:
                captured = await self.gateway.capture_order(credential, record.order_id)
            except GatewayError as exc:
                purchase_captures_total.labels(service=self.service_name, path="poll", outcome="failed").inc()
                logger.warning("poll_capture_failed purchase_id=%s error=%s", record.purchase_id, exc)
                return record
            new_status = status_after_capture(captured)
            purchase_captures_total.labels(service=self.service_name, path="poll", outcome=new_status).inc()
            return advance(self.ledger, record, new_status, "poll_capture", self.service_name)

        return record
