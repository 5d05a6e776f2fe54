"""Purchase lifecycle controller.

Owns order creation and the state changes driven by the buyer's browser
(return from PayPal, cancel). Poll-driven reconciliation lives in the status
reporter; both serialize work on one purchase through the same `KeyedLock`.
"""

from uuid import uuid4

from holepay.common.locks import KeyedLock
from holepay.common.logging import logger, purchase_id_ctx
from holepay.common.metrics import purchase_captures_total, purchase_orders_created_total
from holepay.services.checkout.errors import (
    GatewayError,
    GatewayResponseError,
    OrderMismatchError,
    RemoteCaptureError,
    UnknownPurchaseError,
)
from holepay.services.checkout.gateway import PayPalGateway, approve_link
from holepay.services.checkout.ledger import PurchaseLedger
from holepay.services.checkout.models import CreatedOrder, PurchaseRecord, PurchaseStatus, price_for
from holepay.services.checkout.reporter import StatusReporter
from holepay.services.checkout.transitions import REMOTE_COMPLETED, advance, status_after_capture


class LifecycleController:
    """Drives purchases from creation to a stable or terminal status."""

    def __init__(
        self,
        ledger: PurchaseLedger,
        gateway: PayPalGateway,
        public_base_url: str,
        locks: KeyedLock | None = None,
        service_name: str = "checkout",
    ) -> None:
        self.ledger = ledger
        self.gateway = gateway
        self.locks = locks or KeyedLock()
        self.public_base_url = public_base_url.rstrip("/")
        self.service_name = service_name
        self.reporter = StatusReporter(ledger, gateway, self.locks, service_name=service_name)

    def return_url(self, purchase_id: str) -> str:
        return f"{self.public_base_url}/payment-success?purchaseId={purchase_id}"

    def cancel_url(self, purchase_id: str) -> str:
        return f"{self.public_base_url}/payment-cancel?purchaseId={purchase_id}"

    async def create_order(self, product_type: str) -> CreatedOrder:
        """Register a PayPal order for a catalog product and record it as `created`."""

        product, amount = price_for(product_type)
        purchase_id = str(uuid4())
        purchase_id_ctx.set(purchase_id)

        credential = await self.gateway.authenticate()
        order = await self.gateway.create_order(
            credential,
            amount,
            return_url=self.return_url(purchase_id),
            cancel_url=self.cancel_url(purchase_id),
        )
        approval_url = approve_link(order)
        order_id = order.get("id")
        if not order_id:
            raise GatewayResponseError("Order response carried no id.")

        self.ledger.put(
            PurchaseRecord(
                purchase_id=purchase_id,
                order_id=order_id,
                product_type=product,
                amount=amount,
            )
        )
        purchase_orders_created_total.labels(service=self.service_name, product_type=product.value).inc()
        logger.info(
            "purchase_created purchase_id=%s order_id=%s product_type=%s amount=%s",
            purchase_id,
            order_id,
            product.value,
            amount,
        )
        return CreatedOrder(approval_url=approval_url, purchase_id=purchase_id, order_id=order_id)

    async def complete_via_redirect(self, purchase_id: str, token: str | None) -> PurchaseRecord:
        """Capture after the buyer returns from PayPal with `token` (the order id).

        One capture is attempted per call, even for a purchase that is already
        paid; PayPal rejecting that repeat is absorbed.
        """

        purchase_id_ctx.set(purchase_id or "")
        async with self.locks.hold(purchase_id):
            record = self.ledger.get(purchase_id)
            if record is None:
                raise UnknownPurchaseError("Unknown purchaseId.")
            if not token or token != record.order_id:
                logger.warning(
                    "redirect_order_mismatch purchase_id=%s expected=%s got=%s",
                    purchase_id,
                    record.order_id,
                    token,
                )
                raise OrderMismatchError("Order mismatch.")

            credential = None
            try:
                credential = await self.gateway.authenticate()
                captured = await self.gateway.capture_order(credential, record.order_id)
            except GatewayError as exc:
                return await self._absorb_capture_failure(record, credential, exc)

            new_status = status_after_capture(captured)
            purchase_captures_total.labels(service=self.service_name, path="redirect", outcome=new_status).inc()
            return advance(self.ledger, record, new_status, "redirect_capture", self.service_name)

    async def _absorb_capture_failure(
        self, record: PurchaseRecord, credential: str | None, exc: GatewayError
    ) -> PurchaseRecord:
        """Decide whether a failed redirect capture is harmless.

        Already `paid` locally means the order was captured before, so any
        gateway failure (auth included) is absorbed. Otherwise only a rejected
        capture leads to a single order lookup: if PayPal reports it completed
        the purchase becomes paid, else the error propagates.
        """

        if record.is_paid:
            purchase_captures_total.labels(service=self.service_name, path="redirect", outcome="already_paid").inc()
            logger.info("redirect_capture_already_paid purchase_id=%s", record.purchase_id)
            return record

        if not isinstance(exc, RemoteCaptureError):
            logger.error("redirect_capture_failed purchase_id=%s error=%s", record.purchase_id, exc)
            raise exc

        try:
            order = await self.gateway.fetch_order(credential, record.order_id)
        except GatewayError as lookup_exc:
            logger.warning("redirect_capture_lookup_failed purchase_id=%s error=%s", record.purchase_id, lookup_exc)
            order = {}
        if order.get("status") == REMOTE_COMPLETED:
            purchase_captures_total.labels(service=self.service_name, path="redirect", outcome="already_paid").inc()
            return advance(
                self.ledger, record, PurchaseStatus.PAID.value, "redirect_remote_completed", self.service_name
            )

        purchase_captures_total.labels(service=self.service_name, path="redirect", outcome="failed").inc()
        logger.error("redirect_capture_failed purchase_id=%s error=%s", record.purchase_id, exc)
        raise exc

    async def cancel(self, purchase_id: str) -> PurchaseRecord | None:
        """Mark a purchase cancelled; unknown ids and paid purchases are left alone."""

        purchase_id_ctx.set(purchase_id or "")
        async with self.locks.hold(purchase_id):
            record = self.ledger.get(purchase_id)
            if record is None:
                return None
            if record.is_paid:
                logger.warning("cancel_ignored_paid purchase_id=%s", purchase_id)
                return record
            return advance(self.ledger, record, PurchaseStatus.CANCELLED.value, "buyer_cancelled", self.service_name)

    async def report_status(self, purchase_id: str) -> PurchaseRecord | None:
        return await self.reporter.query(purchase_id)
