"""HTTP surface for the checkout flow.

`POST /create-order` starts a purchase, PayPal sends the buyer back to
`/payment-success` or `/payment-cancel`, and the game polls `/order-status`.
"""

from time import perf_counter
from uuid import uuid4

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse, PlainTextResponse

from holepay.common.config import settings
from holepay.common.db import make_session_factory
from holepay.common.logging import configure_logging, logger, trace_id_ctx
from holepay.common.metrics import http_request_duration_seconds, http_requests_total, metrics_response
from holepay.common.startup import log_startup_config
from holepay.common.tracing import instrument_app, setup_tracing
from holepay.services.checkout.controller import LifecycleController
from holepay.services.checkout.errors import IntegrityError, InvalidProductError
from holepay.services.checkout.gateway import PayPalGateway
from holepay.services.checkout.ledger import InMemoryPurchaseLedger, PurchaseLedger, SqlPurchaseLedger
from holepay.services.checkout.pages import payment_cancelled_page, payment_result_page
from holepay.services.checkout.schemas import CreateOrderRequest, CreateOrderResponse, OrderStatusResponse

configure_logging()
setup_tracing(settings.service_name)
log_startup_config(
    settings,
    [
        "paypal_api_base",
        "paypal_client_id",
        "paypal_secret",
        "public_base_url",
        "ledger_backend",
        "database_url",
        "paypal_token_cache_seconds",
        "tracing_enabled",
    ],
)


def build_ledger() -> PurchaseLedger:
    """Pick the ledger backing named by `LEDGER_BACKEND`."""

    if settings.ledger_backend == "sql":
        if not settings.database_url:
            raise RuntimeError("LEDGER_BACKEND=sql requires DATABASE_URL")
        return SqlPurchaseLedger(make_session_factory(settings.database_url))
    if settings.ledger_backend != "memory":
        raise RuntimeError(f"unknown LEDGER_BACKEND {settings.ledger_backend!r}")
    return InMemoryPurchaseLedger()


def build_controller() -> LifecycleController:
    gateway = PayPalGateway(
        settings.paypal_api_base,
        settings.paypal_client_id,
        settings.paypal_secret.get_secret_value(),
        brand_name=settings.brand_name,
        currency_code=settings.currency_code,
        timeout=settings.paypal_http_timeout_seconds,
        token_cache_seconds=settings.paypal_token_cache_seconds,
        service_name=settings.service_name,
    )
    return LifecycleController(
        build_ledger(),
        gateway,
        settings.public_base_url,
        service_name=settings.service_name,
    )


controller = build_controller()

app = FastAPI(title="HolePay Checkout")
app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])
instrument_app(app)


@app.middleware("http")
async def metrics_middleware(request: Request, call_next):
    """Record request count and latency, and bind a trace id for logging."""

    trace_id_ctx.set(request.headers.get("x-correlation-id") or str(uuid4()))
    start = perf_counter()
    route = request.url.path
    method = request.method
    status_code = 500
    try:
        response = await call_next(request)
        status_code = response.status_code
        route_obj = request.scope.get("route")
        if route_obj is not None and getattr(route_obj, "path", None):
            route = route_obj.path
        return response
    finally:
        elapsed = max(0.0, perf_counter() - start)
        http_request_duration_seconds.labels(
            service=settings.service_name,
            route=route,
            method=method,
        ).observe(elapsed)
        http_requests_total.labels(
            service=settings.service_name,
            route=route,
            method=method,
            status_code=str(status_code),
        ).inc()


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Unparseable `/create-order` bodies get the invalid-product answer."""

    if request.url.path == "/create-order":
        logger.warning("create_order_invalid_body errors=%s", exc.errors())
        return JSONResponse(status_code=400, content={"error": "Invalid productType"})
    return await request_validation_exception_handler(request, exc)


@app.post("/create-order")
async def create_order(req: CreateOrderRequest | None = None):
    """Create a PayPal order and return where to send the buyer."""

    product_type = req.product_type if req else None
    try:
        created = await controller.create_order(product_type)
    except InvalidProductError:
        return JSONResponse(status_code=400, content={"error": "Invalid productType"})
    except Exception as exc:
        logger.exception("create_order_failed product_type=%s error=%s", product_type, exc)
        return JSONResponse(status_code=500, content={"error": str(exc)})
    return CreateOrderResponse.from_created(created).model_dump(by_alias=True)


@app.get("/payment-success", response_class=HTMLResponse)
async def payment_success(token: str | None = None, purchaseId: str | None = None):
    """PayPal redirects here after approval; capture and show the outcome."""

    try:
        record = await controller.complete_via_redirect(purchaseId, token)
    except IntegrityError as exc:
        return PlainTextResponse(str(exc), status_code=400)
    except Exception as exc:
        logger.exception("payment_success_failed purchase_id=%s error=%s", purchaseId, exc)
        return PlainTextResponse("Server error.", status_code=500)
    return HTMLResponse(payment_result_page(record.is_paid))


@app.get("/payment-cancel", response_class=HTMLResponse)
async def payment_cancel(purchaseId: str | None = None):
    await controller.cancel(purchaseId)
    return HTMLResponse(payment_cancelled_page())


@app.get("/order-status")
async def order_status(purchaseId: str | None = None):
    """Polled by the game client until the purchase is paid."""

    record = await controller.report_status(purchaseId)
    return OrderStatusResponse.from_record(record).to_wire()


@app.get("/", response_class=PlainTextResponse)
def root():
    return "Hole In One PayPal server OK"


@app.get("/metrics")
def metrics():
    """Prometheus scrape endpoint."""

    return metrics_response()


@app.get("/health")
def health():
    """Container health probe endpoint."""

    return {"ok": True}


def main() -> None:
    uvicorn.run(app, host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    main()
