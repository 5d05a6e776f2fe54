"""Prometheus metric definitions for the checkout service."""

from prometheus_client import Counter, Histogram, generate_latest
from starlette.responses import Response


http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["service", "route", "method", "status_code"],
)
http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration seconds",
    ["service", "route", "method"],
)
purchase_orders_created_total = Counter(
    "purchase_orders_created_total",
    "Purchases accepted and registered with the processor",
    ["service", "product_type"],
)
purchase_captures_total = Counter(
    "purchase_captures_total",
    "Capture attempts by completion path and outcome",
    ["service", "path", "outcome"],
)
purchase_reconciliations_total = Counter(
    "purchase_reconciliations_total",
    "Poll-time reconciliations by remote order status",
    ["service", "remote_status"],
)
purchase_transitions_total = Counter(
    "purchase_transitions_total",
    "Applied purchase status transitions",
    ["service", "from_state", "to_state"],
)
gateway_request_duration_seconds = Histogram(
    "gateway_request_duration_seconds",
    "Payment processor call duration seconds",
    ["service", "operation"],
)


def metrics_response() -> Response:
    """Expose all registered Prometheus metrics in text format."""

    return Response(content=generate_latest(), media_type="text/plain")
