"""PayPal Orders v2 client.

Wraps the four remote calls the checkout flow needs and turns every non-2xx
answer or transport failure into a typed `GatewayError`. The processor stays
the authority on capture semantics; nothing here retries.
"""

import time

import httpx

from holepay.common.logging import logger
from holepay.common.metrics import gateway_request_duration_seconds
from holepay.common.tracing import get_tracer
from holepay.services.checkout.errors import (
    AuthError,
    GatewayError,
    GatewayResponseError,
    RemoteCaptureError,
    RemoteOrderError,
    RemoteQueryError,
)

tracer = get_tracer(__name__)

# Refresh cached credentials this long before PayPal says they expire.
TOKEN_EXPIRY_SKEW_SECONDS = 60


def approve_link(order: dict) -> str:
    """Return the buyer approval URL from a created order."""

    for link in order.get("links") or []:
        if link.get("rel") == "approve" and link.get("href"):
            return link["href"]
    raise GatewayResponseError("No approve link returned.")


def _error_body(resp: httpx.Response) -> str:
    try:
        return str(resp.json())
    except ValueError:
        return resp.text


class PayPalGateway:
    """Async PayPal REST client authenticated with client credentials."""

    def __init__(
        self,
        api_base: str,
        client_id: str,
        secret: str,
        *,
        brand_name: str = "Hole In One Challenge",
        currency_code: str = "USD",
        timeout: float = 10.0,
        token_cache_seconds: int = 0,
        transport: httpx.AsyncBaseTransport | None = None,
        service_name: str = "checkout",
    ) -> None:
        self.api_base = api_base.rstrip("/")
        self.client_id = client_id
        self.secret = secret
        self.brand_name = brand_name
        self.currency_code = currency_code
        self.timeout = timeout
        self.token_cache_seconds = token_cache_seconds
        self.transport = transport
        self.service_name = service_name
        self._cached_token: str | None = None
        self._cached_until = 0.0

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.api_base, timeout=self.timeout, transport=self.transport)

    async def _request(self, operation: str, error_cls: type[GatewayError], method: str, url: str, **kwargs):
        with (
            tracer.start_as_current_span(f"paypal.{operation}"),
            gateway_request_duration_seconds.labels(service=self.service_name, operation=operation).time(),
        ):
            try:
                async with self._client() as client:
                    resp = await client.request(method, url, **kwargs)
            except httpx.HTTPError as exc:
                logger.warning("gateway_transport_error operation=%s error=%s", operation, exc)
                raise error_cls(f"{operation} transport error: {exc}") from exc
        if resp.is_error:
            logger.warning("gateway_rejected operation=%s status_code=%s", operation, resp.status_code)
            raise error_cls(f"{operation} error ({resp.status_code}): {_error_body(resp)}")
        try:
            return resp.json()
        except ValueError as exc:
            raise error_cls(f"{operation} returned a non-JSON body") from exc

    async def authenticate(self) -> str:
        """Exchange client id/secret for a short-lived bearer token."""

        if self._cached_token and time.monotonic() < self._cached_until:
            return self._cached_token

        data = await self._request(
            "authenticate",
            AuthError,
            "POST",
            "/v1/oauth2/token",
            auth=(self.client_id, self.secret),
            data={"grant_type": "client_credentials"},
        )
        token = data.get("access_token")
        if not token:
            raise AuthError("Token error: response carried no access_token")

        if self.token_cache_seconds > 0:
            lifetime = self.token_cache_seconds
            expires_in = data.get("expires_in")
            if isinstance(expires_in, (int, float)):
                lifetime = min(lifetime, expires_in - TOKEN_EXPIRY_SKEW_SECONDS)
            if lifetime > 0:
                self._cached_token = token
                self._cached_until = time.monotonic() + lifetime
        return token

    async def create_order(self, credential: str, amount: str, return_url: str, cancel_url: str) -> dict:
        """Register a capture-intent order for `amount` and return PayPal's order body."""

        body = {
            "intent": "CAPTURE",
            "purchase_units": [{"amount": {"currency_code": self.currency_code, "value": amount}}],
            "application_context": {
                "brand_name": self.brand_name,
                "user_action": "PAY_NOW",
                "return_url": return_url,
                "cancel_url": cancel_url,
            },
        }
        return await self._request(
            "create_order",
            RemoteOrderError,
            "POST",
            "/v2/checkout/orders",
            headers={"Authorization": f"Bearer {credential}"},
            json=body,
        )

    async def fetch_order(self, credential: str, order_id: str) -> dict:
        return await self._request(
            "fetch_order",
            RemoteQueryError,
            "GET",
            f"/v2/checkout/orders/{order_id}",
            headers={"Authorization": f"Bearer {credential}"},
        )

    async def capture_order(self, credential: str, order_id: str) -> dict:
        """Finalize funds for an approved order.

        A second capture of the same order is answered by PayPal with an error
        (ORDER_ALREADY_CAPTURED); that surfaces here as `RemoteCaptureError`
        and callers decide whether it matters.
        """

        return await self._request(
            "capture_order",
            RemoteCaptureError,
            "POST",
            f"/v2/checkout/orders/{order_id}/capture",
            headers={"Authorization": f"Bearer {credential}", "Content-Type": "application/json"},
        )
