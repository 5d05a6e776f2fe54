"""Pytest configuration and fixtures."""

import asyncio
import json
import os
from itertools import count

import httpx
import pytest

# Settings are read at import time; these must exist before any holepay import.
os.environ.setdefault("PAYPAL_CLIENT_ID", "test-client")
os.environ.setdefault("PAYPAL_SECRET", "test-secret")
os.environ.setdefault("PAYPAL_API_BASE", "https://paypal.test")
os.environ.setdefault("PUBLIC_BASE_URL", "https://holepay.test")
os.environ.setdefault("TRACING_ENABLED", "false")
os.environ.setdefault("LEDGER_BACKEND", "memory")

from holepay.common.locks import KeyedLock  # noqa: E402
from holepay.services.checkout.controller import LifecycleController  # noqa: E402
from holepay.services.checkout.gateway import PayPalGateway  # noqa: E402
from holepay.services.checkout.ledger import InMemoryPurchaseLedger  # noqa: E402

API_BASE = "https://paypal.test"
PUBLIC_BASE = "https://holepay.test"


class FakePayPal:
    """In-process stand-in for the PayPal Orders v2 API.

    Orders start as CREATED. Tests flip them to APPROVED (buyer approved) or
    tweak the failure switches below. Capturing an APPROVED order completes
    it; capturing anything else answers 422 like PayPal does.
    """

    def __init__(self) -> None:
        self.orders: dict[str, dict] = {}
        self.calls: list[tuple[str, str]] = []
        self.created_bodies: list[dict] = []
        self._ids = count(1)
        self.token_status = 200
        self.token_body: dict = {"access_token": "A21-token", "expires_in": 32400}
        self.create_status = 201
        self.omit_approve_link = False
        self.fetch_status = 200
        self.capture_status: int | None = None
        self.capture_result: str | None = None
        self.capture_delay = 0.0
        self.captures_in_flight = 0
        self.max_captures_in_flight = 0

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def approve(self, order_id: str) -> None:
        self.orders[order_id]["status"] = "APPROVED"

    def complete(self, order_id: str) -> None:
        self.orders[order_id]["status"] = "COMPLETED"

    def count_calls(self, suffix: str) -> int:
        return sum(1 for _, path in self.calls if path.endswith(suffix))

    async def handle(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.calls.append((request.method, path))

        if path == "/v1/oauth2/token":
            assert request.headers["authorization"].startswith("Basic ")
            return httpx.Response(self.token_status, json=self.token_body)

        assert request.headers["authorization"] == "Bearer " + self.token_body.get("access_token", "")

        if path == "/v2/checkout/orders" and request.method == "POST":
            if self.create_status >= 400:
                return httpx.Response(self.create_status, json={"name": "INVALID_REQUEST"})
            body = json.loads(request.content)
            self.created_bodies.append(body)
            order_id = f"ORDER-{next(self._ids)}"
            self.orders[order_id] = {"id": order_id, "status": "CREATED"}
            links = [{"rel": "self", "href": f"{API_BASE}/v2/checkout/orders/{order_id}"}]
            if not self.omit_approve_link:
                links.append({"rel": "approve", "href": f"https://paypal.test/checkoutnow?token={order_id}"})
            return httpx.Response(self.create_status, json={"id": order_id, "status": "CREATED", "links": links})

        order_id = path.split("/")[4]
        order = self.orders.get(order_id)
        if order is None:
            return httpx.Response(404, json={"name": "RESOURCE_NOT_FOUND"})

        if path.endswith("/capture"):
            return await self._capture(order)

        if self.fetch_status >= 400:
            return httpx.Response(self.fetch_status, json={"name": "INTERNAL_SERVER_ERROR"})
        return httpx.Response(200, json=dict(order))

    async def _capture(self, order: dict) -> httpx.Response:
        self.captures_in_flight += 1
        self.max_captures_in_flight = max(self.max_captures_in_flight, self.captures_in_flight)
        try:
            if self.capture_delay:
                await asyncio.sleep(self.capture_delay)
            if self.capture_status is not None:
                return httpx.Response(self.capture_status, json={"name": "INTERNAL_SERVER_ERROR"})
            if order["status"] == "COMPLETED":
                return httpx.Response(
                    422,
                    json={"name": "UNPROCESSABLE_ENTITY", "details": [{"issue": "ORDER_ALREADY_CAPTURED"}]},
                )
            if order["status"] != "APPROVED":
                return httpx.Response(
                    422,
                    json={"name": "UNPROCESSABLE_ENTITY", "details": [{"issue": "ORDER_NOT_APPROVED"}]},
                )
            order["status"] = self.capture_result or "COMPLETED"
            return httpx.Response(201, json={"id": order["id"], "status": order["status"]})
        finally:
            self.captures_in_flight -= 1


@pytest.fixture
def fake_paypal():
    return FakePayPal()


@pytest.fixture
def gateway(fake_paypal):
    return PayPalGateway(API_BASE, "test-client", "test-secret", transport=fake_paypal.transport)


@pytest.fixture
def ledger():
    return InMemoryPurchaseLedger()


@pytest.fixture
def controller(ledger, gateway):
    return LifecycleController(ledger, gateway, PUBLIC_BASE, locks=KeyedLock())


def run(coro):
    """Drive one coroutine to completion from a sync test."""

    return asyncio.run(coro)
