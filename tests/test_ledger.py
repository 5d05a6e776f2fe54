"""Ledger contract tests, run against both backings."""

import pytest
from sqlalchemy.pool import StaticPool

from holepay.common.db import Base, make_session_factory
from holepay.common.state_machine import InvalidTransitionError
from holepay.services.checkout.errors import DuplicatePurchaseError, StaleRecordError, UnknownPurchaseError
from holepay.services.checkout.ledger import InMemoryPurchaseLedger, SqlPurchaseLedger
from holepay.services.checkout.models import PurchaseRecord


def _sql_ledger() -> SqlPurchaseLedger:
    session_factory = make_session_factory(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(session_factory.kw["bind"])
    return SqlPurchaseLedger(session_factory)


@pytest.fixture(params=["memory", "sql"])
def any_ledger(request):
    if request.param == "sql":
        return _sql_ledger()
    return InMemoryPurchaseLedger()


def _record(purchase_id: str = "p-1") -> PurchaseRecord:
    return PurchaseRecord(purchase_id=purchase_id, order_id="ORDER-1", product_type="five", amount="10.50")


def test_get_missing_returns_none(any_ledger):
    assert any_ledger.get("nope") is None


def test_put_then_get(any_ledger):
    any_ledger.put(_record())
    stored = any_ledger.get("p-1")
    assert stored.order_id == "ORDER-1"
    assert stored.product_type == "five"
    assert stored.amount == "10.50"
    assert stored.status == "created"
    assert stored.state_version == 0


def test_put_rejects_duplicate_id(any_ledger):
    any_ledger.put(_record())
    with pytest.raises(DuplicatePurchaseError):
        any_ledger.put(_record())


def test_compare_and_swap_applies_transition(any_ledger):
    any_ledger.put(_record())
    updated = any_ledger.compare_and_swap("p-1", 0, "pending")
    assert updated.status == "pending"
    assert updated.state_version == 1
    assert any_ledger.get("p-1").status == "pending"


def test_compare_and_swap_rejects_stale_version(any_ledger):
    any_ledger.put(_record())
    any_ledger.compare_and_swap("p-1", 0, "pending")
    with pytest.raises(StaleRecordError):
        any_ledger.compare_and_swap("p-1", 0, "cancelled")
    assert any_ledger.get("p-1").status == "pending"


def test_compare_and_swap_enforces_state_machine(any_ledger):
    any_ledger.put(_record())
    paid = any_ledger.compare_and_swap("p-1", 0, "paid")
    with pytest.raises(InvalidTransitionError):
        any_ledger.compare_and_swap("p-1", paid.state_version, "cancelled")
    assert any_ledger.get("p-1").status == "paid"


def test_compare_and_swap_unknown_purchase(any_ledger):
    with pytest.raises(UnknownPurchaseError):
        any_ledger.compare_and_swap("nope", 0, "paid")


def test_order_id_survives_transitions(any_ledger):
    any_ledger.put(_record())
    any_ledger.compare_and_swap("p-1", 0, "pending")
    any_ledger.compare_and_swap("p-1", 1, "paid")
    stored = any_ledger.get("p-1")
    assert stored.order_id == "ORDER-1"
    assert stored.amount == "10.50"
    assert stored.state_version == 2
