"""Purchase ledger: the single source of truth for purchase state.

Two backings share one contract. `InMemoryPurchaseLedger` is the default and
lives only as long as the process. `SqlPurchaseLedger` keeps rows in a
database table. Status changes go through `compare_and_swap`, which applies a
validated transition only when the caller saw the latest `state_version`.
"""

import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone

from sqlalchemy import update

from holepay.common.state_machine import validate_transition
from holepay.services.checkout.errors import (
    DuplicatePurchaseError,
    StaleRecordError,
    UnknownPurchaseError,
)
from holepay.services.checkout.models import PurchaseRecord, PurchaseRow


class PurchaseLedger(ABC):
    """Keyed store of purchase records."""

    @abstractmethod
    def get(self, purchase_id: str) -> PurchaseRecord | None:
        """Return the current record or None."""

    @abstractmethod
    def put(self, record: PurchaseRecord) -> None:
        """Insert a new record; ids are never reused."""

    @abstractmethod
    def compare_and_swap(self, purchase_id: str, expected_version: int, new_status: str) -> PurchaseRecord:
        """Move a record to `new_status` if it is still at `expected_version`."""


class InMemoryPurchaseLedger(PurchaseLedger):
    """Dict-backed ledger for a single process."""

    def __init__(self) -> None:
        self._records: dict[str, PurchaseRecord] = {}
        self._guard = threading.Lock()

    def get(self, purchase_id: str) -> PurchaseRecord | None:
        return self._records.get(purchase_id)

    def put(self, record: PurchaseRecord) -> None:
        with self._guard:
            if record.purchase_id in self._records:
                raise DuplicatePurchaseError(f"purchase {record.purchase_id} already exists")
            self._records[record.purchase_id] = record

    def compare_and_swap(self, purchase_id: str, expected_version: int, new_status: str) -> PurchaseRecord:
        with self._guard:
            current = self._records.get(purchase_id)
            if current is None:
                raise UnknownPurchaseError(f"purchase {purchase_id} not found")
            if current.state_version != expected_version:
                raise StaleRecordError(
                    f"purchase {purchase_id} moved on (expected version {expected_version}, "
                    f"found {current.state_version})"
                )
            validate_transition(current.status, new_status)
            updated = current.with_status(new_status)
            self._records[purchase_id] = updated
            return updated

    def __len__(self) -> int:
        return len(self._records)


class SqlPurchaseLedger(PurchaseLedger):
    """SQLAlchemy-backed ledger with optimistic concurrency on status writes."""

    def __init__(self, session_factory) -> None:
        self.session_factory = session_factory

    def get(self, purchase_id: str) -> PurchaseRecord | None:
        with self.session_factory() as db:
            row = db.get(PurchaseRow, purchase_id)
            return row.to_record() if row else None

    def put(self, record: PurchaseRecord) -> None:
        with self.session_factory() as db:
            if db.get(PurchaseRow, record.purchase_id) is not None:
                raise DuplicatePurchaseError(f"purchase {record.purchase_id} already exists")
            db.add(
                PurchaseRow(
                    purchase_id=record.purchase_id,
                    order_id=record.order_id,
                    product_type=record.product_type,
                    amount=record.amount,
                    status=record.status,
                    state_version=record.state_version,
                    created_at=record.created_at,
                    updated_at=record.updated_at,
                )
            )
            db.commit()

    def compare_and_swap(self, purchase_id: str, expected_version: int, new_status: str) -> PurchaseRecord:
        """Apply one validated transition guarded by `(status, state_version)`."""

        with self.session_factory() as db:
            row = db.get(PurchaseRow, purchase_id)
            if row is None:
                raise UnknownPurchaseError(f"purchase {purchase_id} not found")
            if row.state_version != expected_version:
                raise StaleRecordError(
                    f"purchase {purchase_id} moved on (expected version {expected_version}, "
                    f"found {row.state_version})"
                )
            from_status = row.status
            validate_transition(from_status, new_status)

            result = db.execute(
                update(PurchaseRow)
                .where(
                    PurchaseRow.purchase_id == purchase_id,
                    PurchaseRow.status == from_status,
                    PurchaseRow.state_version == expected_version,
                )
                .values(
                    status=new_status,
                    state_version=expected_version + 1,
                    updated_at=datetime.now(timezone.utc),
                )
            )
            if result.rowcount != 1:
                db.rollback()
                raise StaleRecordError(
                    f"optimistic concurrency conflict for purchase {purchase_id} "
                    f"(expected version {expected_version})"
                )
            db.commit()
            db.expire_all()
            return db.get(PurchaseRow, purchase_id).to_record()
