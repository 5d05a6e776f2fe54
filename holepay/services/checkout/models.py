"""Checkout data model.

`PurchaseRecord` is the value the ledger stores and hands back; `PurchaseRow`
is its SQL mapping for the optional database-backed ledger.
"""

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import DateTime, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from holepay.common.db import Base
from holepay.services.checkout.errors import InvalidProductError


class ProductType(str, Enum):
    SINGLE = "single"
    FIVE = "five"


class PurchaseStatus(str, Enum):
    CREATED = "created"
    PENDING = "pending"
    PAID = "paid"
    CANCELLED = "cancelled"


# Prices are fixed server-side and never read from a request.
CATALOG: dict[ProductType, str] = {
    ProductType.SINGLE: "2.50",
    ProductType.FIVE: "10.50",
}


def price_for(product_type) -> tuple[ProductType, str]:
    """Resolve a raw product type to its enum member and catalog amount."""

    if not isinstance(product_type, str):
        raise InvalidProductError(f"Invalid productType: {product_type!r}")
    try:
        product = ProductType(product_type)
    except ValueError as exc:
        raise InvalidProductError(f"Invalid productType: {product_type!r}") from exc
    return product, CATALOG[product]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PurchaseRecord(BaseModel):
    """Current state of one purchase attempt."""

    model_config = ConfigDict(frozen=True, use_enum_values=True)

    purchase_id: str
    order_id: str
    product_type: ProductType
    amount: str
    status: PurchaseStatus = Field(default=PurchaseStatus.CREATED, validate_default=True)
    state_version: int = 0
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @property
    def is_paid(self) -> bool:
        return self.status == PurchaseStatus.PAID.value

    def with_status(self, status: str) -> "PurchaseRecord":
        """Return a copy carrying `status` and the next state version."""

        return self.model_copy(
            update={
                "status": PurchaseStatus(status).value,
                "state_version": self.state_version + 1,
                "updated_at": _utcnow(),
            }
        )


class CreatedOrder(BaseModel):
    """What the initiator needs to send the buyer to PayPal."""

    approval_url: str
    purchase_id: str
    order_id: str


class PurchaseRow(Base):
    """SQL mapping of a purchase record."""

    __tablename__ = "purchases"

    purchase_id: Mapped[str] = mapped_column(String, primary_key=True)
    order_id: Mapped[str] = mapped_column(String, index=True)
    product_type: Mapped[str] = mapped_column(String)
    amount: Mapped[str] = mapped_column(String)
    status: Mapped[str] = mapped_column(String, index=True)
    state_version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    def to_record(self) -> PurchaseRecord:
        return PurchaseRecord(
            purchase_id=self.purchase_id,
            order_id=self.order_id,
            product_type=self.product_type,
            amount=self.amount,
            status=self.status,
            state_version=self.state_version,
            created_at=self.created_at or _utcnow(),
            updated_at=self.updated_at or _utcnow(),
        )
