"""API request/response schemas for checkout endpoints.

Field aliases keep the camelCase wire names the game client already speaks.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from holepay.services.checkout.models import CreatedOrder, PurchaseRecord


class CreateOrderRequest(BaseModel):
    """Body accepted by `POST /create-order`.

    The product type is left untyped here and validated by the controller, so a
    wrong type answers with the same `{error}` body as an unknown product.
    """

    model_config = ConfigDict(populate_by_name=True)

    product_type: Any = Field(default=None, alias="productType")


class CreateOrderResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    approval_url: str = Field(serialization_alias="approvalUrl")
    purchase_id: str = Field(serialization_alias="purchaseId")
    order_id: str = Field(serialization_alias="orderId")

    @classmethod
    def from_created(cls, created: CreatedOrder) -> "CreateOrderResponse":
        return cls(
            approval_url=created.approval_url,
            purchase_id=created.purchase_id,
            order_id=created.order_id,
        )


class OrderStatusResponse(BaseModel):
    """Poll answer; only `found` is present for unknown purchases."""

    found: bool
    status: str | None = None
    product_type: str | None = Field(default=None, serialization_alias="productType")
    order_id: str | None = Field(default=None, serialization_alias="orderId")
    amount: str | None = None

    @classmethod
    def from_record(cls, record: PurchaseRecord | None) -> "OrderStatusResponse":
        if record is None:
            return cls(found=False)
        return cls(
            found=True,
            status=record.status,
            product_type=record.product_type,
            order_id=record.order_id,
            amount=record.amount,
        )

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)
