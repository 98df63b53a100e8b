from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from storefront.schemas.common import EntityId


class CheckoutSessionStatus(str, Enum):
    """Lifecycle of a cart-to-order conversion attempt."""

    INITIATED = "INITIATED"
    PAYMENT_PENDING = "PAYMENT_PENDING"
    FAILED = "FAILED"
    APPROVED = "APPROVED"
    CONSUMED = "CONSUMED"
    EXPIRED = "EXPIRED"


class CheckoutLineItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    product_id: EntityId = Field(..., alias="productId")
    product_name: str = Field("", alias="productName")
    quantity: int
    unit_price: Decimal = Field(..., alias="unitPrice")
    subtotal: Decimal


class CheckoutSession(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    checkout_session_id: UUID = Field(
        ...,
        validation_alias=AliasChoices("checkoutSessionId", "checkout_session_id", "id"),
        serialization_alias="checkoutSessionId",
    )
    status: CheckoutSessionStatus
    amount: Decimal
    items: list[CheckoutLineItem] = Field(default_factory=list)
    created_at: datetime | None = Field(None, alias="createdAt")
    expires_at: datetime | None = Field(None, alias="expiresAt")
    order_id: EntityId | None = Field(None, alias="orderId")


class PaymentResult(BaseModel):
    """Outcome of one gateway attempt; a decline is a normal result, not an error."""

    model_config = ConfigDict(populate_by_name=True)

    status: str
    gateway_message: str | None = Field(None, alias="gatewayMessage")
    gateway_response_code: str | None = Field(None, alias="gatewayResponseCode")
    transaction_id: EntityId | None = Field(
        None, validation_alias=AliasChoices("transactionId", "transaction_id", "paymentId")
    )
    session_status: CheckoutSessionStatus | None = Field(
        None, validation_alias=AliasChoices("checkoutSessionStatus", "session_status", "sessionStatus")
    )

    @property
    def approved(self) -> bool:
        return self.status.upper() == "APPROVED"


class FinalizeResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    order_id: EntityId = Field(..., alias="orderId")
    order_number: str | None = Field(None, alias="orderNumber")
    status: CheckoutSessionStatus | None = None
