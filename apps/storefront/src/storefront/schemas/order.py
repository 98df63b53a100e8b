from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from storefront.schemas.common import EntityId


class OrderItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: EntityId | None = None
    product_id: EntityId = Field(..., alias="productId")
    product_name: str = Field("", alias="productName")
    quantity: int
    unit_price: Decimal = Field(..., alias="unitPrice")
    subtotal: Decimal


class OrderCustomer(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: EntityId | None = None
    full_name: str | None = Field(None, alias="fullName")
    email: str | None = None


class Order(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: EntityId
    order_number: str = Field("", alias="orderNumber")
    status: str
    total_amount: Decimal = Field(Decimal("0"), alias="totalAmount")
    created_at: datetime | None = Field(None, alias="createdAt")
    customer_id: EntityId | None = Field(None, alias="customerId")
    customer_name: str | None = Field(None, alias="customerName")
    customer_email: str | None = Field(None, alias="customerEmail")
    customer: OrderCustomer | None = None
    items: list[OrderItem] = Field(default_factory=list)


class OrderTrackingEvent(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status: str
    note: str | None = None
    created_at: datetime | None = Field(None, alias="createdAt")
