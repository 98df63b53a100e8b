from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from storefront.schemas.common import EntityId


class CartItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: EntityId
    product_id: EntityId = Field(..., alias="productId")
    product_name: str = Field("", alias="productName")
    quantity: int
    unit_price: Decimal = Field(..., alias="unitPrice")
    subtotal: Decimal


class Cart(BaseModel):
    """Server-owned basket; totals are recomputed by the backend on every change."""

    model_config = ConfigDict(populate_by_name=True)

    id: EntityId | None = None
    customer_id: EntityId | None = Field(None, alias="customerId")
    items: list[CartItem] = Field(default_factory=list)
    total_amount: Decimal = Field(Decimal("0"), alias="totalAmount")

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)

    @property
    def is_empty(self) -> bool:
        return not self.items
