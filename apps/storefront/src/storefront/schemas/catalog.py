from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from storefront.schemas.common import EntityId


class Category(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: EntityId
    name: str
    description: str | None = None


class Product(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: EntityId
    name: str
    description: str | None = None
    price: Decimal = Decimal("0")
    stock_quantity: int = Field(0, alias="stockQuantity")
    active: bool = True
    image_urls: list[str] = Field(default_factory=list, alias="imageUrls")
    category: Category | None = None
