from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from storefront.schemas.common import EntityId


class PaymentMethod(BaseModel):
    """Stored card reference; raw card data never comes back from the backend."""

    model_config = ConfigDict(populate_by_name=True)

    id: EntityId
    brand: str | None = None
    last4: str = ""
    expiry_month: int = Field(..., alias="expiryMonth")
    expiry_year: int = Field(..., alias="expiryYear")
    card_holder_name: str | None = Field(None, alias="cardHolderName")
    default_method: bool = Field(False, alias="defaultMethod")
    enabled: bool = True
    created_at: datetime | None = Field(None, alias="createdAt")

    @property
    def display_name(self) -> str:
        suffix = " (Default)" if self.default_method else ""
        return f"{self.brand or 'Card'} **** {self.last4}{suffix}"


class PaymentTransaction(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: EntityId
    status: str
    gateway_response_code: str | None = Field(None, alias="gatewayResponseCode")
    gateway_message: str | None = Field(None, alias="gatewayMessage")
    processed_at: datetime | None = Field(None, alias="processedAt")

    @property
    def approved(self) -> bool:
        return self.status.upper() == "APPROVED"
