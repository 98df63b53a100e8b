from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from storefront.schemas.common import EntityId


ADMIN_ROLE = "ROLE_ADMIN"


class ViewMode(str, Enum):
    ADMIN = "ADMIN"
    CUSTOMER = "CUSTOMER"


class AuthUser(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: EntityId
    email: str
    full_name: str = Field("", alias="fullName")
    roles: list[str] = Field(default_factory=list)
    customer_id: EntityId | None = Field(None, alias="customerId")


class AuthResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    token_type: str = Field("Bearer", alias="tokenType")
    access_token: str = Field(..., alias="accessToken")
    access_token_expires_in_seconds: int | None = Field(None, alias="accessTokenExpiresInSeconds")
    refresh_token: str | None = Field(None, alias="refreshToken")
    user: AuthUser


class CustomerProfile(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: EntityId
    user_id: EntityId | None = Field(None, alias="userId")
    full_name: str | None = Field(None, alias="fullName")
    email: str | None = None
    phone: str | None = None
    address: str | None = None
