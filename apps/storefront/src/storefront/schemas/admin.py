from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from storefront.schemas.common import EntityId


class AdminUser(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: EntityId
    email: str
    full_name: str = Field("", alias="fullName")
    roles: list[str] = Field(default_factory=list)
    enabled: bool | None = None
    account_non_locked: bool | None = Field(None, alias="accountNonLocked")
    phone: str | None = None
    address: str | None = None
    customer_id: EntityId | None = Field(None, alias="customerId")
    created_at: datetime | None = Field(None, alias="createdAt")


def is_user_enabled(user: AdminUser) -> bool:
    """``enabled`` wins, then ``accountNonLocked``; unknown accounts count as enabled."""

    if user.enabled is not None:
        return user.enabled
    if user.account_non_locked is not None:
        return user.account_non_locked
    return True


class AdminUserUpdate(BaseModel):
    """Partial update for an admin-edited user.

    Each field is tri-state: omitted from the constructor (left untouched on the
    server), passed as ``None`` (cleared, sent as ``null``), or given a value.
    Account access is not part of it; see ``PATCH /admin/users/{id}/access``.
    """

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    email: str | None = None
    full_name: str | None = Field(None, alias="fullName")
    password: str | None = None
    roles: list[str] | None = None
    phone: str | None = None
    address: str | None = None

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_unset=True)

    def is_set(self, field_name: str) -> bool:
        return field_name in self.model_fields_set
