"""Local form validation; invalid input never reaches the backend."""

from __future__ import annotations

import re
from datetime import date
from decimal import Decimal
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, HttpUrl, TypeAdapter, ValidationError, field_validator

FormT = TypeVar("FormT", bound=BaseModel)

_CARD_NUMBER_PATTERN = re.compile(r"^\d{12,19}$")
_HTTP_URL = TypeAdapter(HttpUrl)


class FormValidationError(ValueError):
    """Raised when user input fails local validation."""

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.field = field


def first_validation_error(exc: ValidationError) -> tuple[str, str | None]:
    """Return the first human-readable message (and its field) from a pydantic error."""

    errors = exc.errors()
    if not errors:
        return "Invalid input.", None
    issue = errors[0]
    field = ".".join(str(part) for part in issue.get("loc", ())) or None
    ctx = issue.get("ctx") or {}
    custom = ctx.get("error")
    if isinstance(custom, Exception):
        return str(custom), field
    if field:
        return f"{field}: {issue.get('msg', 'Invalid input.')}", field
    return issue.get("msg") or "Invalid input.", field


def validate_form(form: type[FormT], data: dict[str, Any]) -> FormT:
    try:
        return form.model_validate(data)
    except ValidationError as exc:
        message, field = first_validation_error(exc)
        raise FormValidationError(message, field=field) from exc


def _normalize_email(value: str) -> str:
    email = value.strip().lower()
    if "@" not in email or email.startswith("@") or email.endswith("@") or " " in email:
        raise ValueError("Enter a valid email address.")
    return email


class LoginForm(BaseModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def _email(cls, value: str) -> str:
        return _normalize_email(value)

    @field_validator("password")
    @classmethod
    def _password(cls, value: str) -> str:
        if len(value) < 8:
            raise ValueError("Password must be at least 8 characters.")
        return value


class RegisterForm(LoginForm):
    model_config = ConfigDict(populate_by_name=True)

    full_name: str = Field(..., alias="fullName")
    phone: str | None = None
    address: str | None = None

    @field_validator("full_name")
    @classmethod
    def _full_name(cls, value: str) -> str:
        value = value.strip()
        if len(value) < 2:
            raise ValueError("Full name is required.")
        return value

    @field_validator("phone")
    @classmethod
    def _phone(cls, value: str | None) -> str | None:
        value = (value or "").strip()
        if len(value) > 25:
            raise ValueError("Phone number is too long.")
        return value or None

    @field_validator("address")
    @classmethod
    def _address(cls, value: str | None) -> str | None:
        value = (value or "").strip()
        if len(value) > 300:
            raise ValueError("Address is too long.")
        return value or None

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class PaymentMethodForm(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    card_holder_name: str = Field(..., alias="cardHolderName")
    card_number: str = Field(..., alias="cardNumber")
    brand: str | None = None
    expiry_month: int = Field(..., alias="expiryMonth")
    expiry_year: int = Field(..., alias="expiryYear")
    billing_address: str | None = Field(None, alias="billingAddress")
    default_method: bool = Field(False, alias="defaultMethod")

    @field_validator("card_holder_name")
    @classmethod
    def _holder(cls, value: str) -> str:
        value = value.strip()
        if len(value) < 2:
            raise ValueError("Card holder name is required.")
        return value

    @field_validator("card_number")
    @classmethod
    def _card_number(cls, value: str) -> str:
        value = value.strip().replace(" ", "")
        if not _CARD_NUMBER_PATTERN.match(value):
            raise ValueError("Card number must contain 12 to 19 digits.")
        return value

    @field_validator("brand")
    @classmethod
    def _brand(cls, value: str | None) -> str | None:
        value = (value or "").strip()
        if len(value) > 40:
            raise ValueError("Card brand is too long.")
        return value or None

    @field_validator("expiry_month")
    @classmethod
    def _month(cls, value: int) -> int:
        if not 1 <= value <= 12:
            raise ValueError("Expiry month must be 1 to 12.")
        return value

    @field_validator("expiry_year")
    @classmethod
    def _year(cls, value: int) -> int:
        if value < date.today().year:
            raise ValueError("Card expiry year is in the past.")
        if value > 2100:
            raise ValueError("Card expiry year is too far in the future.")
        return value

    @field_validator("billing_address")
    @classmethod
    def _billing_address(cls, value: str | None) -> str | None:
        value = (value or "").strip()
        if len(value) > 300:
            raise ValueError("Billing address is too long.")
        return value or None

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class CategoryForm(BaseModel):
    name: str
    description: str = ""

    @field_validator("name")
    @classmethod
    def _name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Category name is required.")
        return value

    @field_validator("description")
    @classmethod
    def _description(cls, value: str) -> str:
        return value.strip()

    def to_payload(self) -> dict[str, Any]:
        return {"name": self.name, "description": self.description}


class AdminProductForm(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    description: str = ""
    price: Decimal
    stock_quantity: int = Field(..., alias="stockQuantity")
    category_id: str = Field(..., alias="categoryId")
    image_urls: list[str] = Field(default_factory=list, alias="imageUrls")
    active: bool = True

    @field_validator("name")
    @classmethod
    def _name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Product name is required.")
        return value

    @field_validator("description")
    @classmethod
    def _description(cls, value: str) -> str:
        value = value.strip()
        if len(value) > 2000:
            raise ValueError("Description is too long.")
        return value

    @field_validator("price")
    @classmethod
    def _price(cls, value: Decimal) -> Decimal:
        if not value.is_finite() or value < 0:
            raise ValueError("Price must be 0 or greater.")
        return value

    @field_validator("stock_quantity")
    @classmethod
    def _stock(cls, value: int) -> int:
        if value < 0:
            raise ValueError("Stock must be 0 or greater.")
        return value

    @field_validator("category_id", mode="before")
    @classmethod
    def _category(cls, value: object) -> str:
        value = "" if value is None else str(value).strip()
        if not value:
            raise ValueError("Category is required.")
        return value

    @field_validator("image_urls", mode="before")
    @classmethod
    def _image_urls(cls, value: object) -> list[str]:
        if value is None:
            return []
        if isinstance(value, str):
            value = value.split(",")
        urls = [str(item).strip() for item in value if str(item).strip()]  # type: ignore[union-attr]
        if len(urls) > 12:
            raise ValueError("Maximum 12 images per product.")
        for url in urls:
            try:
                _HTTP_URL.validate_python(url)
            except ValidationError as exc:
                raise ValueError("Each image URL must be valid.") from exc
        return urls

    def to_payload(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "price": float(self.price),
            "stockQuantity": self.stock_quantity,
            "categoryId": int(self.category_id) if self.category_id.isdigit() else self.category_id,
            "imageUrls": self.image_urls,
            "active": self.active,
        }
