"""Typed async client for the storefront REST backend."""

from __future__ import annotations

from typing import Any, Literal, Mapping, TypeVar

import httpx
from loguru import logger
from pydantic import BaseModel, TypeAdapter

from storefront.core.settings import settings
from storefront.schemas import (
    AdminUser,
    AuthResponse,
    AuthUser,
    Cart,
    Category,
    CheckoutSession,
    CustomerProfile,
    EntityId,
    FinalizeResult,
    Order,
    OrderTrackingEvent,
    PaymentMethod,
    PaymentResult,
    PaymentTransaction,
    Product,
)

Method = Literal["GET", "POST", "PUT", "PATCH", "DELETE"]
ModelT = TypeVar("ModelT", bound=BaseModel)

IDEMPOTENCY_HEADER = "Idempotency-Key"


class RequestError(RuntimeError):
    """Raised when the backend cannot be reached or answers with a non-2xx status."""

    def __init__(self, message: str, *, status_code: int | None = None, path: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.path = path


def _error_message(response: httpx.Response) -> str:
    fallback = f"Request failed ({response.status_code})"
    try:
        data = response.json()
    except ValueError:
        return fallback
    if isinstance(data, Mapping):
        message = data.get("message")
        if isinstance(message, str) and message.strip():
            return message
    return fallback


def _parse(model: type[ModelT], data: Any) -> ModelT:
    return model.model_validate(data)


def _parse_list(model: type[ModelT], data: Any) -> list[ModelT]:
    return TypeAdapter(list[model]).validate_python(data or [])  # type: ignore[valid-type]


class ApiClient:
    """One method per backend endpoint.

    Every call is a fresh round-trip: no caching and no retries. Pass an
    ``http_client`` to share a connection pool or to plug in a mock transport.
    """

    def __init__(
        self,
        *,
        base_url: str | None = None,
        timeout_seconds: float | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = (base_url or settings.api_base_url).rstrip("/")
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(
            timeout=timeout_seconds or settings.request_timeout_seconds
        )

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    @property
    def base_url(self) -> str:
        return self._base_url

    async def request(
        self,
        path: str,
        method: Method = "GET",
        *,
        token: str | None = None,
        body: Any = None,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        request_headers = {"Content-Type": "application/json", "Cache-Control": "no-store"}
        if token:
            request_headers["Authorization"] = f"Bearer {token}"
        if headers:
            request_headers.update(headers)

        url = f"{self._base_url}{path}"
        try:
            response = await self._http.request(method, url, headers=request_headers, json=body)
        except httpx.HTTPError as exc:
            logger.warning("Storefront API unreachable", method=method, path=path, error=str(exc))
            raise RequestError(f"Network error: {exc}", path=path) from exc

        if not response.is_success:
            message = _error_message(response)
            logger.info(
                "Storefront API request failed",
                method=method,
                path=path,
                status_code=response.status_code,
                error=message,
            )
            raise RequestError(message, status_code=response.status_code, path=path)

        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise RequestError(
                f"Malformed response body ({response.status_code})",
                status_code=response.status_code,
                path=path,
            ) from exc

    # Auth -----------------------------------------------------------------

    async def login(self, email: str, password: str) -> AuthResponse:
        data = await self.request("/auth/login", "POST", body={"email": email, "password": password})
        return _parse(AuthResponse, data)

    async def register(self, payload: Mapping[str, Any]) -> AuthResponse:
        data = await self.request("/auth/register", "POST", body=dict(payload))
        return _parse(AuthResponse, data)

    async def me(self, token: str) -> AuthUser:
        return _parse(AuthUser, await self.request("/auth/me", token=token))

    async def get_customer(self, token: str, customer_id: EntityId) -> CustomerProfile:
        return _parse(CustomerProfile, await self.request(f"/customers/{customer_id}", token=token))

    # Catalog --------------------------------------------------------------

    async def list_products(self) -> list[Product]:
        return _parse_list(Product, await self.request("/products"))

    async def get_product(self, product_id: EntityId) -> Product:
        return _parse(Product, await self.request(f"/products/{product_id}"))

    async def create_product(self, token: str, payload: Mapping[str, Any]) -> Product:
        return _parse(Product, await self.request("/products", "POST", token=token, body=dict(payload)))

    async def update_product(self, token: str, product_id: EntityId, payload: Mapping[str, Any]) -> Product:
        data = await self.request(f"/products/{product_id}", "PUT", token=token, body=dict(payload))
        return _parse(Product, data)

    async def delete_product(self, token: str, product_id: EntityId) -> None:
        await self.request(f"/products/{product_id}", "DELETE", token=token)

    async def list_categories(self) -> list[Category]:
        return _parse_list(Category, await self.request("/categories"))

    async def create_category(self, token: str, payload: Mapping[str, Any]) -> Category:
        return _parse(Category, await self.request("/categories", "POST", token=token, body=dict(payload)))

    async def update_category(self, token: str, category_id: EntityId, payload: Mapping[str, Any]) -> Category:
        data = await self.request(f"/categories/{category_id}", "PUT", token=token, body=dict(payload))
        return _parse(Category, data)

    async def delete_category(self, token: str, category_id: EntityId) -> None:
        await self.request(f"/categories/{category_id}", "DELETE", token=token)

    # Cart -----------------------------------------------------------------

    async def get_cart(self, token: str, customer_id: EntityId) -> Cart:
        return _parse(Cart, await self.request(f"/customers/{customer_id}/cart", token=token))

    async def add_to_cart(self, token: str, customer_id: EntityId, product_id: EntityId, quantity: int) -> Cart:
        data = await self.request(
            f"/customers/{customer_id}/cart/items",
            "POST",
            token=token,
            body={"productId": product_id, "quantity": quantity},
        )
        return _parse(Cart, data)

    async def update_cart_item(self, token: str, customer_id: EntityId, item_id: EntityId, quantity: int) -> Cart:
        data = await self.request(
            f"/customers/{customer_id}/cart/items/{item_id}",
            "PATCH",
            token=token,
            body={"quantity": quantity},
        )
        return _parse(Cart, data)

    async def remove_cart_item(self, token: str, customer_id: EntityId, item_id: EntityId) -> Cart | None:
        data = await self.request(f"/customers/{customer_id}/cart/items/{item_id}", "DELETE", token=token)
        return _parse(Cart, data) if data is not None else None

    async def checkout(self, token: str, customer_id: EntityId) -> CheckoutSession:
        data = await self.request(f"/customers/{customer_id}/orders/checkout", "POST", token=token)
        return _parse(CheckoutSession, data)

    async def list_orders(self, token: str, customer_id: EntityId) -> list[Order]:
        return _parse_list(Order, await self.request(f"/customers/{customer_id}/orders", token=token))

    # Checkout sessions ----------------------------------------------------

    async def get_checkout_session(self, token: str, session_id: str) -> CheckoutSession:
        return _parse(CheckoutSession, await self.request(f"/checkout-sessions/{session_id}", token=token))

    async def pay_checkout_session(
        self,
        token: str,
        session_id: str,
        *,
        payment_method_id: EntityId,
        cvv: str,
        idempotency_key: str,
    ) -> PaymentResult:
        data = await self.request(
            f"/checkout-sessions/{session_id}/pay",
            "POST",
            token=token,
            body={"paymentMethodId": payment_method_id, "cvv": cvv, "idempotencyKey": idempotency_key},
            headers={IDEMPOTENCY_HEADER: idempotency_key},
        )
        return _parse(PaymentResult, data)

    async def finalize_checkout_session(self, token: str, session_id: str, *, idempotency_key: str) -> FinalizeResult:
        data = await self.request(
            f"/checkout-sessions/{session_id}/finalize",
            "POST",
            token=token,
            body={"idempotencyKey": idempotency_key},
            headers={IDEMPOTENCY_HEADER: idempotency_key},
        )
        return _parse(FinalizeResult, data)

    # Payment methods ------------------------------------------------------

    async def list_payment_methods(self, token: str, customer_id: EntityId) -> list[PaymentMethod]:
        data = await self.request(f"/customers/{customer_id}/payment-methods", token=token)
        return _parse_list(PaymentMethod, data)

    async def create_payment_method(
        self, token: str, customer_id: EntityId, payload: Mapping[str, Any]
    ) -> PaymentMethod:
        data = await self.request(
            f"/customers/{customer_id}/payment-methods", "POST", token=token, body=dict(payload)
        )
        return _parse(PaymentMethod, data)

    async def set_default_payment_method(
        self, token: str, customer_id: EntityId, method_id: EntityId
    ) -> PaymentMethod:
        data = await self.request(
            f"/customers/{customer_id}/payment-methods/{method_id}/default", "PATCH", token=token
        )
        return _parse(PaymentMethod, data)

    async def set_payment_method_enabled(
        self, token: str, customer_id: EntityId, method_id: EntityId, enabled: bool
    ) -> PaymentMethod:
        data = await self.request(
            f"/customers/{customer_id}/payment-methods/{method_id}/enabled",
            "PATCH",
            token=token,
            body={"enabled": enabled},
        )
        return _parse(PaymentMethod, data)

    # Orders ---------------------------------------------------------------

    async def get_order(self, token: str, order_id: EntityId) -> Order:
        return _parse(Order, await self.request(f"/orders/{order_id}", token=token))

    async def get_order_tracking(self, token: str, order_id: EntityId) -> list[OrderTrackingEvent]:
        return _parse_list(OrderTrackingEvent, await self.request(f"/orders/{order_id}/tracking", token=token))

    async def list_order_payments(self, token: str, order_id: EntityId) -> list[PaymentTransaction]:
        return _parse_list(PaymentTransaction, await self.request(f"/orders/{order_id}/payments", token=token))

    # Admin ----------------------------------------------------------------

    async def admin_list_orders(self, token: str) -> list[Order]:
        return _parse_list(Order, await self.request("/admin/orders", token=token))

    async def admin_update_order_status(self, token: str, order_id: EntityId, status: str) -> Order:
        data = await self.request(f"/admin/orders/{order_id}/status", "PATCH", token=token, body={"status": status})
        return _parse(Order, data)

    async def admin_list_users(self, token: str) -> list[AdminUser]:
        return _parse_list(AdminUser, await self.request("/admin/users", token=token))

    async def admin_update_user(self, token: str, user_id: EntityId, payload: Mapping[str, Any]) -> AdminUser:
        data = await self.request(f"/admin/users/{user_id}", "PATCH", token=token, body=dict(payload))
        return _parse(AdminUser, data)

    async def admin_set_user_access(self, token: str, user_id: EntityId, enabled: bool) -> AdminUser:
        data = await self.request(
            f"/admin/users/{user_id}/access", "PATCH", token=token, body={"enabled": enabled}
        )
        return _parse(AdminUser, data)
