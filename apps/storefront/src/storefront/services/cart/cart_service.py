"""Customer cart aggregate client."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from loguru import logger

from storefront.api.client import ApiClient
from storefront.schemas import Cart, CheckoutSession, EntityId
from storefront.services.auth import SessionStore
from storefront.validation import FormValidationError


class EmptyCartError(RuntimeError):
    """Raised when checkout is attempted on a cart with no items."""

    def __init__(self, message: str = "Your cart is empty.") -> None:
        super().__init__(message)


class CartService:
    """Reads and mutates the signed-in customer's cart.

    ``mutating`` is set for the duration of every mutation so callers can
    disable concurrent controls; callers are expected to keep at most one
    mutation in flight per cart view.
    """

    def __init__(self, api: ApiClient, session: SessionStore) -> None:
        self._api = api
        self._session = session
        self.cart: Cart | None = None
        self.loading = False
        self.mutating = False

    @property
    def item_count(self) -> int:
        return self.cart.item_count if self.cart else 0

    @asynccontextmanager
    async def _mutation(self) -> AsyncIterator[None]:
        self.mutating = True
        try:
            yield
        finally:
            self.mutating = False

    async def refresh_cart(self) -> Cart | None:
        token = self._session.token
        customer_id = await self._session.ensure_effective_customer_id() if token else None
        if not token or customer_id is None:
            self.cart = None
            return None
        self.loading = True
        try:
            self.cart = await self._api.get_cart(token, customer_id)
        finally:
            self.loading = False
        return self.cart

    async def add_item(self, product_id: EntityId, quantity: int = 1) -> Cart:
        if quantity < 1:
            raise FormValidationError("Quantity must be at least 1.", field="quantity")
        token, customer_id = await self._session.require_customer()
        async with self._mutation():
            self.cart = await self._api.add_to_cart(token, customer_id, product_id, quantity)
        logger.info("Cart item added", customer_id=str(customer_id), product_id=str(product_id), quantity=quantity)
        return self.cart

    async def update_item(self, item_id: EntityId, quantity: int) -> Cart | None:
        if quantity < 0:
            raise FormValidationError("Quantity cannot be negative.", field="quantity")
        if quantity == 0:
            return await self.remove_item(item_id)
        token, customer_id = await self._session.require_customer()
        async with self._mutation():
            self.cart = await self._api.update_cart_item(token, customer_id, item_id, quantity)
        return self.cart

    async def remove_item(self, item_id: EntityId) -> Cart | None:
        token, customer_id = await self._session.require_customer()
        async with self._mutation():
            cart = await self._api.remove_cart_item(token, customer_id, item_id)
            self.cart = cart if cart is not None else await self._api.get_cart(token, customer_id)
        return self.cart

    async def checkout(self) -> CheckoutSession:
        """Turn the cart into a checkout session; payment happens on the session."""

        token, customer_id = await self._session.require_customer()
        async with self._mutation():
            # Re-read so items added elsewhere since the last refresh count.
            self.cart = await self._api.get_cart(token, customer_id)
            if self.cart.is_empty:
                raise EmptyCartError()
            session = await self._api.checkout(token, customer_id)
        logger.info(
            "Checkout session created",
            customer_id=str(customer_id),
            checkout_session_id=str(session.checkout_session_id),
            amount=str(session.amount),
        )
        return session
