"""Stored card management for the signed-in customer."""

from __future__ import annotations

from typing import Any, Iterable, Mapping

from loguru import logger

from storefront.api.client import ApiClient
from storefront.schemas import EntityId, PaymentMethod
from storefront.services.auth import SessionStore
from storefront.validation import PaymentMethodForm, validate_form


def pick_default_method(methods: Iterable[PaymentMethod]) -> PaymentMethod | None:
    """First enabled method flagged default, else the first enabled method.

    The backend is supposed to keep a single default per customer; this does not
    rely on it.
    """

    enabled = [method for method in methods if method.enabled]
    for method in enabled:
        if method.default_method:
            return method
    return enabled[0] if enabled else None


class PaymentMethodService:
    def __init__(self, api: ApiClient, session: SessionStore) -> None:
        self._api = api
        self._session = session
        self.submitting = False

    async def list_methods(self) -> list[PaymentMethod]:
        token, customer_id = await self._session.require_customer()
        return await self._api.list_payment_methods(token, customer_id)

    async def add_method(self, data: Mapping[str, Any]) -> PaymentMethod:
        form = validate_form(PaymentMethodForm, dict(data))
        token, customer_id = await self._session.require_customer()
        self.submitting = True
        try:
            method = await self._api.create_payment_method(token, customer_id, form.to_payload())
        finally:
            self.submitting = False
        logger.info("Payment method added", customer_id=str(customer_id), payment_method_id=str(method.id))
        return method

    async def make_default(self, method_id: EntityId) -> PaymentMethod:
        token, customer_id = await self._session.require_customer()
        return await self._api.set_default_payment_method(token, customer_id, method_id)

    async def set_enabled(self, method_id: EntityId, enabled: bool) -> PaymentMethod:
        """Enable or disable a card; disabling is the only way to retire one."""

        token, customer_id = await self._session.require_customer()
        return await self._api.set_payment_method_enabled(token, customer_id, method_id, enabled)
