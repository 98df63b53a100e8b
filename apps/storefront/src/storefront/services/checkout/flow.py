"""Checkout payment page controller: load, pay, finalize."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping
from uuid import UUID

from loguru import logger

from storefront.api.client import ApiClient, RequestError
from storefront.observability.checkout import CheckoutObservabilityStore, get_checkout_store
from storefront.schemas import CheckoutSession, EntityId, PaymentMethod, PaymentResult
from storefront.services.auth import CustomerRequiredError, SessionStore
from storefront.services.cart import CartService
from storefront.services.checkout.state_machine import (
    CheckoutError,
    CheckoutSessionService,
    InvalidCheckoutLinkError,
    can_pay,
    generate_idempotency_key,
    parse_checkout_session_id,
)
from storefront.services.payments import PaymentMethodService, pick_default_method
from storefront.validation import FormValidationError


class PaymentOutcomeStatus(str, Enum):
    APPROVED = "approved"
    DECLINED = "declined"
    ERROR = "error"
    REJECTED = "rejected"


@dataclass(slots=True)
class PaymentOutcome:
    """What happened to one click of the pay button."""

    status: PaymentOutcomeStatus
    message: str
    order_id: EntityId | None = None
    payment: PaymentResult | None = None


def customer_access_message(session: SessionStore) -> str:
    if session.is_admin:
        return "Switch to Customer View to process checkout payments."
    return "Only customer accounts can process checkout payments."


class CheckoutPaymentFlow:
    """State for one checkout payment page, from mount to order.

    The idempotency key is created once per flow instance and reused for every
    pay click and the finalize call, so duplicate submissions from the same
    page collapse to one charge on the backend.
    """

    def __init__(
        self,
        api: ApiClient,
        session: SessionStore,
        cart: CartService,
        raw_session_id: str | UUID | None,
        *,
        observability: CheckoutObservabilityStore | None = None,
    ) -> None:
        self._api = api
        self._session = session
        self._cart = cart
        self._checkout = CheckoutSessionService(api)
        self._payment_methods = PaymentMethodService(api, session)
        self._observability = observability or get_checkout_store()

        self.idempotency_key = generate_idempotency_key()
        self.checkout_session: CheckoutSession | None = None
        self.payment_methods: list[PaymentMethod] = []
        self.selected_method_id: EntityId | None = None
        self.order_id: EntityId | None = None

        self.loading = False
        self.processing = False
        self.saving_method = False
        self.message: str | None = None
        self.error: str | None = None

        self.session_id: UUID | None
        try:
            self.session_id = parse_checkout_session_id(raw_session_id)
            self.invalid_link = False
        except InvalidCheckoutLinkError as exc:
            self.session_id = None
            self.invalid_link = True
            self.error = str(exc)

    @property
    def default_method(self) -> PaymentMethod | None:
        return pick_default_method(self.payment_methods)

    @property
    def payable(self) -> bool:
        return self.checkout_session is not None and can_pay(self.checkout_session.status)

    @property
    def completed(self) -> bool:
        return self.order_id is not None

    def select_method(self, method_id: EntityId) -> None:
        for method in self.payment_methods:
            if method.id == method_id:
                if not method.enabled:
                    raise FormValidationError("This payment method is disabled.", field="paymentMethodId")
                self.selected_method_id = method_id
                return
        raise FormValidationError("Unknown payment method.", field="paymentMethodId")

    def _select_default(self) -> None:
        if self.selected_method_id is None and self.default_method is not None:
            self.selected_method_id = self.default_method.id

    async def load(self) -> bool:
        """Fetch the session and the customer's cards; returns False when the page cannot proceed."""

        if self.invalid_link or self.session_id is None:
            return False
        token = self._session.token
        if not token:
            self.error = "Please sign in."
            return False
        customer_id = await self._session.ensure_effective_customer_id()
        if customer_id is None:
            self.error = customer_access_message(self._session)
            return False

        self.loading = True
        self.error = None
        try:
            checkout_session, methods = await asyncio.gather(
                self._checkout.get_session(token, self.session_id),
                self._api.list_payment_methods(token, customer_id),
            )
        except RequestError as exc:
            self.error = exc.message
            return False
        finally:
            self.loading = False

        self.checkout_session = checkout_session
        self.payment_methods = methods
        self._select_default()
        return True

    async def refresh_session(self) -> CheckoutSession | None:
        token = self._session.token
        if not token or self.session_id is None:
            return self.checkout_session
        try:
            self.checkout_session = await self._checkout.get_session(token, self.session_id)
        except RequestError as exc:
            logger.warning(
                "Could not refresh checkout session",
                checkout_session_id=str(self.session_id),
                error=exc.message,
            )
        return self.checkout_session

    async def add_payment_method(self, data: Mapping[str, Any]) -> bool:
        self.saving_method = True
        self.error = None
        self.message = None
        try:
            method = await self._payment_methods.add_method(data)
            self.payment_methods = await self._payment_methods.list_methods()
        except (FormValidationError, CustomerRequiredError, RequestError) as exc:
            self.error = str(exc)
            return False
        finally:
            self.saving_method = False
        self.selected_method_id = method.id
        self.message = "Payment method added. You can pay now."
        return True

    async def submit_payment(self, cvv: str, payment_method_id: EntityId | None = None) -> PaymentOutcome:
        """Handle one pay click.

        A decline leaves the session payable and never finalizes. An approval
        is followed by exactly one finalize call in this same control flow.
        Backend errors stop the flow and the session is re-read from the server.
        """

        if self.processing:
            return PaymentOutcome(PaymentOutcomeStatus.REJECTED, "A payment is already being processed.")
        if self.completed:
            return PaymentOutcome(PaymentOutcomeStatus.REJECTED, "This checkout is already paid.", self.order_id)
        if self.checkout_session is None or self.session_id is None:
            message = self.error or "Checkout session is not loaded."
            return PaymentOutcome(PaymentOutcomeStatus.REJECTED, message)
        token = self._session.token
        if not token:
            self.error = "Please sign in."
            return PaymentOutcome(PaymentOutcomeStatus.REJECTED, self.error)

        if payment_method_id is not None:
            try:
                self.select_method(payment_method_id)
            except FormValidationError as exc:
                self.error = exc.message
                return PaymentOutcome(PaymentOutcomeStatus.REJECTED, exc.message)

        self.error = None
        self.message = None
        self.processing = True
        try:
            try:
                result = await self._checkout.pay(
                    token,
                    self.checkout_session,
                    self.selected_method_id,
                    cvv,
                    self.idempotency_key,
                )
            except CheckoutError as exc:
                self.error = str(exc)
                self._observability.record_rejected_locally(self.error)
                return PaymentOutcome(PaymentOutcomeStatus.REJECTED, self.error)
            except RequestError as exc:
                self._observability.record_attempt()
                return await self._halt(exc)

            self._observability.record_attempt()
            if result.session_status is not None:
                self.checkout_session = self.checkout_session.model_copy(update={"status": result.session_status})

            if not result.approved:
                reason = result.gateway_message or "Payment declined."
                self.error = reason
                self._observability.record_decline(result.gateway_message)
                await self.refresh_session()
                return PaymentOutcome(PaymentOutcomeStatus.DECLINED, reason, payment=result)

            self._observability.record_approval()
            try:
                finalized = await self._checkout.finalize(token, self.session_id, self.idempotency_key)
            except RequestError as exc:
                return await self._halt(exc)

            self.order_id = finalized.order_id
            self._observability.record_finalized(str(finalized.order_id))
            self.message = "Payment approved. Your order has been placed."
            await self._refresh_cart()
            await self.refresh_session()
            return PaymentOutcome(
                PaymentOutcomeStatus.APPROVED,
                self.message,
                order_id=finalized.order_id,
                payment=result,
            )
        finally:
            self.processing = False

    async def _halt(self, exc: RequestError) -> PaymentOutcome:
        self.error = exc.message
        self._observability.record_error(exc.message)
        logger.warning(
            "Checkout halted by backend error",
            checkout_session_id=str(self.session_id),
            status_code=exc.status_code,
            error=exc.message,
        )
        await self.refresh_session()
        return PaymentOutcome(PaymentOutcomeStatus.ERROR, exc.message)

    async def _refresh_cart(self) -> None:
        # The backend empties the cart when the session is consumed.
        try:
            await self._cart.refresh_cart()
        except RequestError as exc:
            logger.warning("Cart refresh after checkout failed", error=exc.message)
