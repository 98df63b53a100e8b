"""Checkout session rules and the gateway calls that move a session forward."""

from __future__ import annotations

import re
from uuid import UUID, uuid4

from loguru import logger
from opentelemetry import trace

from storefront.api.client import ApiClient
from storefront.schemas import (
    CheckoutSession,
    CheckoutSessionStatus,
    EntityId,
    FinalizeResult,
    PaymentResult,
)

tracer = trace.get_tracer(__name__)

PAYABLE_STATUSES: frozenset[CheckoutSessionStatus] = frozenset(
    {
        CheckoutSessionStatus.INITIATED,
        CheckoutSessionStatus.PAYMENT_PENDING,
        CheckoutSessionStatus.FAILED,
    }
)
TERMINAL_STATUSES: frozenset[CheckoutSessionStatus] = frozenset(
    {CheckoutSessionStatus.CONSUMED, CheckoutSessionStatus.EXPIRED}
)

_CVV_PATTERN = re.compile(r"^\d{3,4}$")


class CheckoutError(RuntimeError):
    """Base exception for checkout failures detected before reaching the gateway."""


class InvalidCheckoutLinkError(CheckoutError):
    def __init__(self, raw_id: str | None = None) -> None:
        super().__init__("Invalid checkout link.")
        self.raw_id = raw_id


class CheckoutNotPayableError(CheckoutError):
    """Raised when a payment is attempted on a session that cannot accept one."""

    def __init__(self, status: CheckoutSessionStatus) -> None:
        super().__init__(f"This checkout can no longer be paid (status {status.value}).")
        self.status = status


class PaymentMethodRequiredError(CheckoutError):
    def __init__(self) -> None:
        super().__init__("Choose a payment method first.")


class InvalidCvvError(CheckoutError):
    def __init__(self) -> None:
        super().__init__("CVV must be 3 or 4 digits.")


def can_pay(status: CheckoutSessionStatus) -> bool:
    return status in PAYABLE_STATUSES


def is_terminal(status: CheckoutSessionStatus) -> bool:
    return status in TERMINAL_STATUSES


def parse_checkout_session_id(raw: str | UUID | None) -> UUID:
    """Validate a checkout link id locally; malformed ids never hit the network."""

    if isinstance(raw, UUID):
        return raw
    candidate = (raw or "").strip()
    try:
        parsed = UUID(candidate)
    except ValueError as exc:
        raise InvalidCheckoutLinkError(raw) from exc
    # UUID() also accepts braces, urn prefixes and bare hex; links carry the canonical form.
    if str(parsed) != candidate.lower():
        raise InvalidCheckoutLinkError(raw)
    return parsed


def validate_cvv(cvv: str | None) -> str:
    value = (cvv or "").strip()
    if not _CVV_PATTERN.match(value):
        raise InvalidCvvError()
    return value


def generate_idempotency_key() -> str:
    return str(uuid4())


class CheckoutSessionService:
    """Gateway wrapper enforcing the session rules before every charge."""

    def __init__(self, api: ApiClient) -> None:
        self._api = api

    async def get_session(self, token: str, session_id: str | UUID) -> CheckoutSession:
        parsed = parse_checkout_session_id(session_id)
        return await self._api.get_checkout_session(token, str(parsed))

    async def pay(
        self,
        token: str,
        session: CheckoutSession,
        payment_method_id: EntityId | None,
        cvv: str | None,
        idempotency_key: str,
    ) -> PaymentResult:
        """Submit one payment attempt.

        Local checks run first because the gateway charges per attempt. A
        decline comes back as a normal ``PaymentResult``; transport and server
        failures raise ``RequestError``.
        """

        if not can_pay(session.status):
            raise CheckoutNotPayableError(session.status)
        if payment_method_id is None or payment_method_id == "":
            raise PaymentMethodRequiredError()
        valid_cvv = validate_cvv(cvv)

        session_id = str(session.checkout_session_id)
        with tracer.start_as_current_span("checkout.pay") as span:
            span.set_attribute("checkout.session_id", session_id)
            result = await self._api.pay_checkout_session(
                token,
                session_id,
                payment_method_id=payment_method_id,
                cvv=valid_cvv,
                idempotency_key=idempotency_key,
            )
            span.set_attribute("checkout.payment_status", result.status)
        logger.info(
            "Checkout payment attempt processed",
            checkout_session_id=session_id,
            payment_status=result.status,
            gateway_response_code=result.gateway_response_code,
        )
        return result

    async def finalize(self, token: str, session_id: str | UUID, idempotency_key: str) -> FinalizeResult:
        """Convert an approved session into an order. Call once, right after approval."""

        parsed = str(parse_checkout_session_id(session_id))
        with tracer.start_as_current_span("checkout.finalize") as span:
            span.set_attribute("checkout.session_id", parsed)
            result = await self._api.finalize_checkout_session(token, parsed, idempotency_key=idempotency_key)
        logger.info("Checkout session finalized", checkout_session_id=parsed, order_id=str(result.order_id))
        return result
