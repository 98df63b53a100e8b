"""Checkout session state machine and payment page orchestration."""

from .flow import CheckoutPaymentFlow, PaymentOutcome, PaymentOutcomeStatus, customer_access_message
from .state_machine import (
    PAYABLE_STATUSES,
    TERMINAL_STATUSES,
    CheckoutError,
    CheckoutNotPayableError,
    CheckoutSessionService,
    InvalidCheckoutLinkError,
    InvalidCvvError,
    PaymentMethodRequiredError,
    can_pay,
    generate_idempotency_key,
    is_terminal,
    parse_checkout_session_id,
    validate_cvv,
)

__all__ = [
    "PAYABLE_STATUSES",
    "TERMINAL_STATUSES",
    "CheckoutError",
    "CheckoutNotPayableError",
    "CheckoutPaymentFlow",
    "CheckoutSessionService",
    "InvalidCheckoutLinkError",
    "InvalidCvvError",
    "PaymentMethodRequiredError",
    "PaymentOutcome",
    "PaymentOutcomeStatus",
    "can_pay",
    "customer_access_message",
    "generate_idempotency_key",
    "is_terminal",
    "parse_checkout_session_id",
    "validate_cvv",
]
