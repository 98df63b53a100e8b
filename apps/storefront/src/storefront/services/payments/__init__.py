"""Payment method services."""

from .payment_methods import PaymentMethodService, pick_default_method

__all__ = ["PaymentMethodService", "pick_default_method"]
