"""Order detail page data: the order, its payment attempts and tracking history, loaded side by side."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field

from loguru import logger

from storefront.api.client import ApiClient, RequestError
from storefront.schemas import EntityId, Order, OrderTrackingEvent, PaymentTransaction
from storefront.services.auth import SessionStore
from storefront.services.orders.tracking import TrackingTimeline, build_tracking_timeline


def customer_label(order: Order) -> str:
    """Display name for an order's customer.

    Precedence: ``customerName``, then the nested customer's full name, then a
    placeholder built from the customer id.
    """

    if order.customer_name and order.customer_name.strip():
        return order.customer_name.strip()
    if order.customer is not None and order.customer.full_name and order.customer.full_name.strip():
        return order.customer.full_name.strip()
    customer_id = order.customer_id
    if customer_id is None and order.customer is not None:
        customer_id = order.customer.id
    return f"Customer #{customer_id if customer_id is not None else 'N/A'}"


def customer_email(order: Order) -> str:
    if order.customer_email and order.customer_email.strip():
        return order.customer_email.strip()
    if order.customer is not None and order.customer.email and order.customer.email.strip():
        return order.customer.email.strip()
    return "No email"


@dataclass(slots=True)
class OrderDetails:
    order_id: EntityId
    order: Order | None = None
    payments: list[PaymentTransaction] = field(default_factory=list)
    tracking: list[OrderTrackingEvent] = field(default_factory=list)
    order_error: str | None = None
    payments_error: str | None = None
    tracking_error: str | None = None

    @property
    def payment_approved(self) -> bool:
        return any(payment.approved for payment in self.payments)

    @property
    def timeline(self) -> TrackingTimeline | None:
        if self.order is None:
            return None
        return build_tracking_timeline(self.order.status, payment_approved=self.payment_approved)


async def load_order_details(api: ApiClient, session: SessionStore, order_id: EntityId) -> OrderDetails:
    """Fetch the order, its payment attempts and its tracking history independently.

    A failure in one panel is reported on that panel only; the others still
    render.
    """

    details = OrderDetails(order_id=order_id)
    token = session.token
    if not token:
        details.order_error = "Please sign in."
        details.payments_error = "Please sign in."
        details.tracking_error = "Please sign in."
        return details

    order_result, payments_result, tracking_result = await asyncio.gather(
        api.get_order(token, order_id),
        api.list_order_payments(token, order_id),
        api.get_order_tracking(token, order_id),
        return_exceptions=True,
    )

    if isinstance(order_result, RequestError):
        details.order_error = order_result.message
    elif isinstance(order_result, BaseException):
        raise order_result
    else:
        details.order = order_result

    if isinstance(payments_result, RequestError):
        details.payments_error = payments_result.message
        logger.info("Payment history unavailable", order_id=str(order_id), error=payments_result.message)
    elif isinstance(payments_result, BaseException):
        raise payments_result
    else:
        details.payments = payments_result

    if isinstance(tracking_result, RequestError):
        details.tracking_error = tracking_result.message
        logger.info("Tracking history unavailable", order_id=str(order_id), error=tracking_result.message)
    elif isinstance(tracking_result, BaseException):
        raise tracking_result
    else:
        details.tracking = tracking_result

    return details
