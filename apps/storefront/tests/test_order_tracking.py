import pytest

from storefront.schemas import Order
from storefront.services.orders import (
    build_tracking_timeline,
    can_cancel,
    customer_email,
    customer_label,
    get_next_tracking_status,
    get_order_status_label,
    get_tracking_stages,
    load_order_details,
    normalize_tracking_status,
)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("PENDING", "PLACED"),
        ("pending_payment", "PLACED"),
        ("CREATED", "PLACED"),
        ("PAID", "PLACED"),
        ("CONFIRMED", "PLACED"),
        ("CANCELED", "CANCELLED"),
        ("COMPLETED", "DELIVERED"),
        ("SHIPPED", "SHIPPED"),
        ("ON_HOLD", None),
        (None, None),
    ],
)
def test_normalize_tracking_status(raw, expected):
    assert normalize_tracking_status(raw) == expected


@pytest.mark.parametrize("status", ["PLACED", "PROCESSING", "SHIPPED", "DELIVERED", "PENDING", "MYSTERY"])
def test_exactly_one_current_stage(status):
    stages = get_tracking_stages(status)

    assert [stage.step for stage in stages] == ["PLACED", "PROCESSING", "SHIPPED", "DELIVERED"]
    assert sum(stage.current for stage in stages) == 1
    current_index = next(index for index, stage in enumerate(stages) if stage.current)
    assert all(stage.completed for stage in stages[:current_index])
    assert not any(stage.completed for stage in stages[current_index:])


def test_unknown_status_renders_at_first_stage():
    stages = get_tracking_stages("MYSTERY")
    assert stages[0].current and not stages[0].completed


def test_cancelled_has_no_current_stage():
    timeline = build_tracking_timeline("CANCELED")

    assert timeline.cancelled
    assert timeline.label == "Cancelled"
    assert not any(stage.current or stage.completed for stage in timeline.stages)


def test_shipped_timeline():
    stages = get_tracking_stages("SHIPPED")
    assert [(stage.label, stage.completed, stage.current) for stage in stages] == [
        ("Order Placed", True, False),
        ("Processing", True, False),
        ("Shipped", False, True),
        ("Delivered", False, False),
    ]


def test_status_labels():
    assert get_order_status_label("PLACED") == "Order Placed"
    assert get_order_status_label("PLACED", payment_approved=True) == "Payment Confirmed"
    assert get_order_status_label("PAID") == "Payment Confirmed"
    assert get_order_status_label("SHIPPED", payment_approved=True) == "Shipped"
    assert get_order_status_label("ON_HOLD") == "On Hold"


def test_next_status_only_moves_one_stage_forward():
    assert get_next_tracking_status("PENDING") == "PROCESSING"
    assert get_next_tracking_status("PROCESSING") == "SHIPPED"
    assert get_next_tracking_status("SHIPPED") == "DELIVERED"
    assert get_next_tracking_status("DELIVERED") is None
    assert get_next_tracking_status("CANCELLED") is None
    assert get_next_tracking_status("MYSTERY") is None


def test_can_cancel():
    assert can_cancel("PLACED")
    assert can_cancel("SHIPPED")
    assert not can_cancel("DELIVERED")
    assert not can_cancel("CANCELED")


def test_customer_label_precedence():
    base = {"id": 1, "status": "PLACED"}

    assert customer_label(Order.model_validate({**base, "customerName": "Direct", "customer": {"fullName": "Nested"}})) == "Direct"
    assert customer_label(Order.model_validate({**base, "customerName": "  ", "customer": {"fullName": "Nested"}})) == "Nested"
    assert customer_label(Order.model_validate({**base, "customerId": 42})) == "Customer #42"
    assert customer_label(Order.model_validate(base)) == "Customer #N/A"


def test_customer_email_precedence():
    base = {"id": 1, "status": "PLACED"}

    assert customer_email(Order.model_validate({**base, "customerEmail": "a@x.io", "customer": {"email": "b@x.io"}})) == "a@x.io"
    assert customer_email(Order.model_validate({**base, "customer": {"email": "b@x.io"}})) == "b@x.io"
    assert customer_email(Order.model_validate(base)) == "No email"


@pytest.mark.asyncio
async def test_order_details_loads_both_panels(api, backend, customer_session, customer):
    order = backend.add_order(customer["customerId"], status="PLACED")
    backend.order_payments[order["id"]] = [{"id": 9, "status": "APPROVED"}]

    details = await load_order_details(api, customer_session, order["id"])

    assert details.order is not None
    assert details.payment_approved
    assert details.timeline is not None and details.timeline.label == "Payment Confirmed"


@pytest.mark.asyncio
async def test_payments_failure_does_not_block_order(api, backend, customer_session, customer):
    order = backend.add_order(customer["customerId"], status="SHIPPED")
    backend.fail("GET", f"/orders/{order['id']}/payments", status=500, message="Payments unavailable")

    details = await load_order_details(api, customer_session, order["id"])

    assert details.order is not None and details.order.status == "SHIPPED"
    assert details.payments == []
    assert details.payments_error == "Payments unavailable"
    assert details.order_error is None


@pytest.mark.asyncio
async def test_order_failure_does_not_block_payments(api, backend, customer_session, customer):
    order = backend.add_order(customer["customerId"])
    backend.order_payments[order["id"]] = [{"id": 9, "status": "DECLINED", "gatewayMessage": "Insufficient funds"}]
    backend.fail("GET", f"/orders/{order['id']}", status=500, message="Orders unavailable")

    details = await load_order_details(api, customer_session, order["id"])

    assert details.order is None
    assert details.order_error == "Orders unavailable"
    assert details.timeline is None
    assert [payment.gateway_message for payment in details.payments] == ["Insufficient funds"]


@pytest.mark.asyncio
async def test_order_details_include_tracking_history(api, backend, admin_session, customer):
    order = backend.add_order(customer["customerId"], status="PLACED")
    await api.admin_update_order_status(admin_session.token, order["id"], "PROCESSING")

    details = await load_order_details(api, admin_session, order["id"])

    assert [event.status for event in details.tracking] == ["PLACED", "PROCESSING"]
    assert details.tracking[0].created_at is not None
    assert details.tracking_error is None


@pytest.mark.asyncio
async def test_tracking_failure_does_not_block_order(api, backend, customer_session, customer):
    order = backend.add_order(customer["customerId"], status="SHIPPED")
    backend.fail("GET", f"/orders/{order['id']}/tracking", status=503, message="Tracking unavailable")

    details = await load_order_details(api, customer_session, order["id"])

    assert details.order is not None
    assert details.timeline is not None and details.timeline.label == "Shipped"
    assert details.tracking == []
    assert details.tracking_error == "Tracking unavailable"
