"""Admin order board: move orders forward through fulfilment or cancel them."""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from storefront.schemas import EntityId, Order
from storefront.services.admin.base import ADMIN_FLOW_ERRORS, AdminActionError, AdminFlow, Confirm, confirmed
from storefront.services.orders.tracking import (
    CANCELLED,
    DELIVERED,
    can_cancel,
    get_next_tracking_status,
    get_order_status_label,
    normalize_tracking_status,
)


class AdminOrderFlow(AdminFlow):
    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.orders: list[Order] = []
        self.updating_order_id: EntityId | None = None

    @property
    def total_revenue(self) -> Decimal:
        return sum((order.total_amount for order in self.orders), Decimal("0"))

    @property
    def in_progress_count(self) -> int:
        return sum(
            1 for order in self.orders if normalize_tracking_status(order.status) not in (DELIVERED, CANCELLED)
        )

    async def load(self) -> bool:
        self.loading = True
        self.error = None
        try:
            token = self._admin_token()
            self.orders = await self._api.admin_list_orders(token)
        except ADMIN_FLOW_ERRORS as exc:
            self.error = str(exc)
            return False
        finally:
            self.loading = False
        return True

    async def advance(self, order: Order) -> bool:
        """Move an order to the next stage of the tracking sequence, never skipping one."""

        next_status = get_next_tracking_status(order.status)
        if next_status is None:
            return self._fail(
                "order.advance",
                AdminActionError(f"Order {order.order_number or order.id} cannot be moved forward."),
            )
        self.updating_order_id = order.id
        try:
            token = self._admin_token()
            updated = await self._api.admin_update_order_status(token, order.id, next_status)
        except ADMIN_FLOW_ERRORS as exc:
            return self._fail("order.advance", exc)
        finally:
            self.updating_order_id = None
        self._succeed(
            "order.advance",
            f"Order {order.order_number or order.id} moved to {get_order_status_label(updated.status)}.",
        )
        await self.load()
        return True

    async def cancel(self, order: Order, *, confirm: Confirm) -> bool:
        if not can_cancel(order.status):
            return self._fail(
                "order.cancel",
                AdminActionError(f"Order {order.order_number or order.id} can no longer be cancelled."),
            )
        if not await confirmed(confirm, f"Cancel order {order.order_number or order.id}?"):
            return False
        self.updating_order_id = order.id
        try:
            token = self._admin_token()
            await self._api.admin_update_order_status(token, order.id, CANCELLED)
        except ADMIN_FLOW_ERRORS as exc:
            return self._fail("order.cancel", exc)
        finally:
            self.updating_order_id = None
        self._succeed("order.cancel", f"Order {order.order_number or order.id} cancelled.")
        await self.load()
        return True
