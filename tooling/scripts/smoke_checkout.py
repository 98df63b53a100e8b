#!/usr/bin/env python3
"""Smoke test for the cart → checkout session → payment → order flow.

Usage:
    python tooling/scripts/smoke_checkout.py \
        --base-url http://localhost:8080/api/v1 \
        --email smoke@example.com --password "$SMOKE_PASSWORD"

The script checks:
1. Sign-in (`POST /auth/login`) and token revalidation (`GET /auth/me`)
2. Product catalogue listing (`GET /products`)
3. Adding the first in-stock product to the cart
4. Checkout session creation and payment with the default card
5. Finalization and the resulting order's tracking label
"""

from __future__ import annotations

import argparse
import asyncio
import os
import sys
from pathlib import Path
from typing import Any


def _configure_path() -> None:
    src_path = Path(__file__).resolve().parents[2] / "apps" / "storefront" / "src"
    if src_path.exists() and str(src_path) not in sys.path:
        sys.path.insert(0, str(src_path))


_configure_path()

from storefront.api.client import ApiClient, RequestError  # noqa: E402
from storefront.core.formatting import format_currency  # noqa: E402
from storefront.services.auth import MemorySessionStorage, SessionStore  # noqa: E402
from storefront.services.cart import CartService  # noqa: E402
from storefront.services.checkout import CheckoutPaymentFlow, PaymentOutcomeStatus  # noqa: E402
from storefront.services.orders import load_order_details  # noqa: E402


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Storefront checkout smoke test")
    parser.add_argument(
        "--base-url",
        default="http://localhost:8080/api/v1",
        help="Base URL of the storefront REST API.",
    )
    parser.add_argument("--email", default=os.environ.get("SMOKE_EMAIL"), help="Customer account to sign in with.")
    parser.add_argument(
        "--password",
        default=os.environ.get("SMOKE_PASSWORD"),
        help="Password for --email (defaults to SMOKE_PASSWORD).",
    )
    parser.add_argument("--cvv", default="123", help="CVV sent with the payment attempt.")
    parser.add_argument(
        "--timeout",
        type=float,
        default=10.0,
        help="Request timeout in seconds",
    )
    return parser.parse_args()


async def _run_checks(api: ApiClient, email: str, password: str, cvv: str) -> dict[str, Any]:
    session = SessionStore(api, MemorySessionStorage())
    await session.initialize()
    await session.login(email, password)
    if await session.refresh_user() is None:
        raise RuntimeError("Token was not accepted by /auth/me")

    products = await api.list_products()
    product = next((item for item in products if item.active and item.stock_quantity > 0), None)
    if product is None:
        raise RuntimeError("No active in-stock products available for smoke test")

    cart = CartService(api, session)
    await cart.add_item(product.id, 1)
    checkout_session = await cart.checkout()

    flow = CheckoutPaymentFlow(api, session, cart, str(checkout_session.checkout_session_id))
    if not await flow.load():
        raise RuntimeError(f"Checkout session could not be loaded: {flow.error}")
    if flow.selected_method_id is None:
        raise RuntimeError("Smoke account has no enabled payment method")

    outcome = await flow.submit_payment(cvv)
    if outcome.status is not PaymentOutcomeStatus.APPROVED or outcome.order_id is None:
        raise RuntimeError(f"Payment was not approved: {outcome.message}")

    details = await load_order_details(api, session, outcome.order_id)
    if details.order is None or details.timeline is None:
        raise RuntimeError(f"Order {outcome.order_id} could not be loaded: {details.order_error}")

    return {
        "order_number": details.order.order_number or str(details.order.id),
        "product_name": product.name,
        "amount": format_currency(checkout_session.amount),
        "status": details.timeline.label,
    }


async def run_http(base_url: str, timeout: float, email: str, password: str, cvv: str) -> dict[str, Any]:
    async with ApiClient(base_url=base_url, timeout_seconds=timeout) as api:
        return await _run_checks(api, email, password, cvv)


def main() -> int:
    args = parse_args()
    if not args.email or not args.password:
        raise SystemExit("Missing --email/--password (or SMOKE_EMAIL/SMOKE_PASSWORD) for the smoke test.")

    try:
        result = asyncio.run(run_http(args.base_url, args.timeout, args.email, args.password, args.cvv))
    except RequestError as exc:
        print(f"Checkout smoke test failed: {exc.message} ({exc.path})", file=sys.stderr)
        return 1

    print(
        f"Checkout smoke test passed ✅ Order {result['order_number']} created for {result['product_name']} "
        f"({result['amount']}, {result['status']})"
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
