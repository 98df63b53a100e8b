"""Command-line front end for the storefront.

Usage:
    storefront login you@example.com
    storefront product 42
    storefront cart add 42 --quantity 2
    storefront checkout
    storefront pay 3f0c9a4e-1c9b-4d7e-9a55-0d4b8f7e2c11 --method 7
    storefront admin orders advance 1001

Sign-in state is kept in ``SESSION_STORAGE_PATH`` between invocations.
"""

from __future__ import annotations

import argparse
import asyncio
import getpass
import sys
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Sequence

from loguru import logger

from storefront import __version__
from storefront.api.client import ApiClient, RequestError
from storefront.core.formatting import format_currency, format_date
from storefront.core.logging import configure_logging
from storefront.core.settings import settings
from storefront.schemas import AdminUserUpdate, EntityId, is_user_enabled
from storefront.services.admin import (
    AdminOrderFlow,
    AdminFlow,
    CategoryAdminFlow,
    Confirm,
    ProductAdminFlow,
    UserAdminFlow,
)
from storefront.services.auth import (
    AuthenticationRequiredError,
    CustomerRequiredError,
    FileSessionStorage,
    SessionStore,
)
from storefront.services.cart import CartService, EmptyCartError
from storefront.services.checkout import CheckoutError, CheckoutPaymentFlow, PaymentOutcomeStatus
from storefront.services.orders import customer_email, customer_label, get_order_status_label, load_order_details
from storefront.services.payments import PaymentMethodService
from storefront.validation import FormValidationError, RegisterForm, validate_form

# Errors a command reports as a plain message; anything else hits the last-resort handler.
EXPECTED_ERRORS: tuple[type[Exception], ...] = (
    AuthenticationRequiredError,
    CheckoutError,
    CustomerRequiredError,
    EmptyCartError,
    FormValidationError,
    RequestError,
)


@dataclass
class Storefront:
    api: ApiClient
    session: SessionStore
    cart: CartService
    assume_yes: bool = False

    def confirm(self) -> Confirm:
        if self.assume_yes:
            return lambda prompt: True
        return lambda prompt: input(f"{prompt} [y/N] ").strip().lower() in {"y", "yes"}


Handler = Callable[[Storefront, argparse.Namespace], Awaitable[int]]


def _entity_id(value: str) -> EntityId:
    return int(value) if value.isdigit() else value


# Auth -----------------------------------------------------------------------


async def cmd_login(app: Storefront, args: argparse.Namespace) -> int:
    password = args.password or getpass.getpass("Password: ")
    user = await app.session.login(args.email, password)
    print(f"Signed in as {user.full_name or user.email} ({app.session.view_mode.value.lower()} view)")
    return 0


async def cmd_register(app: Storefront, args: argparse.Namespace) -> int:
    password = args.password or getpass.getpass("Password: ")
    form = validate_form(
        RegisterForm,
        {
            "email": args.email,
            "password": password,
            "fullName": args.full_name,
            "phone": args.phone,
            "address": args.address,
        },
    )
    user = await app.session.register(form.to_payload())
    print(f"Account created. Signed in as {user.email}")
    return 0


async def cmd_logout(app: Storefront, args: argparse.Namespace) -> int:
    app.session.logout()
    print("Signed out.")
    return 0


async def cmd_whoami(app: Storefront, args: argparse.Namespace) -> int:
    user = app.session.user
    if user is None:
        print("Not signed in.")
        return 1
    print(f"{user.full_name} <{user.email}>")
    print(f"Roles: {', '.join(user.roles) or 'none'}")
    print(f"View: {app.session.view_mode.value.lower()}")
    customer_id = await app.session.ensure_effective_customer_id()
    print(f"Customer: {customer_id if customer_id is not None else 'N/A'}")
    return 0


async def cmd_view(app: Storefront, args: argparse.Namespace) -> int:
    app.session.require_token()
    if args.mode == "toggle":
        mode = app.session.toggle_view_mode()
    else:
        mode = app.session.set_view_mode(args.mode.upper())
    print(f"View mode: {mode.value.lower()}")
    return 0


# Catalog and cart -----------------------------------------------------------


async def cmd_products(app: Storefront, args: argparse.Namespace) -> int:
    products = await app.api.list_products()
    for product in products:
        if not product.active and not args.all:
            continue
        stock = f"{product.stock_quantity} in stock" if product.stock_quantity > 0 else "out of stock"
        category = product.category.name if product.category else "-"
        print(f"{product.id}\t{product.name}\t{format_currency(product.price)}\t{stock}\t{category}")
    return 0


async def cmd_product(app: Storefront, args: argparse.Namespace) -> int:
    product = await app.api.get_product(_entity_id(args.product_id))
    print(product.name if product.active else f"{product.name} [inactive]")
    if product.category is not None:
        print(f"Category: {product.category.name}")
    if product.description:
        print(product.description)
    print(f"Price: {format_currency(product.price)}")
    print(f"Stock: {product.stock_quantity}")
    for url in product.image_urls:
        print(f"Image: {url}")
    return 0


def _print_cart(app: Storefront) -> None:
    cart = app.cart.cart
    if cart is None or cart.is_empty:
        print("Your cart is empty.")
        return
    for item in cart.items:
        print(
            f"{item.id}\t{item.product_name}\t{item.quantity} x {format_currency(item.unit_price)}"
            f"\t{format_currency(item.subtotal)}"
        )
    print(f"Total ({cart.item_count} items): {format_currency(cart.total_amount)}")


async def cmd_cart_show(app: Storefront, args: argparse.Namespace) -> int:
    await app.session.require_customer()
    await app.cart.refresh_cart()
    _print_cart(app)
    return 0


async def cmd_cart_add(app: Storefront, args: argparse.Namespace) -> int:
    await app.cart.add_item(_entity_id(args.product_id), args.quantity)
    _print_cart(app)
    return 0


async def cmd_cart_update(app: Storefront, args: argparse.Namespace) -> int:
    await app.cart.update_item(_entity_id(args.item_id), args.quantity)
    _print_cart(app)
    return 0


async def cmd_cart_remove(app: Storefront, args: argparse.Namespace) -> int:
    await app.cart.remove_item(_entity_id(args.item_id))
    _print_cart(app)
    return 0


async def cmd_checkout(app: Storefront, args: argparse.Namespace) -> int:
    checkout_session = await app.cart.checkout()
    for item in checkout_session.items:
        print(f"{item.product_name}\t{item.quantity} x {format_currency(item.unit_price)}\t{format_currency(item.subtotal)}")
    print(f"Amount due: {format_currency(checkout_session.amount)}")
    print(f"Checkout session: {checkout_session.checkout_session_id}")
    print(f"Pay with: storefront pay {checkout_session.checkout_session_id}")
    return 0


# Payments -------------------------------------------------------------------


async def cmd_pay(app: Storefront, args: argparse.Namespace) -> int:
    flow = CheckoutPaymentFlow(app.api, app.session, app.cart, args.session_id)
    if not await flow.load():
        print(flow.error or "Checkout is unavailable.", file=sys.stderr)
        return 1

    checkout_session = flow.checkout_session
    if checkout_session is None:
        print("Checkout session is not loaded.", file=sys.stderr)
        return 1
    print(f"Checkout {checkout_session.checkout_session_id}: {checkout_session.status.value}")
    print(f"Amount due: {format_currency(checkout_session.amount)}")
    if not flow.payable:
        print("This checkout can no longer be paid.", file=sys.stderr)
        return 1
    if not flow.payment_methods:
        print("No saved payment methods. Add one with: storefront cards add", file=sys.stderr)
        return 1

    method_id = _entity_id(args.method) if args.method else None
    cvv = args.cvv or getpass.getpass("CVV: ")
    outcome = await flow.submit_payment(cvv, method_id)
    if outcome.status is PaymentOutcomeStatus.APPROVED:
        print(outcome.message)
        print(f"Order: {outcome.order_id}")
        return 0
    print(outcome.message, file=sys.stderr)
    if outcome.status is PaymentOutcomeStatus.DECLINED and flow.payable:
        print("You can retry with another payment method.", file=sys.stderr)
    return 1


async def cmd_cards_list(app: Storefront, args: argparse.Namespace) -> int:
    methods = await PaymentMethodService(app.api, app.session).list_methods()
    if not methods:
        print("No saved payment methods.")
    for method in methods:
        state = "" if method.enabled else " [disabled]"
        print(f"{method.id}\t{method.display_name}\t{method.expiry_month:02d}/{method.expiry_year}{state}")
    return 0


async def cmd_cards_add(app: Storefront, args: argparse.Namespace) -> int:
    method = await PaymentMethodService(app.api, app.session).add_method(
        {
            "cardHolderName": args.holder,
            "cardNumber": args.number,
            "brand": args.brand,
            "expiryMonth": args.expiry_month,
            "expiryYear": args.expiry_year,
            "billingAddress": args.billing_address,
            "defaultMethod": args.default,
        }
    )
    print(f"Saved {method.display_name}")
    return 0


async def cmd_cards_default(app: Storefront, args: argparse.Namespace) -> int:
    method = await PaymentMethodService(app.api, app.session).make_default(_entity_id(args.method_id))
    print(f"Default payment method: {method.display_name}")
    return 0


async def cmd_cards_enabled(app: Storefront, args: argparse.Namespace) -> int:
    method = await PaymentMethodService(app.api, app.session).set_enabled(_entity_id(args.method_id), args.enabled)
    print(f"{method.display_name} {'enabled' if method.enabled else 'disabled'}")
    return 0


# Orders ---------------------------------------------------------------------


async def cmd_orders(app: Storefront, args: argparse.Namespace) -> int:
    token, customer_id = await app.session.require_customer()
    orders = await app.api.list_orders(token, customer_id)
    if not orders:
        print("No orders yet.")
    for order in orders:
        print(
            f"{order.id}\t{order.order_number}\t{get_order_status_label(order.status)}"
            f"\t{format_currency(order.total_amount)}\t{format_date(order.created_at)}"
        )
    return 0


async def cmd_order(app: Storefront, args: argparse.Namespace) -> int:
    app.session.require_token()
    details = await load_order_details(app.api, app.session, _entity_id(args.order_id))
    order = details.order
    timeline = details.timeline
    if order is None or timeline is None:
        print(details.order_error or "Order not found.", file=sys.stderr)
    else:
        print(f"Order {order.order_number or order.id}: {timeline.label}")
        print(f"Customer: {customer_label(order)} <{customer_email(order)}>")
        for item in order.items:
            print(f"  {item.product_name}\t{item.quantity} x {format_currency(item.unit_price)}\t{format_currency(item.subtotal)}")
        print(f"Total: {format_currency(order.total_amount)}")
        if timeline.cancelled:
            print("This order was cancelled.")
        else:
            for stage in timeline.stages:
                marker = "x" if stage.completed else (">" if stage.current else " ")
                print(f"  [{marker}] {stage.label}")

    if details.tracking_error:
        print(f"Tracking: {details.tracking_error}", file=sys.stderr)
    elif details.tracking:
        print("History:")
        for event in details.tracking:
            note = f" ({event.note})" if event.note else ""
            print(f"  {format_date(event.created_at)}\t{get_order_status_label(event.status)}{note}")

    if details.payments_error:
        print(f"Payments: {details.payments_error}", file=sys.stderr)
    else:
        for payment in details.payments:
            message = f" ({payment.gateway_message})" if payment.gateway_message else ""
            print(f"  Payment {payment.id}: {payment.status}{message}")
    return 0 if order is not None else 1


# Admin ----------------------------------------------------------------------


def _report(flow: AdminFlow, ok: bool) -> int:
    notice = flow.notices.current
    if notice is not None:
        print(notice.message, file=sys.stderr if notice.is_error else sys.stdout)
    elif flow.error:
        print(flow.error, file=sys.stderr)
    return 0 if ok else 1


def _find(items: Sequence[Any], raw_id: str) -> Any:
    for item in items:
        if str(item.id) == raw_id:
            return item
    raise FormValidationError(f"No record with id {raw_id}.")


async def cmd_admin_categories(app: Storefront, args: argparse.Namespace) -> int:
    flow = CategoryAdminFlow(app.api, app.session)
    if args.action == "list":
        ok = await flow.load()
        for category in flow.categories:
            print(f"{category.id}\t{category.name}\t{category.description or ''}")
        return _report(flow, ok)
    if args.action == "create":
        return _report(flow, await flow.create({"name": args.name, "description": args.description}))
    if args.action == "update":
        payload = {"name": args.name, "description": args.description}
        return _report(flow, await flow.update(_entity_id(args.category_id), payload))
    await flow.load()
    category = _find(flow.categories, args.category_id)
    return _report(flow, await flow.delete(category, confirm=app.confirm()))


def _product_payload(args: argparse.Namespace) -> dict[str, Any]:
    return {
        "name": args.name,
        "description": args.description,
        "price": args.price,
        "stockQuantity": args.stock,
        "categoryId": args.category_id,
        "imageUrls": args.image_url,
        "active": not args.inactive,
    }


async def cmd_admin_products(app: Storefront, args: argparse.Namespace) -> int:
    flow = ProductAdminFlow(app.api, app.session)
    if args.action == "list":
        ok = await flow.load()
        for product in flow.products:
            state = "active" if product.active else "inactive"
            print(f"{product.id}\t{product.name}\t{format_currency(product.price)}\t{product.stock_quantity}\t{state}")
        return _report(flow, ok)
    if args.action == "create":
        payload = _product_payload(args)
        if payload["categoryId"] is None:
            await flow.load()
            payload["categoryId"] = flow.default_category_id
        return _report(flow, await flow.create(payload))
    if args.action == "update":
        return _report(flow, await flow.update(_entity_id(args.product_id), _product_payload(args)))
    await flow.load()
    product = _find(flow.products, args.product_id)
    return _report(flow, await flow.delete(product, confirm=app.confirm()))


async def cmd_admin_users(app: Storefront, args: argparse.Namespace) -> int:
    flow = UserAdminFlow(app.api, app.session)
    if args.action == "list":
        ok = await flow.load()
        for user in flow.users:
            state = "enabled" if is_user_enabled(user) else "disabled"
            print(f"{user.id}\t{user.email}\t{user.full_name}\t{','.join(user.roles)}\t{state}")
        print(f"{len(flow.users)} users, {flow.enabled_count} active, {flow.disabled_count} disabled")
        return _report(flow, ok)
    if args.action == "update":
        fields = {
            "email": args.email,
            "full_name": args.full_name,
            "password": args.password,
            "roles": args.role,
            "phone": args.phone,
            "address": args.address,
        }
        update = AdminUserUpdate(**{key: value for key, value in fields.items() if value is not None})
        return _report(flow, await flow.update(_entity_id(args.user_id), update))
    await flow.load()
    user = _find(flow.users, args.user_id)
    return _report(flow, await flow.set_access(user, args.action == "enable", confirm=app.confirm()))


async def cmd_admin_orders(app: Storefront, args: argparse.Namespace) -> int:
    flow = AdminOrderFlow(app.api, app.session)
    ok = await flow.load()
    if args.action == "list":
        for order in flow.orders:
            print(
                f"{order.id}\t{order.order_number}\t{get_order_status_label(order.status)}"
                f"\t{format_currency(order.total_amount)}\t{customer_label(order)}"
            )
        print(
            f"{len(flow.orders)} orders, {flow.in_progress_count} in progress, "
            f"gross revenue {format_currency(flow.total_revenue)}"
        )
        return _report(flow, ok)
    if not ok:
        return _report(flow, ok)
    order = _find(flow.orders, args.order_id)
    if args.action == "advance":
        return _report(flow, await flow.advance(order))
    return _report(flow, await flow.cancel(order, confirm=app.confirm()))


# Parser ---------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="storefront", description="Storefront command-line client")
    parser.add_argument("--base-url", default=None, help="Override API_BASE_URL for this invocation.")
    parser.add_argument("--timeout", type=float, default=None, help="Request timeout in seconds.")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    commands = parser.add_subparsers(dest="command", required=True)

    login = commands.add_parser("login", help="Sign in and remember the session.")
    login.add_argument("email")
    login.add_argument("--password", help="Prompted for when omitted.")
    login.set_defaults(handler=cmd_login)

    register = commands.add_parser("register", help="Create a customer account.")
    register.add_argument("email")
    register.add_argument("--full-name", required=True)
    register.add_argument("--password", help="Prompted for when omitted.")
    register.add_argument("--phone", default="")
    register.add_argument("--address", default="")
    register.set_defaults(handler=cmd_register)

    commands.add_parser("logout", help="Forget the stored session.").set_defaults(handler=cmd_logout)
    commands.add_parser("whoami", help="Show the signed-in user.").set_defaults(handler=cmd_whoami)

    view = commands.add_parser("view", help="Switch between admin and customer view.")
    view.add_argument("mode", choices=["admin", "customer", "toggle"])
    view.set_defaults(handler=cmd_view)

    products = commands.add_parser("products", help="List the catalogue.")
    products.add_argument("--all", action="store_true", help="Include inactive products.")
    products.set_defaults(handler=cmd_products)
    product = commands.add_parser("product", help="Show one product.")
    product.add_argument("product_id")
    product.set_defaults(handler=cmd_product)

    cart = commands.add_parser("cart", help="Show or change the cart.").add_subparsers(dest="action", required=True)
    cart.add_parser("show").set_defaults(handler=cmd_cart_show)
    cart_add = cart.add_parser("add")
    cart_add.add_argument("product_id")
    cart_add.add_argument("--quantity", type=int, default=1)
    cart_add.set_defaults(handler=cmd_cart_add)
    cart_update = cart.add_parser("update")
    cart_update.add_argument("item_id")
    cart_update.add_argument("quantity", type=int)
    cart_update.set_defaults(handler=cmd_cart_update)
    cart_remove = cart.add_parser("remove")
    cart_remove.add_argument("item_id")
    cart_remove.set_defaults(handler=cmd_cart_remove)

    commands.add_parser("checkout", help="Start checkout for the current cart.").set_defaults(handler=cmd_checkout)

    pay = commands.add_parser("pay", help="Pay a checkout session.")
    pay.add_argument("session_id")
    pay.add_argument("--method", help="Payment method id; the default method is used when omitted.")
    pay.add_argument("--cvv", help="Prompted for when omitted.")
    pay.set_defaults(handler=cmd_pay)

    cards = commands.add_parser("cards", help="Manage saved payment methods.").add_subparsers(
        dest="action", required=True
    )
    cards.add_parser("list").set_defaults(handler=cmd_cards_list)
    cards_add = cards.add_parser("add")
    cards_add.add_argument("--holder", required=True)
    cards_add.add_argument("--number", required=True)
    cards_add.add_argument("--brand", default="")
    cards_add.add_argument("--expiry-month", type=int, required=True)
    cards_add.add_argument("--expiry-year", type=int, required=True)
    cards_add.add_argument("--billing-address", default="")
    cards_add.add_argument("--default", action="store_true")
    cards_add.set_defaults(handler=cmd_cards_add)
    cards_default = cards.add_parser("default")
    cards_default.add_argument("method_id")
    cards_default.set_defaults(handler=cmd_cards_default)
    for name, enabled in (("enable", True), ("disable", False)):
        toggle = cards.add_parser(name)
        toggle.add_argument("method_id")
        toggle.set_defaults(handler=cmd_cards_enabled, enabled=enabled)

    commands.add_parser("orders", help="List your orders.").set_defaults(handler=cmd_orders)
    order = commands.add_parser("order", help="Show one order with its tracking timeline.")
    order.add_argument("order_id")
    order.set_defaults(handler=cmd_order)

    admin = commands.add_parser("admin", help="Admin console.")
    admin.add_argument("--yes", action="store_true", help="Skip confirmation prompts.")
    sections = admin.add_subparsers(dest="section", required=True)

    categories = sections.add_parser("categories").add_subparsers(dest="action", required=True)
    categories.add_parser("list")
    category_create = categories.add_parser("create")
    category_create.add_argument("name")
    category_create.add_argument("--description", default="")
    category_update = categories.add_parser("update")
    category_update.add_argument("category_id")
    category_update.add_argument("name")
    category_update.add_argument("--description", default="")
    categories.add_parser("delete").add_argument("category_id")
    for choice in categories.choices.values():
        choice.set_defaults(handler=cmd_admin_categories)

    admin_products = sections.add_parser("products").add_subparsers(dest="action", required=True)
    admin_products.add_parser("list")
    for name in ("create", "update"):
        form = admin_products.add_parser(name)
        if name == "update":
            form.add_argument("product_id")
        form.add_argument("--name", required=True)
        form.add_argument("--description", default="")
        form.add_argument("--price", required=True)
        form.add_argument("--stock", type=int, required=True)
        form.add_argument(
            "--category-id",
            required=name == "update",
            help="Defaults to the first category when creating.",
        )
        form.add_argument("--image-url", action="append", default=[])
        form.add_argument("--inactive", action="store_true")
    admin_products.add_parser("delete").add_argument("product_id")
    for choice in admin_products.choices.values():
        choice.set_defaults(handler=cmd_admin_products)

    users = sections.add_parser("users").add_subparsers(dest="action", required=True)
    users.add_parser("list")
    user_update = users.add_parser("update")
    user_update.add_argument("user_id")
    user_update.add_argument("--email")
    user_update.add_argument("--full-name")
    user_update.add_argument("--password")
    user_update.add_argument("--role", action="append", help="Repeat for several roles; replaces the current set.")
    user_update.add_argument("--phone")
    user_update.add_argument("--address")
    users.add_parser("enable").add_argument("user_id")
    users.add_parser("disable").add_argument("user_id")
    for choice in users.choices.values():
        choice.set_defaults(handler=cmd_admin_users)

    admin_orders = sections.add_parser("orders").add_subparsers(dest="action", required=True)
    admin_orders.add_parser("list")
    admin_orders.add_parser("advance").add_argument("order_id")
    admin_orders.add_parser("cancel").add_argument("order_id")
    for choice in admin_orders.choices.values():
        choice.set_defaults(handler=cmd_admin_orders)

    return parser


async def run(args: argparse.Namespace) -> int:
    async with ApiClient(base_url=args.base_url, timeout_seconds=args.timeout) as api:
        session = SessionStore(api, FileSessionStorage(settings.session_storage_path))
        await session.initialize()
        app = Storefront(
            api=api,
            session=session,
            cart=CartService(api, session),
            assume_yes=getattr(args, "yes", False),
        )
        handler: Handler = args.handler
        try:
            return await handler(app, args)
        except EXPECTED_ERRORS as exc:
            print(str(exc), file=sys.stderr)
            return 1


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(
        service_name="storefront-cli",
        environment=settings.environment,
        version=__version__,
        level=settings.log_level,
        log_format=settings.log_format,
    )
    try:
        return asyncio.run(run(args))
    except KeyboardInterrupt:
        return 130
    except Exception:
        logger.exception("Unhandled error in storefront CLI", command=args.command)
        print("Something went wrong. Please try again.", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
