import itertools
import json
import re
import sys
from pathlib import Path
from typing import Any, Callable
from uuid import uuid4

import httpx
import pytest
import pytest_asyncio


def _configure_path() -> None:
    src_path = Path(__file__).resolve().parents[1] / "src"
    if src_path.exists():
        sys.path.insert(0, str(src_path))


_configure_path()

from storefront.api.client import IDEMPOTENCY_HEADER, ApiClient  # noqa: E402
from storefront.observability.checkout import CheckoutObservabilityStore  # noqa: E402
from storefront.services.auth import MemorySessionStorage, SessionStore  # noqa: E402
from storefront.services.cart import CartService  # noqa: E402

BASE_URL = "http://testserver/api/v1"
PASSWORD = "password123"

Route = tuple[str, "re.Pattern[str]", Callable[..., httpx.Response]]


def _error(status: int, message: str) -> httpx.Response:
    return httpx.Response(status, json={"message": message})


class FakeBackend:
    """In-memory storefront backend served through ``httpx.MockTransport``.

    Payment declines are configured per payment method. An idempotency key that
    already produced an approval replays the stored result instead of charging
    again; declines do not consume the key.
    """

    def __init__(self) -> None:
        self._ids = itertools.count(1)
        self.calls: list[tuple[str, str]] = []
        self.requests: list[httpx.Request] = []
        self.users: dict[int, dict[str, Any]] = {}
        self.passwords: dict[str, str] = {}
        self.tokens: dict[str, int] = {}
        self.customers: dict[int, dict[str, Any]] = {}
        self.categories: dict[int, dict[str, Any]] = {}
        self.products: dict[int, dict[str, Any]] = {}
        self.carts: dict[int, list[dict[str, Any]]] = {}
        self.sessions: dict[str, dict[str, Any]] = {}
        self.payment_methods: dict[int, list[dict[str, Any]]] = {}
        self.orders: dict[int, dict[str, Any]] = {}
        self.order_payments: dict[int, list[dict[str, Any]]] = {}
        self.order_events: dict[int, list[dict[str, Any]]] = {}
        self.attempts: list[dict[str, Any]] = []
        self.declines: dict[int, str] = {}
        self.failures: dict[tuple[str, str], tuple[int, str]] = {}
        self._approved_by_key: dict[str, dict[str, Any]] = {}
        self._finalized_by_key: dict[str, dict[str, Any]] = {}
        self._routes: list[Route] = []
        self._register_routes()

    # Seeding ---------------------------------------------------------------

    def next_id(self) -> int:
        return next(self._ids)

    def add_user(
        self,
        email: str,
        *,
        password: str = PASSWORD,
        full_name: str = "Test User",
        roles: tuple[str, ...] = ("ROLE_CUSTOMER",),
        customer: bool = True,
    ) -> dict[str, Any]:
        user_id = self.next_id()
        customer_id = None
        if customer:
            customer_id = self.next_id()
            self.customers[customer_id] = {
                "id": customer_id,
                "userId": user_id,
                "fullName": full_name,
                "email": email,
            }
        user = {
            "id": user_id,
            "email": email,
            "fullName": full_name,
            "roles": list(roles),
            "customerId": customer_id,
            "enabled": True,
            "phone": None,
            "address": None,
        }
        self.users[user_id] = user
        self.passwords[email] = password
        return user

    def add_customer_profile(self, customer_id: int, *, full_name: str, email: str) -> dict[str, Any]:
        self.customers[customer_id] = {"id": customer_id, "fullName": full_name, "email": email}
        return self.customers[customer_id]

    def issue_token(self, user: dict[str, Any]) -> str:
        token = f"token-{uuid4().hex}"
        self.tokens[token] = user["id"]
        return token

    def add_category(self, name: str, description: str = "") -> dict[str, Any]:
        category = {"id": self.next_id(), "name": name, "description": description}
        self.categories[category["id"]] = category
        return category

    def add_product(
        self,
        name: str,
        price: float,
        *,
        category: dict[str, Any] | None = None,
        stock: int = 10,
        active: bool = True,
    ) -> dict[str, Any]:
        product = {
            "id": self.next_id(),
            "name": name,
            "description": "",
            "price": price,
            "stockQuantity": stock,
            "active": active,
            "imageUrls": [],
            "category": category,
        }
        self.products[product["id"]] = product
        return product

    def add_cart_item(self, customer_id: int, product: dict[str, Any], quantity: int) -> dict[str, Any]:
        item = {
            "id": self.next_id(),
            "productId": product["id"],
            "productName": product["name"],
            "quantity": quantity,
            "unitPrice": product["price"],
        }
        self.carts.setdefault(customer_id, []).append(item)
        return item

    def add_payment_method(
        self,
        customer_id: int,
        *,
        last4: str = "4242",
        brand: str = "Visa",
        default: bool = False,
        enabled: bool = True,
    ) -> dict[str, Any]:
        method = {
            "id": self.next_id(),
            "brand": brand,
            "last4": last4,
            "expiryMonth": 12,
            "expiryYear": 2099,
            "cardHolderName": "Test User",
            "defaultMethod": default,
            "enabled": enabled,
        }
        self.payment_methods.setdefault(customer_id, []).append(method)
        return method

    def add_order(
        self,
        customer_id: int | None,
        *,
        status: str = "PLACED",
        total: float = 100.0,
        **extra: Any,
    ) -> dict[str, Any]:
        order_id = self.next_id()
        order = {
            "id": order_id,
            "orderNumber": f"ORD-{order_id}",
            "status": status,
            "totalAmount": total,
            "customerId": customer_id,
            "items": [],
            **extra,
        }
        self.orders[order_id] = order
        self.order_payments.setdefault(order_id, [])
        self.order_events[order_id] = [{"status": status, "note": None, "createdAt": "2026-01-05T09:30:00Z"}]
        return order

    def add_session(self, customer_id: int, *, status: str = "INITIATED", amount: float = 100.0) -> dict[str, Any]:
        session = {
            "checkoutSessionId": str(uuid4()),
            "customerId": customer_id,
            "status": status,
            "amount": amount,
            "items": [],
            "orderId": None,
        }
        self.sessions[session["checkoutSessionId"]] = session
        return session

    def fail(self, method: str, path: str, status: int = 500, message: str = "Internal error") -> None:
        self.failures[(method, path)] = (status, message)

    # Inspection ------------------------------------------------------------

    def count(self, method: str, pattern: str) -> int:
        return sum(1 for called, path in self.calls if called == method and re.fullmatch(pattern, path))

    def approved_attempts(self, session_id: str) -> list[dict[str, Any]]:
        return [a for a in self.attempts if a["sessionId"] == session_id and a["status"] == "APPROVED"]

    def body_of(self, method: str, path: str) -> Any:
        for request in reversed(self.requests):
            if request.method == method and request.url.path.removeprefix("/api/v1") == path:
                return json.loads(request.content) if request.content else None
        raise AssertionError(f"No {method} {path} request recorded")

    # Transport -------------------------------------------------------------

    def __call__(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path.removeprefix("/api/v1")
        self.calls.append((request.method, path))
        self.requests.append(request)
        failure = self.failures.get((request.method, path))
        if failure is not None:
            return _error(*failure)
        body = json.loads(request.content) if request.content else None
        for method, pattern, handler in self._routes:
            if method != request.method:
                continue
            match = pattern.fullmatch(path)
            if match:
                return handler(request, body, *match.groups())
        return _error(404, "Not found")

    def _route(self, method: str, pattern: str, handler: Callable[..., httpx.Response]) -> None:
        self._routes.append((method, re.compile(pattern), handler))

    def _register_routes(self) -> None:
        self._route("POST", r"/auth/login", self._login)
        self._route("POST", r"/auth/register", self._register)
        self._route("GET", r"/auth/me", self._me)
        self._route("GET", r"/products", self._list_products)
        self._route("GET", r"/products/(\d+)", self._get_product)
        self._route("POST", r"/products", self._create_product)
        self._route("PUT", r"/products/(\d+)", self._update_product)
        self._route("DELETE", r"/products/(\d+)", self._delete_product)
        self._route("GET", r"/categories", self._list_categories)
        self._route("POST", r"/categories", self._create_category)
        self._route("PUT", r"/categories/(\d+)", self._update_category)
        self._route("DELETE", r"/categories/(\d+)", self._delete_category)
        self._route("GET", r"/customers/(\d+)", self._get_customer)
        self._route("GET", r"/customers/(\d+)/cart", self._get_cart)
        self._route("POST", r"/customers/(\d+)/cart/items", self._add_cart_item)
        self._route("PATCH", r"/customers/(\d+)/cart/items/(\d+)", self._update_cart_item)
        self._route("DELETE", r"/customers/(\d+)/cart/items/(\d+)", self._remove_cart_item)
        self._route("POST", r"/customers/(\d+)/orders/checkout", self._checkout)
        self._route("GET", r"/customers/(\d+)/orders", self._customer_orders)
        self._route("GET", r"/customers/(\d+)/payment-methods", self._list_methods)
        self._route("POST", r"/customers/(\d+)/payment-methods", self._create_method)
        self._route("PATCH", r"/customers/(\d+)/payment-methods/(\d+)/default", self._default_method)
        self._route("PATCH", r"/customers/(\d+)/payment-methods/(\d+)/enabled", self._enable_method)
        self._route("GET", r"/checkout-sessions/([^/]+)", self._get_session)
        self._route("POST", r"/checkout-sessions/([^/]+)/pay", self._pay)
        self._route("POST", r"/checkout-sessions/([^/]+)/finalize", self._finalize)
        self._route("GET", r"/orders/(\d+)", self._get_order)
        self._route("GET", r"/orders/(\d+)/tracking", self._order_tracking)
        self._route("GET", r"/orders/(\d+)/payments", self._order_payments)
        self._route("GET", r"/admin/orders", self._admin_orders)
        self._route("PATCH", r"/admin/orders/(\d+)/status", self._admin_order_status)
        self._route("GET", r"/admin/users", self._admin_users)
        self._route("PATCH", r"/admin/users/(\d+)", self._admin_update_user)
        self._route("PATCH", r"/admin/users/(\d+)/access", self._admin_user_access)

    # Helpers ---------------------------------------------------------------

    def _caller(self, request: httpx.Request) -> dict[str, Any] | None:
        header = request.headers.get("Authorization", "")
        if not header.startswith("Bearer "):
            return None
        user_id = self.tokens.get(header.removeprefix("Bearer "))
        return self.users.get(user_id) if user_id is not None else None

    def _is_admin(self, request: httpx.Request) -> bool:
        caller = self._caller(request)
        return caller is not None and "ROLE_ADMIN" in caller["roles"]

    def _auth_response(self, user: dict[str, Any]) -> httpx.Response:
        return httpx.Response(
            200,
            json={
                "tokenType": "Bearer",
                "accessToken": self.issue_token(user),
                "accessTokenExpiresInSeconds": 3600,
                "user": user,
            },
        )

    def _cart_json(self, customer_id: int) -> dict[str, Any]:
        items = []
        for item in self.carts.get(customer_id, []):
            items.append({**item, "subtotal": item["unitPrice"] * item["quantity"]})
        return {
            "id": customer_id,
            "customerId": customer_id,
            "items": items,
            "totalAmount": sum(item["subtotal"] for item in items),
        }

    def _find_method(self, customer_id: int, method_id: int) -> dict[str, Any] | None:
        for method in self.payment_methods.get(customer_id, []):
            if method["id"] == method_id:
                return method
        return None

    # Handlers --------------------------------------------------------------

    def _login(self, request, body):
        for user in self.users.values():
            if user["email"] == body["email"] and self.passwords.get(user["email"]) == body["password"]:
                return self._auth_response(user)
        return _error(401, "Invalid email or password.")

    def _register(self, request, body):
        if body["email"] in self.passwords:
            return _error(409, "Email is already registered.")
        user = self.add_user(body["email"], password=body["password"], full_name=body["fullName"])
        return self._auth_response(user)

    def _me(self, request, body):
        caller = self._caller(request)
        if caller is None:
            return _error(401, "Unauthorized")
        return httpx.Response(200, json=caller)

    def _list_products(self, request, body):
        return httpx.Response(200, json=list(self.products.values()))

    def _get_product(self, request, body, product_id):
        product = self.products.get(int(product_id))
        return httpx.Response(200, json=product) if product else _error(404, "Product not found")

    def _create_product(self, request, body):
        if not self._is_admin(request):
            return _error(403, "Access denied")
        category = self.categories.get(int(body["categoryId"]))
        product = self.add_product(body["name"], body["price"], category=category, stock=body["stockQuantity"])
        product.update(description=body["description"], imageUrls=body["imageUrls"], active=body["active"])
        return httpx.Response(201, json=product)

    def _update_product(self, request, body, product_id):
        if not self._is_admin(request):
            return _error(403, "Access denied")
        product = self.products.get(int(product_id))
        if product is None:
            return _error(404, "Product not found")
        product.update(
            name=body["name"],
            description=body["description"],
            price=body["price"],
            stockQuantity=body["stockQuantity"],
            category=self.categories.get(int(body["categoryId"])),
            imageUrls=body["imageUrls"],
            active=body["active"],
        )
        return httpx.Response(200, json=product)

    def _delete_product(self, request, body, product_id):
        if not self._is_admin(request):
            return _error(403, "Access denied")
        if self.products.pop(int(product_id), None) is None:
            return _error(404, "Product not found")
        return httpx.Response(204)

    def _list_categories(self, request, body):
        return httpx.Response(200, json=list(self.categories.values()))

    def _create_category(self, request, body):
        if not self._is_admin(request):
            return _error(403, "Access denied")
        if any(c["name"].lower() == body["name"].lower() for c in self.categories.values()):
            return _error(409, "Category already exists.")
        return httpx.Response(201, json=self.add_category(body["name"], body.get("description", "")))

    def _update_category(self, request, body, category_id):
        if not self._is_admin(request):
            return _error(403, "Access denied")
        category = self.categories.get(int(category_id))
        if category is None:
            return _error(404, "Category not found")
        category.update(name=body["name"], description=body.get("description", ""))
        return httpx.Response(200, json=category)

    def _delete_category(self, request, body, category_id):
        if not self._is_admin(request):
            return _error(403, "Access denied")
        if self.categories.pop(int(category_id), None) is None:
            return _error(404, "Category not found")
        return httpx.Response(204)

    def _get_customer(self, request, body, customer_id):
        if self._caller(request) is None:
            return _error(401, "Unauthorized")
        customer = self.customers.get(int(customer_id))
        return httpx.Response(200, json=customer) if customer else _error(404, "Customer not found")

    def _get_cart(self, request, body, customer_id):
        return httpx.Response(200, json=self._cart_json(int(customer_id)))

    def _add_cart_item(self, request, body, customer_id):
        product = self.products.get(int(body["productId"]))
        if product is None:
            return _error(404, "Product not found")
        customer = int(customer_id)
        for item in self.carts.get(customer, []):
            if item["productId"] == product["id"]:
                item["quantity"] += body["quantity"]
                break
        else:
            self.add_cart_item(customer, product, body["quantity"])
        return httpx.Response(200, json=self._cart_json(customer))

    def _update_cart_item(self, request, body, customer_id, item_id):
        customer = int(customer_id)
        for item in self.carts.get(customer, []):
            if item["id"] == int(item_id):
                item["quantity"] = body["quantity"]
                return httpx.Response(200, json=self._cart_json(customer))
        return _error(404, "Cart item not found")

    def _remove_cart_item(self, request, body, customer_id, item_id):
        customer = int(customer_id)
        self.carts[customer] = [item for item in self.carts.get(customer, []) if item["id"] != int(item_id)]
        return httpx.Response(204)

    def _checkout(self, request, body, customer_id):
        cart = self._cart_json(int(customer_id))
        if not cart["items"]:
            return _error(400, "Cart is empty")
        session = self.add_session(int(customer_id), amount=cart["totalAmount"])
        session["items"] = [
            {
                "productId": item["productId"],
                "productName": item["productName"],
                "quantity": item["quantity"],
                "unitPrice": item["unitPrice"],
                "subtotal": item["subtotal"],
            }
            for item in cart["items"]
        ]
        return httpx.Response(201, json=session)

    def _customer_orders(self, request, body, customer_id):
        orders = [order for order in self.orders.values() if order["customerId"] == int(customer_id)]
        return httpx.Response(200, json=orders)

    def _list_methods(self, request, body, customer_id):
        return httpx.Response(200, json=self.payment_methods.get(int(customer_id), []))

    def _create_method(self, request, body, customer_id):
        customer = int(customer_id)
        method = self.add_payment_method(
            customer,
            last4=body["cardNumber"][-4:],
            brand=body.get("brand") or "Card",
            default=body.get("defaultMethod", False),
        )
        method.update(
            expiryMonth=body["expiryMonth"],
            expiryYear=body["expiryYear"],
            cardHolderName=body["cardHolderName"],
        )
        if method["defaultMethod"]:
            for other in self.payment_methods[customer]:
                other["defaultMethod"] = other is method
        return httpx.Response(201, json=method)

    def _default_method(self, request, body, customer_id, method_id):
        customer = int(customer_id)
        method = self._find_method(customer, int(method_id))
        if method is None:
            return _error(404, "Payment method not found")
        for other in self.payment_methods[customer]:
            other["defaultMethod"] = other is method
        return httpx.Response(200, json=method)

    def _enable_method(self, request, body, customer_id, method_id):
        method = self._find_method(int(customer_id), int(method_id))
        if method is None:
            return _error(404, "Payment method not found")
        method["enabled"] = body["enabled"]
        return httpx.Response(200, json=method)

    def _get_session(self, request, body, session_id):
        session = self.sessions.get(session_id)
        return httpx.Response(200, json=session) if session else _error(404, "Checkout session not found")

    def _pay(self, request, body, session_id):
        session = self.sessions.get(session_id)
        if session is None:
            return _error(404, "Checkout session not found")
        key = request.headers.get(IDEMPOTENCY_HEADER)
        if not key:
            return _error(400, "Idempotency key is required")
        replay = self._approved_by_key.get(key)
        if replay is not None and replay["sessionId"] == session_id:
            return httpx.Response(200, json=replay["result"])
        if session["status"] not in {"INITIATED", "PAYMENT_PENDING", "FAILED"}:
            return _error(409, "Checkout session cannot be paid")
        method = self._find_method(session["customerId"], int(body["paymentMethodId"]))
        if method is None:
            return _error(404, "Payment method not found")
        if not method["enabled"]:
            return _error(400, "Payment method is disabled")

        transaction_id = self.next_id()
        decline = self.declines.get(method["id"])
        status = "DECLINED" if decline else "APPROVED"
        session["status"] = "FAILED" if decline else "APPROVED"
        result = {
            "status": status,
            "gatewayMessage": decline or "Approved",
            "gatewayResponseCode": "51" if decline else "00",
            "transactionId": transaction_id,
            "checkoutSessionStatus": session["status"],
        }
        self.attempts.append(
            {
                "id": transaction_id,
                "sessionId": session_id,
                "status": status,
                "methodId": method["id"],
                "key": key,
                "gatewayMessage": result["gatewayMessage"],
                "gatewayResponseCode": result["gatewayResponseCode"],
            }
        )
        if not decline:
            self._approved_by_key[key] = {"sessionId": session_id, "result": result}
        return httpx.Response(200, json=result)

    def _finalize(self, request, body, session_id):
        session = self.sessions.get(session_id)
        if session is None:
            return _error(404, "Checkout session not found")
        key = request.headers.get(IDEMPOTENCY_HEADER, "")
        if key in self._finalized_by_key:
            return httpx.Response(200, json=self._finalized_by_key[key])
        if session["status"] != "APPROVED":
            return _error(409, "Checkout session is not approved")
        customer_id = session["customerId"]
        order = self.add_order(customer_id, status="PAID", total=session["amount"])
        order["items"] = [{"id": self.next_id(), **item} for item in session["items"]]
        self.order_payments[order["id"]] = [
            {
                "id": attempt["id"],
                "status": attempt["status"],
                "gatewayMessage": attempt["gatewayMessage"],
                "gatewayResponseCode": attempt["gatewayResponseCode"],
            }
            for attempt in self.attempts
            if attempt["sessionId"] == session_id
        ]
        session["status"] = "CONSUMED"
        session["orderId"] = order["id"]
        self.carts[customer_id] = []
        result = {"orderId": order["id"], "orderNumber": order["orderNumber"], "status": "CONSUMED"}
        self._finalized_by_key[key] = result
        return httpx.Response(200, json=result)

    def _get_order(self, request, body, order_id):
        order = self.orders.get(int(order_id))
        return httpx.Response(200, json=order) if order else _error(404, "Order not found")

    def _order_tracking(self, request, body, order_id):
        order = self.orders.get(int(order_id))
        if order is None:
            return _error(404, "Order not found")
        return httpx.Response(200, json=self.order_events.get(order["id"], []))

    def _order_payments(self, request, body, order_id):
        if int(order_id) not in self.orders:
            return _error(404, "Order not found")
        return httpx.Response(200, json=self.order_payments.get(int(order_id), []))

    def _admin_orders(self, request, body):
        if not self._is_admin(request):
            return _error(403, "Access denied")
        return httpx.Response(200, json=list(self.orders.values()))

    def _admin_order_status(self, request, body, order_id):
        if not self._is_admin(request):
            return _error(403, "Access denied")
        order = self.orders.get(int(order_id))
        if order is None:
            return _error(404, "Order not found")
        order["status"] = body["status"]
        self.order_events.setdefault(order["id"], []).append({"status": body["status"], "note": body.get("note")})
        return httpx.Response(200, json=order)

    def _admin_users(self, request, body):
        if not self._is_admin(request):
            return _error(403, "Access denied")
        return httpx.Response(200, json=list(self.users.values()))

    def _admin_update_user(self, request, body, user_id):
        if not self._is_admin(request):
            return _error(403, "Access denied")
        user = self.users.get(int(user_id))
        if user is None:
            return _error(404, "User not found")
        body = dict(body)
        password = body.pop("password", None)
        if password:
            self.passwords[user["email"]] = password
        user.update(body)
        return httpx.Response(200, json=user)

    def _admin_user_access(self, request, body, user_id):
        if not self._is_admin(request):
            return _error(403, "Access denied")
        user = self.users.get(int(user_id))
        if user is None:
            return _error(404, "User not found")
        user["enabled"] = body["enabled"]
        return httpx.Response(200, json=user)


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest_asyncio.fixture
async def api(backend):
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(backend))
    client = ApiClient(base_url=BASE_URL, http_client=http_client)
    try:
        yield client
    finally:
        await http_client.aclose()


@pytest.fixture
def storage() -> MemorySessionStorage:
    return MemorySessionStorage()


@pytest_asyncio.fixture
async def store(api, storage) -> SessionStore:
    session_store = SessionStore(api, storage)
    await session_store.initialize()
    return session_store


@pytest.fixture
def customer(backend) -> dict[str, Any]:
    return backend.add_user("shopper@example.com", full_name="Sam Shopper")


@pytest.fixture
def admin(backend) -> dict[str, Any]:
    return backend.add_user("admin@example.com", full_name="Ada Admin", roles=("ROLE_ADMIN",), customer=False)


@pytest_asyncio.fixture
async def customer_session(store, customer) -> SessionStore:
    await store.login(customer["email"], PASSWORD)
    return store


@pytest_asyncio.fixture
async def admin_session(store, admin) -> SessionStore:
    await store.login(admin["email"], PASSWORD)
    return store


@pytest.fixture
def cart_service(api, store) -> CartService:
    return CartService(api, store)


@pytest.fixture
def observability() -> CheckoutObservabilityStore:
    return CheckoutObservabilityStore()
