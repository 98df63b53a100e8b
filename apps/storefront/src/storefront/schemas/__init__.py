from .admin import AdminUser, AdminUserUpdate, is_user_enabled
from .auth import ADMIN_ROLE, AuthResponse, AuthUser, CustomerProfile, ViewMode
from .cart import Cart, CartItem
from .catalog import Category, Product
from .checkout import (
    CheckoutLineItem,
    CheckoutSession,
    CheckoutSessionStatus,
    FinalizeResult,
    PaymentResult,
)
from .common import EntityId
from .order import Order, OrderCustomer, OrderItem, OrderTrackingEvent
from .payment import PaymentMethod, PaymentTransaction

__all__ = [
    "ADMIN_ROLE",
    "AdminUser",
    "AdminUserUpdate",
    "AuthResponse",
    "AuthUser",
    "Cart",
    "CartItem",
    "Category",
    "CheckoutLineItem",
    "CheckoutSession",
    "CheckoutSessionStatus",
    "CustomerProfile",
    "EntityId",
    "FinalizeResult",
    "Order",
    "OrderCustomer",
    "OrderItem",
    "OrderTrackingEvent",
    "PaymentMethod",
    "PaymentResult",
    "PaymentTransaction",
    "Product",
    "ViewMode",
    "is_user_enabled",
]
