from .cart_service import CartService, EmptyCartError

__all__ = ["CartService", "EmptyCartError"]
