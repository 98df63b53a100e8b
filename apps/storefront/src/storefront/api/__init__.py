"""HTTP gateway to the storefront REST backend."""

from .client import IDEMPOTENCY_HEADER, ApiClient, RequestError

__all__ = ["ApiClient", "IDEMPOTENCY_HEADER", "RequestError"]
