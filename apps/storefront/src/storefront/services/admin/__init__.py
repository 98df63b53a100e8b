"""Admin console flows for categories, products, users and orders."""

from .base import ADMIN_FLOW_ERRORS, AdminAccessRequiredError, AdminActionError, AdminFlow, Confirm
from .categories import CategoryAdminFlow
from .notices import Notice, NoticeBoard, NoticeKind
from .orders import AdminOrderFlow
from .products import ProductAdminFlow
from .users import SelfDisableError, UserAdminFlow, prepare_user_update

__all__ = [
    "ADMIN_FLOW_ERRORS",
    "AdminAccessRequiredError",
    "AdminActionError",
    "AdminFlow",
    "AdminOrderFlow",
    "CategoryAdminFlow",
    "Confirm",
    "Notice",
    "NoticeBoard",
    "NoticeKind",
    "ProductAdminFlow",
    "SelfDisableError",
    "UserAdminFlow",
    "prepare_user_update",
]
