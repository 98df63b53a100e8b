"""Order tracking projection and order detail loading."""

from .details import OrderDetails, customer_email, customer_label, load_order_details
from .tracking import (
    CANCELLED,
    DELIVERED,
    PLACED,
    PROCESSING,
    SHIPPED,
    TRACKING_SEQUENCE,
    TrackingStage,
    TrackingTimeline,
    build_tracking_timeline,
    can_cancel,
    get_next_tracking_status,
    get_order_status_label,
    get_tracking_stages,
    is_cancelled,
    normalize_tracking_status,
)

__all__ = [
    "CANCELLED",
    "DELIVERED",
    "PLACED",
    "PROCESSING",
    "SHIPPED",
    "TRACKING_SEQUENCE",
    "OrderDetails",
    "TrackingStage",
    "TrackingTimeline",
    "build_tracking_timeline",
    "can_cancel",
    "customer_email",
    "customer_label",
    "get_next_tracking_status",
    "get_order_status_label",
    "get_tracking_stages",
    "is_cancelled",
    "load_order_details",
    "normalize_tracking_status",
]
