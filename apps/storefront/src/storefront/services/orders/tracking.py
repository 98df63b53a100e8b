"""Delivery timeline projection from an order's raw status."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

PLACED = "PLACED"
PROCESSING = "PROCESSING"
SHIPPED = "SHIPPED"
DELIVERED = "DELIVERED"
CANCELLED = "CANCELLED"

TRACKING_SEQUENCE: Sequence[str] = (PLACED, PROCESSING, SHIPPED, DELIVERED)

_STAGE_LABELS = {
    PLACED: "Order Placed",
    PROCESSING: "Processing",
    SHIPPED: "Shipped",
    DELIVERED: "Delivered",
    CANCELLED: "Cancelled",
}

# Backend spellings folded onto the canonical stages.
_STATUS_ALIASES = {
    "PENDING": PLACED,
    "PENDING_PAYMENT": PLACED,
    "CREATED": PLACED,
    "PAID": PLACED,
    "CONFIRMED": PLACED,
    "CANCELED": CANCELLED,
    "COMPLETED": DELIVERED,
}


@dataclass(frozen=True, slots=True)
class TrackingStage:
    label: str
    step: str
    completed: bool
    current: bool


@dataclass(frozen=True, slots=True)
class TrackingTimeline:
    status: str
    label: str
    cancelled: bool
    stages: list[TrackingStage] = field(default_factory=list)


def normalize_tracking_status(status: str | None) -> str | None:
    """Map a raw status onto the canonical sequence, ``None`` when unrecognised."""

    value = (status or "").strip().upper()
    value = _STATUS_ALIASES.get(value, value)
    if value == CANCELLED or value in TRACKING_SEQUENCE:
        return value
    return None


def is_cancelled(status: str | None) -> bool:
    return normalize_tracking_status(status) == CANCELLED


def get_order_status_label(status: str | None, *, payment_approved: bool = False) -> str:
    normalized = normalize_tracking_status(status)
    if normalized is None:
        raw = (status or "").strip()
        return raw.replace("_", " ").title() if raw else "Unknown"
    if normalized == PLACED and (payment_approved or (status or "").strip().upper() == "PAID"):
        return "Payment Confirmed"
    return _STAGE_LABELS[normalized]


def get_tracking_stages(status: str | None) -> list[TrackingStage]:
    """One entry per canonical stage.

    Stages before the current one are completed and exactly one is current. A
    cancelled order has no current stage. Unknown statuses are shown at the
    first stage.
    """

    normalized = normalize_tracking_status(status)
    if normalized == CANCELLED:
        return [
            TrackingStage(label=_STAGE_LABELS[step], step=step, completed=False, current=False)
            for step in TRACKING_SEQUENCE
        ]
    current_index = TRACKING_SEQUENCE.index(normalized) if normalized else 0
    return [
        TrackingStage(
            label=_STAGE_LABELS[step],
            step=step,
            completed=index < current_index,
            current=index == current_index,
        )
        for index, step in enumerate(TRACKING_SEQUENCE)
    ]


def build_tracking_timeline(status: str | None, *, payment_approved: bool = False) -> TrackingTimeline:
    return TrackingTimeline(
        status=normalize_tracking_status(status) or (status or ""),
        label=get_order_status_label(status, payment_approved=payment_approved),
        cancelled=is_cancelled(status),
        stages=get_tracking_stages(status),
    )


def get_next_tracking_status(status: str | None) -> str | None:
    """The single next forward stage, or ``None`` once delivered, cancelled or unknown."""

    normalized = normalize_tracking_status(status)
    if normalized is None or normalized == CANCELLED:
        return None
    index = TRACKING_SEQUENCE.index(normalized)
    if index + 1 >= len(TRACKING_SEQUENCE):
        return None
    return TRACKING_SEQUENCE[index + 1]


def can_cancel(status: str | None) -> bool:
    normalized = normalize_tracking_status(status)
    return normalized is not None and normalized not in (CANCELLED, DELIVERED)
