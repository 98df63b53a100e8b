"""In-memory observability helper for checkout payment flows."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from threading import Lock
from typing import Dict


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class CheckoutEventLog:
    last_approval_at: datetime | None = None
    last_order_id: str | None = None
    last_decline_at: datetime | None = None
    last_decline_reason: str | None = None
    last_error_at: datetime | None = None
    last_error: str | None = None


@dataclass
class CheckoutObservabilitySnapshot:
    totals: Dict[str, int]
    events: CheckoutEventLog

    def as_dict(self) -> Dict[str, object]:
        return {
            "totals": self.totals,
            "events": {
                "last_approval_at": self.events.last_approval_at.isoformat()
                if self.events.last_approval_at
                else None,
                "last_order_id": self.events.last_order_id,
                "last_decline_at": self.events.last_decline_at.isoformat()
                if self.events.last_decline_at
                else None,
                "last_decline_reason": self.events.last_decline_reason,
                "last_error_at": self.events.last_error_at.isoformat() if self.events.last_error_at else None,
                "last_error": self.events.last_error,
            },
        }


@dataclass
class CheckoutObservabilityStore:
    _lock: Lock = field(default_factory=Lock)
    _totals: Counter = field(default_factory=Counter)
    _events: CheckoutEventLog = field(default_factory=CheckoutEventLog)

    def record_attempt(self) -> None:
        with self._lock:
            self._totals["attempts"] += 1

    def record_rejected_locally(self, reason: str) -> None:
        with self._lock:
            self._totals["rejected_locally"] += 1
            self._events.last_error_at = _utcnow()
            self._events.last_error = reason

    def record_approval(self) -> None:
        with self._lock:
            self._totals["approved"] += 1
            self._events.last_approval_at = _utcnow()

    def record_decline(self, reason: str | None) -> None:
        with self._lock:
            self._totals["declined"] += 1
            self._events.last_decline_at = _utcnow()
            self._events.last_decline_reason = reason

    def record_finalized(self, order_id: str) -> None:
        with self._lock:
            self._totals["finalized"] += 1
            self._events.last_order_id = order_id

    def record_error(self, error: str) -> None:
        with self._lock:
            self._totals["errors"] += 1
            self._events.last_error_at = _utcnow()
            self._events.last_error = error

    def snapshot(self) -> CheckoutObservabilitySnapshot:
        with self._lock:
            events = CheckoutEventLog(
                last_approval_at=self._events.last_approval_at,
                last_order_id=self._events.last_order_id,
                last_decline_at=self._events.last_decline_at,
                last_decline_reason=self._events.last_decline_reason,
                last_error_at=self._events.last_error_at,
                last_error=self._events.last_error,
            )
            return CheckoutObservabilitySnapshot(totals=dict(self._totals), events=events)

    def reset(self) -> None:
        with self._lock:
            self._totals.clear()
            self._events = CheckoutEventLog()


_STORE = CheckoutObservabilityStore()


def get_checkout_store() -> CheckoutObservabilityStore:
    return _STORE
