from decimal import Decimal

from storefront.core.formatting import format_currency, format_date
from storefront.observability.checkout import CheckoutObservabilityStore


def test_snapshot_tracks_totals_and_last_events():
    store = CheckoutObservabilityStore()

    store.record_attempt()
    store.record_decline("Insufficient funds")
    store.record_attempt()
    store.record_approval()
    store.record_finalized("42")

    data = store.snapshot().as_dict()
    assert data["totals"] == {"attempts": 2, "declined": 1, "approved": 1, "finalized": 1}
    assert data["events"]["last_decline_reason"] == "Insufficient funds"
    assert data["events"]["last_order_id"] == "42"
    assert data["events"]["last_approval_at"] is not None
    assert data["events"]["last_error"] is None


def test_reset_clears_everything():
    store = CheckoutObservabilityStore()
    store.record_error("Gateway unavailable")

    store.reset()

    assert store.snapshot().as_dict()["totals"] == {}
    assert store.snapshot().events.last_error is None


def test_currency_and_date_formatting():
    assert format_currency(Decimal("1234.5")) == "$1,234.50"
    assert format_currency(-3) == "-$3.00"
    assert format_currency(None) == "$0.00"
    assert format_date(None) == "N/A"
    assert format_date("2024-03-05T10:15:00Z") == "2024-03-05 10:15"
