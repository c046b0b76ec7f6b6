"""Tests for the paid overlay lifecycle."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from duewise.domain.errors import PaidStateError
from duewise.domain.models import PaidRecord, Reminder, ReminderSource
from duewise.services.paid_state import (
    PaidLedger,
    cleanup_expired,
    describe_time_remaining,
    mark_paid,
    revert_paid,
    split_paid,
    time_until_removal,
)

PAID_AT = datetime(2024, 7, 10, 9, 0)


def _reminder(reminder_id="loan:L1:2024-07-15", source=ReminderSource.LOAN):
    return Reminder(
        id=reminder_id,
        title="Car EMI",
        amount=10662.0,
        due_date=date(2024, 7, 15),
        source_type=source,
        is_auto_generated=True,
        reminder_window_days=8,
    )


class MemoryStore:
    """Paid-state store kept in a dict."""

    def __init__(self, records=None):
        self.saved = dict(records or {})
        self.save_calls = 0

    def load(self):
        return dict(self.saved)

    def save(self, records):
        self.save_calls += 1
        self.saved = dict(records)


class BrokenStore:
    """Store whose backend is unavailable."""

    def load(self):
        raise PaidStateError("storage offline")

    def save(self, records):
        raise PaidStateError("storage offline")


class TestOverlayFunctions:
    """Pure overlay operations."""

    def test_mark_paid_records_timestamp_and_source(self):
        records = mark_paid({}, _reminder(), PAID_AT)

        record = records["loan:L1:2024-07-15"]
        assert record.paid_at == PAID_AT
        assert record.source_type is ReminderSource.LOAN

    def test_mark_paid_does_not_mutate_input(self):
        original = {}
        mark_paid(original, _reminder(), PAID_AT)

        assert original == {}

    def test_latest_mark_wins(self):
        later = PAID_AT + timedelta(hours=5)
        records = mark_paid(mark_paid({}, _reminder(), PAID_AT), _reminder(), later)

        assert records["loan:L1:2024-07-15"].paid_at == later

    def test_aware_timestamps_are_stored_naive(self):
        records = mark_paid({}, _reminder(), datetime(2024, 7, 10, 9, 0, tzinfo=timezone.utc))

        assert records["loan:L1:2024-07-15"].paid_at.tzinfo is None

    def test_revert_removes_overlay(self):
        records = mark_paid({}, _reminder(), PAID_AT)

        assert revert_paid(records, "loan:L1:2024-07-15") == {}
        assert revert_paid({}, "missing") == {}

    def test_cleanup_keeps_recent_and_drops_expired(self):
        records = mark_paid({}, _reminder(), PAID_AT)

        assert "loan:L1:2024-07-15" in cleanup_expired(records, PAID_AT + timedelta(days=1))
        assert cleanup_expired(records, PAID_AT + timedelta(days=3)) == {}

    def test_cleanup_boundary_is_inclusive(self):
        records = mark_paid({}, _reminder(), PAID_AT)

        assert cleanup_expired(records, PAID_AT + timedelta(days=2)) == records
        assert cleanup_expired(records, PAID_AT + timedelta(days=2, seconds=1)) == {}

    def test_cleanup_is_idempotent(self):
        records = mark_paid(mark_paid({}, _reminder("a"), PAID_AT), _reminder("b"), PAID_AT + timedelta(days=2))
        now = PAID_AT + timedelta(days=3)

        once = cleanup_expired(records, now)
        twice = cleanup_expired(once, now)

        assert once == twice
        assert list(once) == ["b"]

    def test_custom_retention(self):
        records = mark_paid({}, _reminder(), PAID_AT)

        assert cleanup_expired(records, PAID_AT + timedelta(hours=2), timedelta(hours=1)) == {}

    def test_split_paid(self):
        reminders = [_reminder("a"), _reminder("b"), _reminder("c")]
        records = mark_paid({}, reminders[1], PAID_AT)

        pending, paid = split_paid(reminders, records)

        assert [r.id for r in pending] == ["a", "c"]
        assert [r.id for r in paid] == ["b"]


class TestTimeRemaining:
    """Countdown shown next to paid reminders."""

    def test_time_until_removal(self):
        record = PaidRecord("a", ReminderSource.SMART, PAID_AT)

        assert time_until_removal(record, PAID_AT + timedelta(hours=12)) == timedelta(hours=36)
        assert time_until_removal(record, PAID_AT + timedelta(days=2)) is None

    @pytest.mark.parametrize(
        "remaining, expected",
        [
            (timedelta(hours=36), "1 day left"),
            (timedelta(hours=47, minutes=59), "1 day left"),
            (timedelta(days=2, hours=1), "2 days left"),
            (timedelta(hours=5, minutes=30), "5 hours left"),
            (timedelta(hours=1, minutes=10), "1 hour left"),
            (timedelta(minutes=20), "0 hours left"),
            (None, None),
        ],
    )
    def test_describe_time_remaining(self, remaining, expected):
        assert describe_time_remaining(remaining) == expected


class TestPaidLedger:
    """Single-writer ledger over a store."""

    def test_mark_revert_and_persist(self):
        store = MemoryStore()
        ledger = PaidLedger(store, clock=lambda: PAID_AT)

        record = ledger.mark_paid(_reminder())

        assert record.paid_at == PAID_AT
        assert ledger.is_paid("loan:L1:2024-07-15")
        assert "loan:L1:2024-07-15" in store.saved

        assert ledger.revert_paid("loan:L1:2024-07-15") is True
        assert ledger.revert_paid("loan:L1:2024-07-15") is False
        assert store.saved == {}

    def test_cleanup_lifecycle(self):
        store = MemoryStore()
        ledger = PaidLedger(store, clock=lambda: PAID_AT)
        ledger.mark_paid(_reminder(), PAID_AT)

        assert ledger.cleanup_expired(PAID_AT + timedelta(days=1)) == 0
        assert ledger.is_paid("loan:L1:2024-07-15")
        assert ledger.cleanup_expired(PAID_AT + timedelta(days=3)) == 1
        assert not ledger.is_paid("loan:L1:2024-07-15")
        assert ledger.cleanup_expired(PAID_AT + timedelta(days=3)) == 0

    def test_unchanged_state_is_not_rewritten(self):
        store = MemoryStore()
        ledger = PaidLedger(store, clock=lambda: PAID_AT)
        ledger.mark_paid(_reminder(), PAID_AT)
        calls = store.save_calls

        ledger.cleanup_expired(PAID_AT + timedelta(hours=1))
        ledger.revert_paid("never-paid")

        assert store.save_calls == calls

    def test_load_drops_expired_records(self):
        stale = PaidRecord("old", ReminderSource.LOAN, PAID_AT - timedelta(days=5))
        fresh = PaidRecord("new", ReminderSource.SMART, PAID_AT - timedelta(hours=1))
        store = MemoryStore({"old": stale, "new": fresh})
        ledger = PaidLedger(store, clock=lambda: PAID_AT)

        loaded = ledger.load()

        assert list(loaded) == ["new"]
        assert list(store.saved) == ["new"]

    def test_records_property_is_a_copy(self):
        ledger = PaidLedger(MemoryStore(), clock=lambda: PAID_AT)
        ledger.mark_paid(_reminder())

        snapshot = ledger.records
        snapshot.clear()

        assert ledger.is_paid("loan:L1:2024-07-15")

    def test_store_failures_are_logged_not_raised(self, caplog):
        ledger = PaidLedger(BrokenStore(), clock=lambda: PAID_AT)

        with caplog.at_level("ERROR", logger="duewise"):
            assert ledger.load() == {}
            ledger.mark_paid(_reminder())

        assert ledger.is_paid("loan:L1:2024-07-15")
        assert "Could not load paid reminders" in caplog.text
        assert "Could not save paid reminders" in caplog.text
