"""Tests for the SQLModel paid-state store."""

from __future__ import annotations

from contextlib import contextmanager
from datetime import date, datetime, timedelta

import pytest
from sqlalchemy.exc import OperationalError

from duewise.domain.errors import PaidStateError
from duewise.domain.models import PaidRecord, Reminder, ReminderSource
from duewise.infra.repositories import SQLModelPaidStateStore
from duewise.models import PaidReminder
from duewise.services.paid_state import PaidLedger

PAID_AT = datetime(2024, 7, 10, 9, 0)


def _record(reminder_id, source=ReminderSource.LOAN, paid_at=PAID_AT):
    return PaidRecord(reminder_id=reminder_id, source_type=source, paid_at=paid_at)


def test_save_then_load(session_factory):
    store = SQLModelPaidStateStore(session_factory, user_id="alice")
    records = {
        "loan:L1:2024-07-15": _record("loan:L1:2024-07-15"),
        "smart:rent:rent:monthly:2024-08-01": _record(
            "smart:rent:rent:monthly:2024-08-01", ReminderSource.SMART
        ),
    }

    store.save(records)

    assert store.load() == records


def test_naive_paid_at_round_trips(session_factory):
    store = SQLModelPaidStateStore(session_factory, user_id="alice")
    paid_at = datetime(2024, 7, 10, 9, 0, 15, 250000)

    store.save({"a": _record("a", paid_at=paid_at)})

    loaded = store.load()["a"].paid_at
    assert loaded == paid_at
    assert loaded.tzinfo is None
    assert PaidReminder.__table__.c.paid_at.type.timezone is False


def test_empty_store_loads_empty(session_factory):
    assert SQLModelPaidStateStore(session_factory, user_id="alice").load() == {}


def test_save_replaces_previous_rows(session_factory):
    store = SQLModelPaidStateStore(session_factory, user_id="alice")
    store.save({"a": _record("a"), "b": _record("b")})

    store.save({"b": _record("b", paid_at=PAID_AT + timedelta(hours=1))})

    loaded = store.load()
    assert list(loaded) == ["b"]
    assert loaded["b"].paid_at == PAID_AT + timedelta(hours=1)


def test_users_are_isolated(session_factory):
    alice = SQLModelPaidStateStore(session_factory, user_id="alice")
    bob = SQLModelPaidStateStore(session_factory, user_id="bob")

    alice.save({"a": _record("a")})
    bob.save({})

    assert list(alice.load()) == ["a"]
    assert bob.load() == {}


def test_unknown_source_type_is_reported(session_factory):
    with session_factory() as session:
        session.add(
            PaidReminder(user_id="alice", reminder_id="x", source_type="mystery", paid_at=PAID_AT)
        )

    with pytest.raises(PaidStateError):
        SQLModelPaidStateStore(session_factory, user_id="alice").load()


def test_database_errors_are_wrapped():
    @contextmanager
    def failing_factory():
        raise OperationalError("SELECT 1", {}, Exception("database is locked"))
        yield  # pragma: no cover

    store = SQLModelPaidStateStore(failing_factory, user_id="alice")

    with pytest.raises(PaidStateError):
        store.load()
    with pytest.raises(PaidStateError):
        store.save({})


def test_ledger_state_survives_restart(session_factory):
    reminder = Reminder(
        id="loan:L1:2024-07-15",
        title="Car EMI",
        amount=10662.0,
        due_date=date(2024, 7, 15),
        source_type=ReminderSource.LOAN,
        is_auto_generated=True,
        reminder_window_days=8,
    )
    store = SQLModelPaidStateStore(session_factory, user_id="alice")
    PaidLedger(store, clock=lambda: PAID_AT).mark_paid(reminder)

    next_day = PaidLedger(store, clock=lambda: PAID_AT + timedelta(days=1))
    assert next_day.load() == {reminder.id: _record(reminder.id)}

    later = PaidLedger(store, clock=lambda: PAID_AT + timedelta(days=3))
    assert later.load() == {}
    assert store.load() == {}
