"""Pytest configuration and shared fixtures for DueWise tests.

Provides an isolated SQLite database for the paid-state store plus factories
for loan and transaction snapshots, so service tests never touch a real
data directory.
"""

from __future__ import annotations

import tempfile
from datetime import date
from pathlib import Path

import pytest
from sqlmodel import SQLModel, create_engine

from duewise.domain.models import Loan, LoanType, Transaction
from duewise.infra.database import create_session_factory
from duewise.models import PaidReminder  # noqa: F401  # registers the table

# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture(scope="function")
def db_engine():
    """Create an isolated SQLite database file for each test.

    Yields:
        Engine: SQLModel engine with all tables created
    """
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = Path(f.name)

    engine = create_engine(f"sqlite:///{db_path}", echo=False)
    SQLModel.metadata.create_all(engine)

    yield engine

    engine.dispose()
    db_path.unlink(missing_ok=True)


@pytest.fixture(scope="function")
def session_factory(db_engine):
    """Session factory matching the one used by the application context."""

    return create_session_factory(db_engine)


@pytest.fixture
def data_dir(tmp_path, monkeypatch):
    """Point DUEWISE_DATA_DIR at a temp dir and clear overriding env vars."""

    monkeypatch.setenv("DUEWISE_DATA_DIR", str(tmp_path))
    monkeypatch.delenv("DUEWISE_DATABASE_URL", raising=False)
    return tmp_path


# =============================================================================
# Test Data Factories
# =============================================================================


@pytest.fixture
def loan_factory():
    """Factory for loan snapshots with sensible defaults."""

    counter = {"next": 1}

    def _create_loan(
        *,
        id: str | None = None,
        name: str = "Test Loan",
        principal: float | None = 120000.0,
        annual_rate_percent: float = 12.0,
        tenure_months: int = 12,
        emi_start_date: date | None = date(2024, 1, 15),
        monthly_payment: float = 10662.0,
        is_interest_only: bool = False,
        loan_type: LoanType | str = LoanType.PERSONAL,
        status: str = "active",
        **extra,
    ) -> Loan:
        if id is None:
            id = f"L{counter['next']}"
            counter["next"] += 1
        return Loan(
            id=id,
            name=name,
            principal=principal,
            annual_rate_percent=annual_rate_percent,
            tenure_months=tenure_months,
            emi_start_date=emi_start_date,
            monthly_payment=monthly_payment,
            is_interest_only=is_interest_only,
            loan_type=LoanType.parse(loan_type),
            status=status,
            **extra,
        )

    return _create_loan


@pytest.fixture
def transaction_factory():
    """Factory for transaction snapshots (expenses by default)."""

    counter = {"next": 1}

    def _create_transaction(
        amount: float,
        occurred_on: date,
        *,
        category: str = "Rent",
        description: str = "Monthly rent payment",
        type: str = "expense",
    ) -> Transaction:
        tx_id = f"T{counter['next']}"
        counter["next"] += 1
        return Transaction(
            id=tx_id,
            amount=amount,
            category=category,
            description=description,
            occurred_on=occurred_on,
            type=type,
        )

    return _create_transaction


# =============================================================================
# Helpers
# =============================================================================


def assert_float_equal(actual: float, expected: float, tolerance: float = 0.01):
    """Assert that two floats are equal within a tolerance.

    Args:
        actual: Actual value
        expected: Expected value
        tolerance: Maximum allowed difference (default 0.01)

    Raises:
        AssertionError: If values differ by more than tolerance
    """
    assert abs(actual - expected) <= tolerance, (
        f"Expected {expected}, got {actual} (difference: {abs(actual - expected)})"
    )
