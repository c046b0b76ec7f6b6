"""Plain domain records shared by the computation services.

These are intentionally not ORM models: loans and transactions are owned by
external collaborators and arrive here as snapshots.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Optional


class LoanType(str, Enum):
    """Loan categories used for progress defaults."""

    CREDIT_CARD = "credit_card"
    PERSONAL = "personal"
    CAR = "car"
    HOME = "home"
    BUSINESS = "business"
    OTHER = "other"

    @classmethod
    def parse(cls, value: object) -> "LoanType":
        """Map free-form source labels ("Personal Loan", "car_loan") onto a member."""

        if isinstance(value, LoanType):
            return value
        if not isinstance(value, str):
            return cls.OTHER
        text = re.sub(r"[\s_\-]+", " ", value.strip().lower())
        text = re.sub(r"\bloan\b", "", text).strip()
        key = text.replace(" ", "_")
        for member in cls:
            if member.value == key:
                return member
        return cls.OTHER


class ReminderSource(str, Enum):
    LOAN = "loan"
    SMART = "smart"
    CUSTOM = "custom"


class Frequency(str, Enum):
    MONTHLY = "monthly"
    WEEKLY = "weekly"


@dataclass(slots=True, frozen=True)
class Loan:
    """Static loan terms as provided by the loan service.

    ``current_balance``, ``term_years`` and ``remaining_term`` are optional
    source fields only consulted by the payoff planner's fallbacks.
    """

    id: str
    name: str
    principal: Optional[float]
    annual_rate_percent: float
    tenure_months: int
    emi_start_date: Optional[date]
    monthly_payment: float
    is_interest_only: bool = False
    loan_type: LoanType = LoanType.OTHER
    status: str = "active"
    lender: Optional[str] = None
    current_balance: Optional[float] = None
    term_years: Optional[float] = None
    remaining_term: Optional[float] = None

    @property
    def is_active(self) -> bool:
        return (self.status or "").strip().lower() == "active"


@dataclass(slots=True, frozen=True)
class Transaction:
    """A ledger transaction snapshot used for recurring-payment mining."""

    id: str
    amount: float
    category: str
    description: str
    occurred_on: date | datetime
    type: str = "expense"

    @property
    def day(self) -> date:
        """The transaction's calendar date (datetimes are truncated)."""

        if isinstance(self.occurred_on, datetime):
            return self.occurred_on.date()
        return self.occurred_on


@dataclass(slots=True, frozen=True)
class RecurringPattern:
    """A repeating obligation inferred from transaction history."""

    category: str
    normalized_description: str
    description: str
    average_amount: float
    frequency: Frequency
    last_occurrence: date
    occurrence_count: int
    confidence: float


@dataclass(slots=True, frozen=True)
class Reminder:
    """A displayable payment reminder."""

    id: str
    title: str
    amount: float
    due_date: date
    source_type: ReminderSource
    is_auto_generated: bool
    reminder_window_days: int
    description: str = ""
    category: str = ""
    repeat: str = "none"
    reminder_date: Optional[date] = None
    urgency: str = "upcoming"


@dataclass(slots=True, frozen=True)
class PaidRecord:
    """Overlay marking a reminder as paid at a point in time."""

    reminder_id: str
    source_type: ReminderSource
    paid_at: datetime


__all__ = [
    "Frequency",
    "Loan",
    "LoanType",
    "PaidRecord",
    "RecurringPattern",
    "Reminder",
    "ReminderSource",
    "Transaction",
]
