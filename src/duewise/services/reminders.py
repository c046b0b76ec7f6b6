"""Reminder generation from loan schedules and recurring patterns."""

from __future__ import annotations

import logging
import re
from datetime import date, datetime, timedelta
from typing import Iterable

from ..domain.errors import InvalidLoanTerms, MissingField
from ..domain.models import Frequency, Loan, RecurringPattern, Reminder, ReminderSource
from .amortization import (
    add_months,
    as_date,
    calculate_emi,
    compute_outstanding_balance,
    months_between,
    round_half_up,
)
from .patterns import format_amount

logger = logging.getLogger(__name__)

LOAN_WINDOW_DAYS = 8
MONTHLY_WINDOW_DAYS = 8
WEEKLY_WINDOW_DAYS = 2
LOAN_CATEGORY = "Loan/Debt Payments"


def days_until_due(due_date: date, today: date | datetime | None = None) -> int:
    """Whole days from ``today`` to ``due_date``; negative when overdue."""

    return (due_date - as_date(today)).days


def _slug(text: str) -> str:
    return re.sub(r"[^a-z0-9]+", "_", text.lower()).strip("_") or "payment"


def loan_reminder_id(loan_id: object, due_date: date) -> str:
    return f"loan:{loan_id}:{due_date.isoformat()}"


def pattern_reminder_id(pattern: RecurringPattern, due_date: date) -> str:
    return ":".join(
        [
            "smart",
            _slug(pattern.category),
            _slug(pattern.normalized_description),
            pattern.frequency.value,
            due_date.isoformat(),
        ]
    )


def _urgency(days: int) -> str:
    return "due" if days <= 1 else "upcoming"


def _reminder_date(due_date: date, window_days: int, today: date) -> date:
    return max(due_date - timedelta(days=window_days), today)


def _installment_amount(loan: Loan) -> float:
    """The loan's EMI; the level annuity payment when none is recorded."""

    if loan.monthly_payment:
        return float(loan.monthly_payment)
    if loan.is_interest_only:
        return float(round_half_up(loan.principal * loan.annual_rate_percent / 100 / 12))
    return float(
        round_half_up(calculate_emi(loan.principal, loan.annual_rate_percent, loan.tenure_months))
    )


def next_pattern_due_date(pattern: RecurringPattern, today: date) -> date:
    """First occurrence strictly after ``today`` following ``pattern.last_occurrence``."""

    last = pattern.last_occurrence
    if pattern.frequency is Frequency.WEEKLY:
        steps = max(1, (today - last).days // 7 + 1)
        return last + timedelta(days=7 * steps)

    # Anchored on the original day so short months do not drift the schedule.
    steps = max(1, months_between(last, today))
    due = add_months(last, steps)
    while due <= today:
        steps += 1
        due = add_months(last, steps)
    return due


def loan_reminders(
    loans: Iterable[Loan],
    today: date,
    *,
    window_days: int = LOAN_WINDOW_DAYS,
    currency_symbol: str = "₹",
) -> list[Reminder]:
    """EMI reminders for active loans whose next installment falls inside the window."""

    reminders: list[Reminder] = []
    for loan in loans:
        if not loan.is_active:
            continue
        try:
            position = compute_outstanding_balance(loan, today)
        except (InvalidLoanTerms, MissingField) as exc:
            logger.warning(
                "Skipping loan reminder",
                extra={"loan_id": loan.id, "reason": str(exc)},
            )
            continue
        if position.payments_made >= loan.tenure_months:
            continue

        due = position.next_due_date
        days = days_until_due(due, today)
        if not 0 <= days <= window_days:
            continue
        payment = _installment_amount(loan)
        reminders.append(
            Reminder(
                id=loan_reminder_id(loan.id, due),
                title=f"{loan.name} EMI",
                amount=payment,
                due_date=due,
                source_type=ReminderSource.LOAN,
                is_auto_generated=True,
                reminder_window_days=window_days,
                description=(
                    f"EMI payment of {format_amount(payment, currency_symbol)}"
                    f" is due on {due:%d %b %Y}"
                ),
                category=LOAN_CATEGORY,
                repeat=Frequency.MONTHLY.value,
                reminder_date=_reminder_date(due, window_days, today),
                urgency=_urgency(days),
            )
        )
    return reminders


def pattern_reminders(
    patterns: Iterable[RecurringPattern],
    today: date,
    *,
    monthly_window_days: int = MONTHLY_WINDOW_DAYS,
    weekly_window_days: int = WEEKLY_WINDOW_DAYS,
    currency_symbol: str = "₹",
) -> list[Reminder]:
    """Smart reminders for detected patterns whose next occurrence is close."""

    reminders: list[Reminder] = []
    for pattern in patterns:
        if pattern.frequency is Frequency.WEEKLY:
            window = weekly_window_days
        else:
            window = monthly_window_days
        due = next_pattern_due_date(pattern, today)
        days = days_until_due(due, today)
        if not 0 <= days <= window:
            continue
        amount = float(round_half_up(pattern.average_amount))
        reminders.append(
            Reminder(
                id=pattern_reminder_id(pattern, due),
                title=pattern.description,
                amount=amount,
                due_date=due,
                source_type=ReminderSource.SMART,
                is_auto_generated=True,
                reminder_window_days=window,
                description=(
                    f"Payment of {format_amount(amount, currency_symbol)} is due on {due:%d %b %Y}"
                ),
                category=pattern.category,
                repeat=pattern.frequency.value,
                reminder_date=_reminder_date(due, window, today),
                urgency=_urgency(days),
            )
        )
    return reminders


def dedupe_reminders(reminders: Iterable[Reminder]) -> list[Reminder]:
    """Drop repeated ids, keeping the first occurrence."""

    seen: set[str] = set()
    unique: list[Reminder] = []
    for reminder in reminders:
        if reminder.id in seen:
            continue
        seen.add(reminder.id)
        unique.append(reminder)
    return unique


def generate_reminders(
    loans: Iterable[Loan],
    patterns: Iterable[RecurringPattern],
    now: date | datetime | None = None,
    custom: Iterable[Reminder] = (),
    *,
    loan_window_days: int = LOAN_WINDOW_DAYS,
    monthly_window_days: int = MONTHLY_WINDOW_DAYS,
    weekly_window_days: int = WEEKLY_WINDOW_DAYS,
    currency_symbol: str = "₹",
) -> list[Reminder]:
    """Loan, smart and custom reminders active on ``now``, unique by id.

    Ids derive from the source and the due date, so calling this twice over
    the same inputs yields the same reminders.
    """

    today = as_date(now)
    generated = [
        *loan_reminders(loans, today, window_days=loan_window_days, currency_symbol=currency_symbol),
        *pattern_reminders(
            patterns,
            today,
            monthly_window_days=monthly_window_days,
            weekly_window_days=weekly_window_days,
            currency_symbol=currency_symbol,
        ),
        *custom,
    ]
    reminders = dedupe_reminders(generated)
    logger.info(
        "Reminders generated",
        extra={"count": len(reminders), "duplicates": len(generated) - len(reminders)},
    )
    return reminders


__all__ = [
    "dedupe_reminders",
    "days_until_due",
    "generate_reminders",
    "loan_reminder_id",
    "loan_reminders",
    "next_pattern_due_date",
    "pattern_reminder_id",
    "pattern_reminders",
]
