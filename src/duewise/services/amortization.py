"""Amortization math for installment loans.

Balances are derived from the static loan terms and the elapsed time, never
stored, so the figure shown for a loan cannot drift from its schedule.
"""

from __future__ import annotations

import calendar
import logging
import math
from dataclasses import dataclass
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal

from ..domain.errors import InvalidLoanTerms, MissingField, NumericOverflow
from ..domain.models import Loan

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class LoanPosition:
    """Where a loan stands on a given day."""

    balance: float
    payments_made: int
    next_due_date: date


@dataclass(slots=True)
class AmortizationRow:
    """A single installment of an amortization schedule."""

    number: int
    due_date: date
    payment: float
    principal: float
    interest: float
    remaining_balance: float
    is_paid: bool = False


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero."""

    return int(Decimal(str(float(value))).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def as_date(value: date | datetime | None) -> date:
    """Return the calendar date for ``value`` (today when ``None``)."""

    if value is None:
        return date.today()
    if isinstance(value, datetime):
        return value.date()
    return value


def add_months(value: date, months: int) -> date:
    """Shift ``value`` by whole months, clamping the day to the target month."""

    index = value.month - 1 + months
    year = value.year + index // 12
    month = index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def months_between(start: date, end: date) -> int:
    """Calendar months from ``start`` to ``end`` ignoring the day of month."""

    return (end.year - start.year) * 12 + (end.month - start.month)


def count_payments_made(start: date, as_of: date, tenure_months: int) -> int:
    """Installments paid by ``as_of``; the start-date installment counts on the day."""

    if as_of < start:
        return 0
    elapsed = months_between(start, as_of)
    if as_of.day < start.day:
        elapsed -= 1
    return min(tenure_months, max(0, elapsed) + 1)


def _validate_terms(loan: Loan) -> None:
    if loan.tenure_months is None or loan.tenure_months <= 0:
        raise InvalidLoanTerms(
            f"Loan {loan.id!r} has non-positive tenure {loan.tenure_months!r}", loan_id=loan.id
        )
    if loan.monthly_payment is not None and loan.monthly_payment < 0:
        raise InvalidLoanTerms(
            f"Loan {loan.id!r} has negative monthly payment {loan.monthly_payment!r}",
            loan_id=loan.id,
        )
    rate = loan.annual_rate_percent
    if rate is None or not math.isfinite(rate) or rate < 0:
        raise InvalidLoanTerms(f"Loan {loan.id!r} has invalid rate {rate!r}", loan_id=loan.id)
    if loan.principal is None:
        raise MissingField("principal", loan_id=loan.id)
    if loan.principal < 0 or not math.isfinite(loan.principal):
        raise InvalidLoanTerms(
            f"Loan {loan.id!r} has invalid principal {loan.principal!r}", loan_id=loan.id
        )
    if loan.emi_start_date is None:
        raise MissingField("emi_start_date", loan_id=loan.id)


def _closed_form_balance(principal: float, rate: float, tenure: int, paid: int) -> float:
    """Remaining balance after ``paid`` of ``tenure`` level payments."""

    if paid >= tenure:
        return 0.0
    try:
        growth_n = (1 + rate) ** tenure
        growth_k = (1 + rate) ** paid
    except OverflowError as exc:
        raise NumericOverflow(f"(1 + {rate})^{tenure} overflowed") from exc
    denominator = growth_n - 1
    if not (math.isfinite(growth_n) and math.isfinite(growth_k)) or denominator <= 0:
        raise NumericOverflow(f"(1 + {rate})^{tenure} is not usable")
    balance = principal * (growth_n - growth_k) / denominator
    if not math.isfinite(balance):
        raise NumericOverflow("remaining balance is not finite")
    return balance


def _linear_balance(principal: float, tenure: int, paid: int) -> float:
    return max(0.0, principal - principal / tenure * paid)


def compute_outstanding_balance(
    loan: Loan, as_of: date | datetime | None = None
) -> LoanPosition:
    """Derive balance, installments paid and next due date for ``loan``.

    Raises:
        InvalidLoanTerms: tenure is not positive, or payment/rate/principal is invalid.
        MissingField: principal or EMI start date is absent.
    """

    _validate_terms(loan)
    today = as_date(as_of)
    start = loan.emi_start_date
    tenure = int(loan.tenure_months)
    principal = float(loan.principal)
    payments_made = count_payments_made(start, today, tenure)

    if loan.is_interest_only:
        balance = principal
    else:
        rate = loan.annual_rate_percent / 100 / 12
        if rate > 0:
            try:
                balance = _closed_form_balance(principal, rate, tenure, payments_made)
            except NumericOverflow as exc:
                logger.warning(
                    "Falling back to linear balance",
                    extra={"loan_id": loan.id, "reason": str(exc)},
                )
                balance = _linear_balance(principal, tenure, payments_made)
        else:
            balance = _linear_balance(principal, tenure, payments_made)

    balance = float(min(max(round_half_up(balance), 0), principal))
    return LoanPosition(
        balance=balance,
        payments_made=payments_made,
        next_due_date=add_months(start, payments_made),
    )


def calculate_emi(principal: float, annual_rate_percent: float, tenure_months: int) -> float:
    """Level monthly payment that retires ``principal`` over ``tenure_months``."""

    if tenure_months <= 0:
        raise InvalidLoanTerms(f"Tenure must be positive, got {tenure_months!r}")
    rate = annual_rate_percent / 100 / 12
    if rate <= 0:
        return principal / tenure_months
    try:
        growth = (1 + rate) ** tenure_months
    except OverflowError:
        # The payment converges on pure interest as the horizon grows.
        return principal * rate
    return principal * rate * growth / (growth - 1)


def amortization_schedule(
    loan: Loan, as_of: date | datetime | None = None
) -> list[AmortizationRow]:
    """Month-by-month schedule for ``loan``; rows due on/before ``as_of`` are paid.

    When the loan carries no monthly payment the level EMI is used. The final
    row always clears the remaining balance, which is also where interest-only
    loans repay their principal.
    """

    _validate_terms(loan)
    today = as_date(as_of)
    tenure = int(loan.tenure_months)
    rate = loan.annual_rate_percent / 100 / 12
    balance = float(loan.principal)
    payment = loan.monthly_payment or calculate_emi(balance, loan.annual_rate_percent, tenure)

    rows: list[AmortizationRow] = []
    for number in range(1, tenure + 1):
        interest = balance * rate
        if loan.is_interest_only:
            principal_part = 0.0
        else:
            principal_part = max(payment - interest, 0.0)
        if number == tenure or principal_part > balance:
            principal_part = balance
        balance -= principal_part
        due = add_months(loan.emi_start_date, number - 1)
        rows.append(
            AmortizationRow(
                number=number,
                due_date=due,
                payment=float(round_half_up(principal_part + interest)),
                principal=float(round_half_up(principal_part)),
                interest=float(round_half_up(interest)),
                remaining_balance=float(max(round_half_up(balance), 0)),
                is_paid=due <= today,
            )
        )
        if balance <= 0:
            break
    return rows


__all__ = [
    "AmortizationRow",
    "LoanPosition",
    "add_months",
    "amortization_schedule",
    "as_date",
    "calculate_emi",
    "compute_outstanding_balance",
    "count_payments_made",
    "months_between",
    "round_half_up",
]
