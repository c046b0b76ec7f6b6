"""Debt payoff planning: strategy ranking and progress estimates."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Iterable, Optional, Protocol, Sequence, TypeVar

from ..domain.errors import InvalidLoanTerms, MissingField
from ..domain.models import Loan, LoanType
from .amortization import as_date, compute_outstanding_balance, months_between, round_half_up

logger = logging.getLogger(__name__)

DEFAULT_PROGRESS: dict[LoanType, int] = {
    LoanType.CREDIT_CARD: 25,
    LoanType.PERSONAL: 45,
    LoanType.CAR: 35,
    LoanType.HOME: 15,
    LoanType.BUSINESS: 30,
    LoanType.OTHER: 30,
}


class PayoffStrategy(str, Enum):
    AVALANCHE = "avalanche"
    SNOWBALL = "snowball"

    @classmethod
    def parse(cls, value: "PayoffStrategy | str") -> "PayoffStrategy":
        if isinstance(value, PayoffStrategy):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError("Invalid debt payoff strategy.") from None


class RankableDebt(Protocol):
    """Anything carrying the figures the strategies sort on."""

    annual_rate_percent: Optional[float]
    outstanding_balance: Optional[float]


Ranked = TypeVar("Ranked", bound="RankableDebt | Loan")


@dataclass(slots=True)
class PlannedDebt:
    """A loan as presented on the payoff plan."""

    loan_id: str
    name: str
    loan_type: LoanType
    lender: Optional[str]
    outstanding_balance: float
    annual_rate_percent: float
    monthly_payment: float
    progress: int


@dataclass(slots=True)
class DebtSummary:
    """Totals shown above the plan."""

    count: int
    total_debt: float
    total_monthly_payment: float
    average_interest_rate: float


def _ranking_balance(debt: RankableDebt | Loan, today: date) -> float:
    if isinstance(debt, Loan):
        try:
            return _derived_balance(debt, today)
        except InvalidLoanTerms:
            return _static_balance(debt)
    return debt.outstanding_balance or 0.0


def rank_loans(
    debts: Iterable[Ranked],
    strategy: PayoffStrategy | str,
    as_of: date | datetime | None = None,
) -> list[Ranked]:
    """Order debts for payoff; ties keep their input order.

    Avalanche puts the highest annual rate first, snowball the smallest
    outstanding balance first. Plain loans are ranked on their balance as of
    ``as_of``, derived from the schedule when the terms allow.
    """

    chosen = PayoffStrategy.parse(strategy)
    if chosen is PayoffStrategy.AVALANCHE:
        # sorted() stays stable with reverse=True.
        return sorted(debts, key=lambda d: d.annual_rate_percent or 0.0, reverse=True)
    today = as_date(as_of)
    return sorted(debts, key=lambda d: _ranking_balance(d, today))


def default_progress(loan_type: LoanType | str | None) -> int:
    """Static progress figure used when the source data says nothing useful."""

    return DEFAULT_PROGRESS[LoanType.parse(loan_type)]


def _elapsed_months(start: date, today: date) -> int:
    return max(0, months_between(start, today))


def _raw_progress(loan: Loan, today: date, outstanding: Optional[float]) -> float:
    principal = loan.principal
    if principal is not None and principal > 0 and outstanding is not None and outstanding != principal:
        return (principal - outstanding) / principal * 100

    term = loan.term_years
    remaining = loan.remaining_term
    if term is not None and remaining is not None and term > 0 and term != remaining:
        return (term - remaining) / term * 100

    if loan.tenure_months and loan.tenure_months > 0 and loan.emi_start_date is not None:
        elapsed = min(_elapsed_months(loan.emi_start_date, today), loan.tenure_months)
        return elapsed / loan.tenure_months * 100

    if term and term > 0 and loan.emi_start_date is not None:
        total_months = term * 12
        elapsed = min(_elapsed_months(loan.emi_start_date, today), total_months)
        return elapsed / total_months * 100

    return default_progress(loan.loan_type)


def estimate_progress(
    loan: Loan,
    as_of: date | datetime | None = None,
    outstanding_balance: Optional[float] = None,
) -> int:
    """Percent of the loan already repaid, in ``[0, 100]``.

    Tries, in order: principal vs. outstanding balance, term vs. remaining
    term, elapsed months over tenure, elapsed months over ``term_years``, and
    finally a per-type default. A computed 0 is replaced by the type default.
    """

    if outstanding_balance is None:
        outstanding_balance = loan.current_balance
    progress = round_half_up(_raw_progress(loan, as_date(as_of), outstanding_balance))
    progress = max(0, min(100, progress))
    if progress == 0:
        progress = default_progress(loan.loan_type)
    return progress


def _derived_balance(loan: Loan, today: date) -> float:
    """Outstanding balance, derived when the terms allow, else the static figure."""

    if (
        loan.emi_start_date is not None
        and (loan.annual_rate_percent or 0.0) > 0
        and (loan.monthly_payment or 0.0) > 0
    ):
        try:
            return compute_outstanding_balance(loan, today).balance
        except MissingField as exc:
            logger.info(
                "Using static balance",
                extra={"loan_id": loan.id, "missing": exc.field},
            )
    return _static_balance(loan)


def _static_balance(loan: Loan) -> float:
    static = loan.current_balance if loan.current_balance is not None else loan.principal
    return float(static or 0.0)


def plan_debts(
    loans: Iterable[Loan],
    strategy: PayoffStrategy | str,
    as_of: date | datetime | None = None,
) -> list[PlannedDebt]:
    """Build and rank the payoff plan for ``loans``.

    Loans with invalid terms are logged and left off the plan.
    """

    chosen = PayoffStrategy.parse(strategy)
    today = as_date(as_of)
    planned: list[PlannedDebt] = []
    for loan in loans:
        try:
            balance = _derived_balance(loan, today)
        except InvalidLoanTerms as exc:
            logger.warning("Skipping loan with invalid terms", extra={"loan_id": loan.id, "reason": str(exc)})
            continue
        planned.append(
            PlannedDebt(
                loan_id=loan.id,
                name=loan.name,
                loan_type=loan.loan_type,
                lender=loan.lender,
                outstanding_balance=balance,
                annual_rate_percent=loan.annual_rate_percent or 0.0,
                monthly_payment=loan.monthly_payment or 0.0,
                progress=estimate_progress(loan, today, balance),
            )
        )
    return rank_loans(planned, chosen)


def summarize_debts(planned: Sequence[PlannedDebt]) -> DebtSummary:
    """Totals and the mean rate across loans that carry a positive rate."""

    rates = [d.annual_rate_percent for d in planned if d.annual_rate_percent > 0]
    return DebtSummary(
        count=len(planned),
        total_debt=sum(d.outstanding_balance for d in planned),
        total_monthly_payment=sum(d.monthly_payment for d in planned),
        average_interest_rate=sum(rates) / len(rates) if rates else 0.0,
    )


__all__ = [
    "DebtSummary",
    "PayoffStrategy",
    "PlannedDebt",
    "default_progress",
    "estimate_progress",
    "plan_debts",
    "rank_loans",
    "summarize_debts",
]
