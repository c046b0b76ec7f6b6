"""Loan and transaction providers backed by CSV exports."""

from __future__ import annotations

import logging
from datetime import date, datetime
from pathlib import Path
from typing import Any, Mapping, Optional

import pandas as pd

from ...domain.errors import ProviderError
from ...domain.models import Loan, LoanType, Transaction

logger = logging.getLogger(__name__)

# Accepted header spellings per field, first match wins.
LOAN_COLUMNS: dict[str, tuple[str, ...]] = {
    "id": ("id", "loan_id"),
    "name": ("name", "loan_name"),
    "principal": ("principal", "amount", "loan_amount"),
    "annual_rate_percent": ("annual_rate_percent", "interest_rate", "rate", "annual_rate"),
    "tenure_months": ("tenure_months", "term_months"),
    "emi_start_date": ("emi_start_date", "start_date"),
    "monthly_payment": ("monthly_payment", "emi", "monthly_emi"),
    "is_interest_only": ("is_interest_only", "interest_only"),
    "loan_type": ("loan_type", "type"),
    "status": ("status",),
    "lender": ("lender",),
    "current_balance": ("current_balance", "balance"),
    "term_years": ("term_years", "term"),
    "remaining_term": ("remaining_term",),
}

TRANSACTION_COLUMNS: dict[str, tuple[str, ...]] = {
    "id": ("id", "transaction_id"),
    "amount": ("amount",),
    "category": ("category",),
    "description": ("description", "memo"),
    "occurred_on": ("date", "occurred_on", "occurred_at"),
    "type": ("type", "transaction_type"),
}


def normalize_frame(*, file_path: Path, encoding: str = "utf-8") -> pd.DataFrame:
    """Load a CSV file into a DataFrame with consistent column casing."""

    try:
        frame = pd.read_csv(file_path, encoding=encoding)
    except (OSError, UnicodeDecodeError, pd.errors.ParserError, pd.errors.EmptyDataError) as exc:
        raise ProviderError(f"Cannot read {file_path}: {exc}") from exc
    frame.columns = [str(c).strip().lower() for c in frame.columns]
    return frame


def _cell(row: Mapping[str, Any], names: tuple[str, ...]) -> Any:
    for name in names:
        value = row.get(name)
        if value is None:
            continue
        if isinstance(value, str):
            if value.strip():
                return value.strip()
            continue
        if pd.isna(value):
            continue
        return value
    return None


def _float(value: Any) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(str(value).replace(",", ""))
    except ValueError:
        return None


def _date(value: Any) -> Optional[date]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    parsed = pd.to_datetime(value, errors="coerce")
    if pd.isna(parsed):
        return None
    return parsed.date()


def _bool(value: Any) -> bool:
    if value is None:
        return False
    return str(value).strip().lower() in {"1", "true", "yes", "y", "on"}


def loan_from_row(row: Mapping[str, Any], *, index: int = 0) -> Loan:
    """Build a :class:`Loan` from one export row, tolerating alternate headers."""

    values = {field: _cell(row, names) for field, names in LOAN_COLUMNS.items()}
    term_years = _float(values["term_years"])
    tenure = _float(values["tenure_months"])
    if tenure is None and term_years is not None:
        tenure = round(term_years * 12)
    loan_id = values["id"]
    return Loan(
        id=str(loan_id if loan_id is not None else index + 1),
        name=str(values["name"] or f"Loan {index + 1}"),
        principal=_float(values["principal"]),
        annual_rate_percent=_float(values["annual_rate_percent"]) or 0.0,
        tenure_months=int(tenure or 0),
        emi_start_date=_date(values["emi_start_date"]),
        monthly_payment=_float(values["monthly_payment"]) or 0.0,
        is_interest_only=_bool(values["is_interest_only"]),
        loan_type=LoanType.parse(values["loan_type"]),
        status=str(values["status"] or "active").lower(),
        lender=values["lender"],
        current_balance=_float(values["current_balance"]),
        term_years=term_years,
        remaining_term=_float(values["remaining_term"]),
    )


def transaction_from_row(row: Mapping[str, Any], *, index: int = 0) -> Optional[Transaction]:
    """Build a :class:`Transaction`; rows without an amount or date are skipped.

    Rows with no type are expenses whatever the sign of the amount.
    """

    values = {field: _cell(row, names) for field, names in TRANSACTION_COLUMNS.items()}
    amount = _float(values["amount"])
    occurred_on = _date(values["occurred_on"])
    if amount is None or occurred_on is None:
        return None
    # Exports without a type column list spending; the amount sign is not a type.
    kind = values["type"] or "expense"
    tx_id = values["id"]
    return Transaction(
        id=str(tx_id if tx_id is not None else index + 1),
        amount=amount,
        category=str(values["category"] or ""),
        description=str(values["description"] or ""),
        occurred_on=occurred_on,
        type=str(kind).lower(),
    )


class CSVLoanProvider:
    """Reads loans from a CSV export."""

    def __init__(self, csv_path: Path):
        self.csv_path = Path(csv_path)

    def get_loans(self) -> list[Loan]:
        frame = normalize_frame(file_path=self.csv_path)
        loans = [
            loan_from_row(row, index=i) for i, row in enumerate(frame.to_dict(orient="records"))
        ]
        logger.info("Loaded loans", extra={"path": str(self.csv_path), "count": len(loans)})
        return loans


class CSVTransactionProvider:
    """Reads ledger transactions from a CSV export."""

    def __init__(self, csv_path: Path):
        self.csv_path = Path(csv_path)

    def get_transactions(self) -> list[Transaction]:
        frame = normalize_frame(file_path=self.csv_path)
        transactions: list[Transaction] = []
        skipped = 0
        for i, row in enumerate(frame.to_dict(orient="records")):
            tx = transaction_from_row(row, index=i)
            if tx is None:
                skipped += 1
                continue
            transactions.append(tx)
        logger.info(
            "Loaded transactions",
            extra={"path": str(self.csv_path), "count": len(transactions), "skipped": skipped},
        )
        return transactions


__all__ = [
    "CSVLoanProvider",
    "CSVTransactionProvider",
    "loan_from_row",
    "normalize_frame",
    "transaction_from_row",
]
