"""Recurring obligation detection over transaction history."""

from __future__ import annotations

import logging
import math
import re
from itertools import pairwise
from typing import Iterable, Sequence

from ..domain.models import Frequency, RecurringPattern, Transaction
from .amortization import round_half_up

logger = logging.getLogger(__name__)

# Only these categories are ever treated as recurring obligations.
RECURRING_CATEGORIES = frozenset({"Rent", "Utilities", "Loan/Debt Payments"})

MIN_CONFIDENCE = 0.5
WEEKLY_ACCEPTANCE = 0.7
WEEKLY_GAP_DAYS = (5, 9)
WEEKLY_MIN_OCCURRENCES = 3

_MONTH_NAMES = re.compile(
    r"\b(january|february|march|april|may|june|july|august|september|october|november|december"
    r"|jan|feb|mar|apr|jun|jul|aug|sept|sep|oct|nov|dec)\b"
)
_DIGITS = re.compile(r"\d+")
_PUNCTUATION = re.compile(r"[^a-z#\s]")
_CURRENCY_FIGURE = re.compile(r"([₹$€£])\s?\d[\d,]*(?:\.\d+)?")


def normalize_description(description: str) -> str:
    """Grouping key for a description: "Rent August" and "Rent Sept" both become "rent"."""

    text = description.lower()
    text = _MONTH_NAMES.sub(" ", text)
    text = _DIGITS.sub("#", text)
    text = _PUNCTUATION.sub("", text)
    return " ".join(text.split())


def format_amount(amount: float, currency_symbol: str) -> str:
    return f"{currency_symbol}{round_half_up(amount):,}"


def weekly_confidence(transactions: Sequence[Transaction]) -> float:
    """Share of day gaps between consecutive (date-sorted) transactions that look weekly."""

    if len(transactions) < WEEKLY_MIN_OCCURRENCES:
        return 0.0
    gaps = [(later.day - earlier.day).days for earlier, later in pairwise(transactions)]
    low, high = WEEKLY_GAP_DAYS
    weekly = [gap for gap in gaps if low <= gap <= high]
    return len(weekly) / len(gaps)


def _display_description(
    transactions: Sequence[Transaction], category: str, average: float, currency_symbol: str
) -> str:
    longest = ""
    for tx in transactions:
        text = (tx.description or "").strip()
        if len(text) > len(longest):
            longest = text
    rounded = format_amount(average, currency_symbol)
    if not longest:
        return f"{category} payment ({rounded})"
    return _CURRENCY_FIGURE.sub(lambda m: format_amount(average, m.group(1)), longest)


def _detect_pattern(
    category: str,
    normalized: str,
    group: list[Transaction],
    *,
    assume_monthly: bool,
    currency_symbol: str,
) -> RecurringPattern | None:
    ordered = sorted(group, key=lambda tx: tx.day)
    average = sum(abs(tx.amount) for tx in ordered) / len(ordered)

    if assume_monthly:
        frequency, confidence = Frequency.MONTHLY, 1.0
    else:
        confidence = weekly_confidence(ordered)
        if confidence <= WEEKLY_ACCEPTANCE:
            return None
        frequency = Frequency.WEEKLY

    return RecurringPattern(
        category=category,
        normalized_description=normalized,
        description=_display_description(ordered, category, average, currency_symbol),
        average_amount=average,
        frequency=frequency,
        last_occurrence=ordered[-1].day,
        occurrence_count=len(ordered),
        confidence=confidence,
    )


def group_transactions(
    transactions: Iterable[Transaction],
) -> dict[tuple[str, str], list[Transaction]]:
    """Bucket allow-listed expenses by ``(category, normalized description)``."""

    grouped: dict[tuple[str, str], list[Transaction]] = {}
    for tx in transactions:
        if (tx.type or "").strip().lower() != "expense":
            continue
        if tx.category not in RECURRING_CATEGORIES:
            continue
        if tx.amount is None or not math.isfinite(tx.amount):
            logger.warning("Ignoring transaction with unusable amount", extra={"transaction_id": tx.id})
            continue
        description = (tx.description or "").strip() or f"{tx.category} payment"
        key = (tx.category, normalize_description(description))
        grouped.setdefault(key, []).append(tx)
    return grouped


def detect_patterns(
    transactions: Iterable[Transaction],
    *,
    monthly_categories: Iterable[str] = RECURRING_CATEGORIES,
    currency_symbol: str = "₹",
) -> list[RecurringPattern]:
    """Infer recurring obligations from ``transactions``.

    Allow-listed categories are assumed monthly as soon as a single payment is
    seen. Groups outside ``monthly_categories`` must show a weekly rhythm.
    """

    monthly = frozenset(monthly_categories)
    patterns: list[RecurringPattern] = []
    for (category, normalized), group in group_transactions(transactions).items():
        pattern = _detect_pattern(
            category,
            normalized,
            group,
            assume_monthly=category in monthly,
            currency_symbol=currency_symbol,
        )
        if pattern is None or pattern.confidence <= MIN_CONFIDENCE:
            logger.debug(
                "No recurring pattern",
                extra={"category": category, "key": normalized, "size": len(group)},
            )
            continue
        patterns.append(pattern)

    logger.info("Recurring patterns detected", extra={"count": len(patterns)})
    return patterns


__all__ = [
    "RECURRING_CATEGORIES",
    "detect_patterns",
    "format_amount",
    "group_transactions",
    "normalize_description",
    "weekly_confidence",
]
