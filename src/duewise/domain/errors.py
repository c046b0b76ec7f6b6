"""Domain-specific exceptions."""

from __future__ import annotations


class DueWiseError(Exception):
    """Base exception for the computation core."""


class InvalidLoanTerms(DueWiseError, ValueError):
    """Loan terms cannot be amortized (non-positive tenure, negative payment)."""

    def __init__(self, message: str, *, loan_id: object = None) -> None:
        super().__init__(message)
        self.loan_id = loan_id


class NumericOverflow(DueWiseError, ArithmeticError):
    """A power term became non-finite for an extreme rate or tenure."""


class MissingField(DueWiseError):
    """A loan lacks a field required for the requested computation."""

    def __init__(self, field: str, *, loan_id: object = None) -> None:
        super().__init__(f"Loan {loan_id!r} is missing {field}")
        self.field = field
        self.loan_id = loan_id


class PaidStateError(DueWiseError):
    """The paid-state store could not be read or written."""


class ProviderError(DueWiseError):
    """A loan or transaction export could not be read."""
