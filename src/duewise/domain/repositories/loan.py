"""Loan provider protocol."""

from __future__ import annotations

from typing import Protocol

from ..models import Loan


class LoanProvider(Protocol):
    """Source of the user's loan records."""

    def get_loans(self) -> list[Loan]:
        """Return every loan known for the current user."""
        ...
