"""Transaction provider protocol."""

from __future__ import annotations

from typing import Protocol

from ..models import Transaction


class TransactionProvider(Protocol):
    """Source of historical ledger transactions."""

    def get_transactions(self) -> list[Transaction]:
        """Return the user's transaction history."""
        ...
