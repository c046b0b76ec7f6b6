"""Repository protocol definitions for domain layer."""

from .loan import LoanProvider
from .paid_state import PaidStateStore
from .transaction import TransactionProvider

__all__ = [
    "LoanProvider",
    "PaidStateStore",
    "TransactionProvider",
]
