"""Collaborator adapter exports."""

from .csv_exports import CSVLoanProvider, CSVTransactionProvider
from .paid_state import SQLModelPaidStateStore

__all__ = [
    "CSVLoanProvider",
    "CSVTransactionProvider",
    "SQLModelPaidStateStore",
]
