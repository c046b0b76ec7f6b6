"""Service module exports."""

from . import amortization, paid_state, patterns, payoff, reminders

__all__ = [
    "amortization",
    "paid_state",
    "patterns",
    "payoff",
    "reminders",
]
