"""SQLModel table exports."""

from .paid_record import PaidReminder

__all__ = ["PaidReminder"]
