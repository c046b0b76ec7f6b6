"""SQLModel implementation of the paid-state store."""

from __future__ import annotations

from typing import Callable, Mapping

from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from ...domain.errors import PaidStateError
from ...domain.models import PaidRecord, ReminderSource
from ...models.paid_record import PaidReminder


class SQLModelPaidStateStore:
    """Persists one user's paid overlays in the ``paid_reminder`` table."""

    def __init__(self, session_factory: Callable[[], Session], *, user_id: str):
        """Initialize with a session factory and the owning user."""
        self.session_factory = session_factory
        self.user_id = str(user_id)

    def load(self) -> dict[str, PaidRecord]:
        """Return the user's records keyed by reminder id."""
        try:
            with self.session_factory() as session:
                rows = session.exec(
                    select(PaidReminder).where(PaidReminder.user_id == self.user_id)
                ).all()
                return {
                    row.reminder_id: PaidRecord(
                        reminder_id=row.reminder_id,
                        source_type=ReminderSource(row.source_type),
                        paid_at=row.paid_at,
                    )
                    for row in rows
                }
        except (SQLAlchemyError, ValueError) as exc:
            raise PaidStateError(f"Failed to load paid reminders for {self.user_id!r}") from exc

    def save(self, records: Mapping[str, PaidRecord]) -> None:
        """Replace the user's rows with ``records``."""
        try:
            with self.session_factory() as session:
                session.execute(delete(PaidReminder).where(PaidReminder.user_id == self.user_id))
                for record in records.values():
                    session.add(
                        PaidReminder(
                            user_id=self.user_id,
                            reminder_id=record.reminder_id,
                            source_type=ReminderSource(record.source_type).value,
                            paid_at=record.paid_at,
                        )
                    )
                session.commit()
        except SQLAlchemyError as exc:
            raise PaidStateError(f"Failed to save paid reminders for {self.user_id!r}") from exc


__all__ = ["SQLModelPaidStateStore"]
