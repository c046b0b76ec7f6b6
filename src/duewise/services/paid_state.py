"""Paid overlay lifecycle for reminders.

Paid state lives beside the reminders, keyed by reminder id, so a payment can
be reverted without regenerating anything. Records expire after a retention
window and cleanup is safe to run as often as needed.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from threading import Lock
from typing import Callable, Iterable, Mapping, Optional

from ..domain.errors import PaidStateError
from ..domain.models import PaidRecord, Reminder
from ..domain.repositories import PaidStateStore

logger = logging.getLogger(__name__)

PAID_RETENTION = timedelta(days=2)

PaidRecords = dict[str, PaidRecord]


def _naive(value: Optional[datetime]) -> datetime:
    """Local naive timestamp; aware values are converted first."""

    if value is None:
        return datetime.now()
    if value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    return value


def mark_paid(
    records: Mapping[str, PaidRecord], reminder: Reminder, now: Optional[datetime] = None
) -> PaidRecords:
    """Return ``records`` with ``reminder`` marked paid at ``now`` (latest write wins)."""

    updated = dict(records)
    updated[reminder.id] = PaidRecord(
        reminder_id=reminder.id,
        source_type=reminder.source_type,
        paid_at=_naive(now),
    )
    return updated


def revert_paid(records: Mapping[str, PaidRecord], reminder_id: str) -> PaidRecords:
    """Return ``records`` without the overlay for ``reminder_id``."""

    updated = dict(records)
    updated.pop(reminder_id, None)
    return updated


def cleanup_expired(
    records: Mapping[str, PaidRecord],
    now: Optional[datetime] = None,
    retention: timedelta = PAID_RETENTION,
) -> PaidRecords:
    """Return only the records paid no longer than ``retention`` ago."""

    current = _naive(now)
    return {
        reminder_id: record
        for reminder_id, record in records.items()
        if current - _naive(record.paid_at) <= retention
    }


def time_until_removal(
    record: PaidRecord, now: Optional[datetime] = None, retention: timedelta = PAID_RETENTION
) -> Optional[timedelta]:
    """Time left before cleanup drops ``record``; ``None`` once it is due."""

    remaining = retention - (_naive(now) - _naive(record.paid_at))
    if remaining <= timedelta(0):
        return None
    return remaining


def describe_time_remaining(remaining: Optional[timedelta]) -> Optional[str]:
    if remaining is None:
        return None
    hours = int(remaining.total_seconds() // 3600)
    days = hours // 24
    if days > 0:
        return f"{days} day{'s' if days > 1 else ''} left"
    return f"{hours} hour{'s' if hours != 1 else ''} left"


def split_paid(
    reminders: Iterable[Reminder], records: Mapping[str, PaidRecord]
) -> tuple[list[Reminder], list[Reminder]]:
    """Partition reminders into (pending, paid) using the overlay."""

    pending: list[Reminder] = []
    paid: list[Reminder] = []
    for reminder in reminders:
        (paid if reminder.id in records else pending).append(reminder)
    return pending, paid


class PaidLedger:
    """Single writer for one user's paid overlays.

    Every operation applies its change to the latest in-memory mapping under a
    lock and then writes the result back, so a cleanup tick racing a user's
    "mark paid" cannot lose either update. Store failures are logged and never
    propagate.
    """

    def __init__(
        self,
        store: PaidStateStore,
        *,
        retention: timedelta = PAID_RETENTION,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.store = store
        self.retention = retention
        self._clock = clock
        self._lock = Lock()
        self._records: PaidRecords = {}

    @property
    def records(self) -> PaidRecords:
        with self._lock:
            return dict(self._records)

    def is_paid(self, reminder_id: str) -> bool:
        with self._lock:
            return reminder_id in self._records

    def load(self) -> PaidRecords:
        """Read the store, drop expired records, and return the live mapping."""

        with self._lock:
            try:
                loaded = dict(self.store.load())
            except PaidStateError:
                logger.error("Could not load paid reminders; starting empty", exc_info=True)
                loaded = {}
            self._records = loaded
            self._commit(cleanup_expired(loaded, self._clock(), self.retention))
            return dict(self._records)

    def mark_paid(self, reminder: Reminder, now: Optional[datetime] = None) -> PaidRecord:
        with self._lock:
            updated = mark_paid(self._records, reminder, now or self._clock())
            self._commit(updated)
            logger.info("Reminder marked paid", extra={"reminder_id": reminder.id})
            return updated[reminder.id]

    def revert_paid(self, reminder_id: str) -> bool:
        """Remove the overlay; returns whether one existed."""

        with self._lock:
            existed = reminder_id in self._records
            self._commit(revert_paid(self._records, reminder_id))
            if existed:
                logger.info("Paid reminder reverted", extra={"reminder_id": reminder_id})
            return existed

    def cleanup_expired(self, now: Optional[datetime] = None) -> int:
        """Drop expired overlays; returns how many were removed."""

        with self._lock:
            before = len(self._records)
            self._commit(cleanup_expired(self._records, now or self._clock(), self.retention))
            removed = before - len(self._records)
            if removed:
                logger.info("Expired paid reminders removed", extra={"removed": removed})
            return removed

    def _commit(self, updated: PaidRecords) -> None:
        """Adopt ``updated`` and persist it; unchanged state is not rewritten."""

        if updated == self._records:
            return
        self._records = updated
        try:
            self.store.save(updated)
        except PaidStateError:
            logger.error("Could not save paid reminders; keeping them for this session", exc_info=True)


__all__ = [
    "PAID_RETENTION",
    "PaidLedger",
    "cleanup_expired",
    "describe_time_remaining",
    "mark_paid",
    "revert_paid",
    "split_paid",
    "time_until_removal",
]
