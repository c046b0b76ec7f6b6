"""Background timer that expires paid-reminder overlays."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from apscheduler.schedulers.background import BackgroundScheduler as APScheduler
from apscheduler.triggers.interval import IntervalTrigger

if TYPE_CHECKING:
    from .services.paid_state import PaidLedger

logger = logging.getLogger("duewise.scheduler")

CLEANUP_JOB_ID = "paid_cleanup"


class CleanupScheduler:
    """Runs ``PaidLedger.cleanup_expired`` on a fixed interval."""

    def __init__(self, ledger: PaidLedger, *, interval_minutes: int = 30):
        """Initialize the scheduler.

        Args:
            ledger: Paid-state holder whose overlays should expire
            interval_minutes: Minutes between cleanup runs
        """
        if interval_minutes <= 0:
            raise ValueError("interval_minutes must be positive")
        self.ledger = ledger
        self.interval_minutes = interval_minutes
        self.scheduler: APScheduler | None = None

    @property
    def running(self) -> bool:
        return self.scheduler is not None

    def start(self) -> None:
        """Start the background scheduler."""
        if self.scheduler is not None:
            logger.warning("Scheduler already running")
            return

        self.scheduler = APScheduler()
        self.scheduler.add_job(
            func=self._run_cleanup,
            trigger=IntervalTrigger(minutes=self.interval_minutes),
            id=CLEANUP_JOB_ID,
            name="Expire paid reminders",
            replace_existing=True,
        )
        self.scheduler.start()
        logger.info(
            "Scheduled paid reminder cleanup",
            extra={"interval_minutes": self.interval_minutes},
        )

    def stop(self) -> None:
        """Stop the background scheduler gracefully."""
        if self.scheduler is not None:
            self.scheduler.shutdown(wait=True)
            self.scheduler = None
            logger.info("Background scheduler stopped")

    def _run_cleanup(self) -> None:
        """Execute one cleanup pass."""
        try:
            removed = self.ledger.cleanup_expired()
            logger.info("Scheduled cleanup finished", extra={"removed": removed})
        except Exception as exc:
            logger.error(f"Scheduled cleanup failed: {exc}", exc_info=True)


def create_scheduler(
    ledger: PaidLedger, *, interval_minutes: int = 30, auto_start: bool = False
) -> CleanupScheduler:
    """Create and optionally start a cleanup scheduler.

    Args:
        ledger: Paid-state holder to clean
        interval_minutes: Minutes between runs
        auto_start: Whether to start the scheduler immediately

    Returns:
        CleanupScheduler instance
    """
    scheduler = CleanupScheduler(ledger, interval_minutes=interval_minutes)
    if auto_start:
        scheduler.start()
    return scheduler
