"""Application context for dependency injection."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Iterable, Optional

from sqlmodel import Session

from .config import BaseConfig
from .domain.models import Loan, Reminder, Transaction
from .infra.database import create_db_engine, create_session_factory, init_database
from .infra.repositories import SQLModelPaidStateStore
from .scheduler import CleanupScheduler, create_scheduler
from .services.paid_state import PaidLedger, split_paid
from .services.patterns import detect_patterns
from .services.reminders import generate_reminders

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    """Config, persistence and paid-state ledger for one user."""

    config: BaseConfig
    session_factory: Callable[[], Session]
    paid_store: SQLModelPaidStateStore
    ledger: PaidLedger
    user_id: str


@dataclass
class ReminderBoard:
    """Reminders split by paid overlay, ready for display."""

    pending: list[Reminder] = field(default_factory=list)
    paid: list[Reminder] = field(default_factory=list)

    @property
    def all(self) -> list[Reminder]:
        return [*self.pending, *self.paid]


def create_app_context(
    config: Optional[BaseConfig] = None,
    *,
    user_id: str = "default",
    clock: Callable[[], datetime] = datetime.now,
) -> AppContext:
    """Create the database, wire the store and load the user's paid state."""

    if config is None:
        config = BaseConfig()

    engine = create_db_engine(config)
    init_database(engine)
    session_factory = create_session_factory(engine)

    paid_store = SQLModelPaidStateStore(session_factory, user_id=user_id)
    ledger = PaidLedger(paid_store, retention=config.paid_retention, clock=clock)
    ledger.load()

    return AppContext(
        config=config,
        session_factory=session_factory,
        paid_store=paid_store,
        ledger=ledger,
        user_id=user_id,
    )


def refresh_reminders(
    ctx: AppContext,
    loans: Iterable[Loan],
    transactions: Iterable[Transaction],
    now: Optional[datetime] = None,
    custom: Iterable[Reminder] = (),
) -> ReminderBoard:
    """Recompute reminders from fresh snapshots and overlay paid state."""

    cfg = ctx.config
    ctx.ledger.cleanup_expired(now)
    patterns = detect_patterns(transactions, currency_symbol=cfg.CURRENCY_SYMBOL)
    reminders = generate_reminders(
        loans,
        patterns,
        now,
        custom,
        loan_window_days=cfg.LOAN_REMINDER_WINDOW_DAYS,
        monthly_window_days=cfg.MONTHLY_REMINDER_WINDOW_DAYS,
        weekly_window_days=cfg.WEEKLY_REMINDER_WINDOW_DAYS,
        currency_symbol=cfg.CURRENCY_SYMBOL,
    )
    pending, paid = split_paid(reminders, ctx.ledger.records)
    logger.info(
        "Reminder board refreshed",
        extra={"user_id": ctx.user_id, "pending": len(pending), "paid": len(paid)},
    )
    return ReminderBoard(pending=pending, paid=paid)


def start_cleanup_scheduler(ctx: AppContext) -> CleanupScheduler:
    """Expire paid overlays in the background every ``CLEANUP_INTERVAL_MINUTES``."""

    return create_scheduler(
        ctx.ledger,
        interval_minutes=ctx.config.CLEANUP_INTERVAL_MINUTES,
        auto_start=True,
    )
