"""Command line entry points for DueWise."""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

import click

from .config import BaseConfig
from .context import AppContext, create_app_context, refresh_reminders
from .domain.errors import ProviderError
from .domain.models import Loan, Reminder, Transaction
from .domain.repositories import LoanProvider, TransactionProvider
from .infra.repositories import CSVLoanProvider, CSVTransactionProvider
from .logging_config import LOGGER_NAMESPACE, get_logger, setup_logging
from .services.paid_state import describe_time_remaining, time_until_removal
from .services.payoff import PayoffStrategy, plan_debts, summarize_debts
from .services.reminders import days_until_due

logger = get_logger("cli")

_DATE = click.DateTime(formats=["%Y-%m-%d", "%Y-%m-%dT%H:%M", "%Y-%m-%d %H:%M"])
_CSV = click.Path(exists=True, dir_okay=False, path_type=Path)


def _close_logging() -> None:
    package_logger = logging.getLogger(LOGGER_NAMESPACE)
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()


def _config(ctx: click.Context) -> BaseConfig:
    return ctx.obj["config"]


def _app(ctx: click.Context) -> AppContext:
    if "app" not in ctx.obj:
        ctx.obj["app"] = create_app_context(_config(ctx), user_id=ctx.obj["user_id"])
    return ctx.obj["app"]


def _load_inputs(
    loans_csv: Optional[Path], transactions_csv: Optional[Path]
) -> tuple[list[Loan], list[Transaction]]:
    loan_source: Optional[LoanProvider] = CSVLoanProvider(loans_csv) if loans_csv else None
    transaction_source: Optional[TransactionProvider] = (
        CSVTransactionProvider(transactions_csv) if transactions_csv else None
    )
    try:
        loans = loan_source.get_loans() if loan_source else []
        transactions = transaction_source.get_transactions() if transaction_source else []
    except ProviderError as exc:
        logger.error("Could not load exports", extra={"error": str(exc)})
        raise click.ClickException(str(exc)) from exc
    return loans, transactions


def _money(amount: float, symbol: str) -> str:
    return f"{symbol}{amount:,.0f}"


@click.group()
@click.option(
    "--data-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory for the database and logs (overrides DUEWISE_DATA_DIR).",
)
@click.option("--user", "user_id", default="default", show_default=True, help="Paid-state namespace.")
@click.pass_context
def cli(ctx: click.Context, data_dir: Optional[Path], user_id: str) -> None:
    """Loan payoff planning and payment reminders."""

    config = BaseConfig(data_dir)
    setup_logging(config)
    ctx.call_on_close(_close_logging)
    ctx.obj = {"config": config, "user_id": user_id}


@cli.command("plan")
@click.option("--loans", "loans_csv", type=_CSV, required=True, help="Loan export (CSV).")
@click.option(
    "--strategy",
    type=click.Choice([s.value for s in PayoffStrategy], case_sensitive=False),
    default=PayoffStrategy.AVALANCHE.value,
    show_default=True,
)
@click.option("--as-of", type=_DATE, default=None, help="Evaluate balances on this date.")
@click.pass_context
def plan(ctx: click.Context, loans_csv: Path, strategy: str, as_of: Optional[datetime]) -> None:
    """Rank loans by payoff strategy with balances and progress."""

    symbol = _config(ctx).CURRENCY_SYMBOL
    loans, _ = _load_inputs(loans_csv, None)
    planned = plan_debts(loans, strategy, as_of)
    if not planned:
        click.echo("No loans to plan.")
        return

    for position, debt in enumerate(planned, start=1):
        click.echo(
            f"{position}. {debt.name}: {_money(debt.outstanding_balance, symbol)} outstanding"
            f" at {debt.annual_rate_percent:.2f}%, EMI {_money(debt.monthly_payment, symbol)},"
            f" {debt.progress}% repaid"
        )
    summary = summarize_debts(planned)
    click.echo(
        f"Total debt {_money(summary.total_debt, symbol)} across {summary.count} loan(s);"
        f" monthly {_money(summary.total_monthly_payment, symbol)};"
        f" average rate {summary.average_interest_rate:.2f}%"
    )


def _describe(reminder: Reminder, symbol: str, today: datetime) -> str:
    days = days_until_due(reminder.due_date, today)
    when = "today" if days == 0 else f"in {days} day{'s' if days != 1 else ''}"
    return (
        f"[{reminder.source_type.value}] {reminder.title}: {_money(reminder.amount, symbol)}"
        f" due {reminder.due_date.isoformat()} ({when}) id={reminder.id}"
    )


@cli.command("reminders")
@click.option("--loans", "loans_csv", type=_CSV, default=None, help="Loan export (CSV).")
@click.option("--transactions", "transactions_csv", type=_CSV, default=None, help="Transaction export (CSV).")
@click.option("--as-of", type=_DATE, default=None, help="Evaluate reminders at this time.")
@click.pass_context
def reminders(
    ctx: click.Context,
    loans_csv: Optional[Path],
    transactions_csv: Optional[Path],
    as_of: Optional[datetime],
) -> None:
    """List pending and recently paid reminders."""

    app = _app(ctx)
    symbol = app.config.CURRENCY_SYMBOL
    now = as_of or datetime.now()
    loans, transactions = _load_inputs(loans_csv, transactions_csv)
    board = refresh_reminders(app, loans, transactions, now)

    if not board.all:
        click.echo("No reminders due.")
        return
    for reminder in board.pending:
        click.echo(_describe(reminder, symbol, now))
    records = app.ledger.records
    for reminder in board.paid:
        remaining = describe_time_remaining(
            time_until_removal(records[reminder.id], now, app.ledger.retention)
        )
        click.echo(f"PAID {_describe(reminder, symbol, now)} ({remaining or 'expiring'})")


@cli.command("mark-paid")
@click.argument("reminder_id")
@click.option("--loans", "loans_csv", type=_CSV, default=None, help="Loan export (CSV).")
@click.option("--transactions", "transactions_csv", type=_CSV, default=None, help="Transaction export (CSV).")
@click.option("--as-of", type=_DATE, default=None, help="Record the payment at this time.")
@click.pass_context
def mark_paid(
    ctx: click.Context,
    reminder_id: str,
    loans_csv: Optional[Path],
    transactions_csv: Optional[Path],
    as_of: Optional[datetime],
) -> None:
    """Mark an active reminder as paid."""

    app = _app(ctx)
    now = as_of or datetime.now()
    loans, transactions = _load_inputs(loans_csv, transactions_csv)
    board = refresh_reminders(app, loans, transactions, now)
    match = next((r for r in board.all if r.id == reminder_id), None)
    if match is None:
        raise click.ClickException(f"No active reminder with id {reminder_id!r}.")
    app.ledger.mark_paid(match, now)
    click.echo(f"Marked {match.title} as paid.")


@cli.command("revert")
@click.argument("reminder_id")
@click.pass_context
def revert(ctx: click.Context, reminder_id: str) -> None:
    """Undo a paid mark."""

    if _app(ctx).ledger.revert_paid(reminder_id):
        click.echo(f"Reverted payment for {reminder_id}.")
    else:
        click.echo(f"{reminder_id} was not marked as paid.")


@cli.command("cleanup")
@click.option("--as-of", type=_DATE, default=None, help="Treat this as the current time.")
@click.pass_context
def cleanup(ctx: click.Context, as_of: Optional[datetime]) -> None:
    """Remove paid marks older than the retention window."""

    removed = _app(ctx).ledger.cleanup_expired(as_of)
    click.echo(f"Removed {removed} expired paid reminder(s).")


def main() -> None:  # pragma: no cover - console script
    cli()


if __name__ == "__main__":  # pragma: no cover
    main()
