# ruff: noqa: I001
"""CLI for the ``finance_tracker`` package.

This module exposes callable command handlers (``cmd_add``, ``cmd_summary``,
...) that take explicit arguments and return a process exit code, plus a
Typer-based console interface that wires options to them. Environment
variables (``DATABASE_URL``, ``OPENAI_API_KEY``, ``FT_USER_ID``) are loaded
from a local ``.env`` using ``python-dotenv`` before any command runs.

Identity is explicit: ``--user-id`` (or ``FT_USER_ID``) selects the remote
store; without it every command works against the local store.
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path

import typer
from dotenv import load_dotenv
from pydantic import ValidationError
from typer.models import OptionInfo

from .aggregation import month_bounds
from .export import export_filename
from .ledger import TransactionLedger
from .logging_setup import configure_logging
from .models import (
    Category,
    PeriodOverview,
    TransactionDraft,
    TransactionSummary,
    UserContext,
    subcategories_for,
)


@dataclass(frozen=True, slots=True)
class CliState:
    user: UserContext | None = None
    database_url: str | None = None


def _err(message: str) -> None:
    print(f"Error: {message}", file=sys.stderr)


def _resolve_range(start: date | None, end: date | None, *, today: date) -> tuple[date, date]:
    """Default to the first of the current month through ``today``."""

    first, _last = month_bounds(today)
    return (start or first), (end or today)


def _as_date(value: datetime | date | None) -> date | None:
    if isinstance(value, datetime):
        return value.date()
    return value


def _money(v: Decimal) -> str:
    return f"${v:,.2f}"


def _print_summary(summary: TransactionSummary, start: date, end: date) -> None:
    print(f"Period: {start.isoformat()} to {end.isoformat()}")
    print(f"Total income:   {_money(summary.total_income)}")
    print(f"Total expenses: {_money(summary.total_expense)}")
    print(f"Net savings:    {_money(summary.net_savings)}")
    if summary.category_breakdown:
        print("By subcategory:")
        for name, amount in sorted(
            summary.category_breakdown.items(), key=lambda kv: abs(kv[1]), reverse=True
        ):
            print(f"  {name or '(none)'}: {_money(amount)}")


def _print_overview(label: str, ov: PeriodOverview) -> None:
    print(
        f"{label}: income {_money(ov.income)} | expenses {_money(ov.expense)} | "
        f"savings {_money(ov.savings)} | savings rate {ov.savings_rate:.1f}%"
    )


# ---- Command handlers --------------------------------------------------------


def cmd_add(
    state: CliState,
    *,
    on: date,
    amount: str,
    category: Category,
    subcategory: str | None,
    description: str = "",
    tags: list[str] | None = None,
) -> int:
    """Validate and store one transaction; prints its id on success."""

    try:
        value = Decimal(amount.strip())
    except InvalidOperation:
        _err(f"Invalid amount: {amount!r}")
        return 1

    if subcategory is None:
        from .term_ui import select_subcategory

        subcategory = select_subcategory(category)
        if subcategory is None:
            _err("Canceled.")
            return 1
    else:
        # Accept any casing of an allowed name.
        canonical = {s.lower(): s for s in subcategories_for(category)}
        subcategory = canonical.get(subcategory.strip().lower(), subcategory)

    try:
        draft = TransactionDraft(
            date=on,
            amount=value,
            category=category,
            subcategory=subcategory,
            description=description,
            tags=tuple(tags or ()),
        )
    except ValidationError as e:
        _err(f"Invalid transaction: {e.errors()[0].get('msg')}")
        return 1

    ledger = TransactionLedger.load(state.user, database_url=state.database_url)
    tx = ledger.add(draft)
    print(tx.id)
    return 0


def cmd_delete(state: CliState, transaction_id: str) -> int:
    ledger = TransactionLedger.load(state.user, database_url=state.database_url)
    if not ledger.delete(transaction_id):
        _err(f"No transaction with id {transaction_id}")
        return 1
    print(f"Deleted {transaction_id}")
    return 0


def cmd_list(
    state: CliState,
    *,
    start: date | None,
    end: date | None,
    category: Category | None = None,
    subcategory: str | None = None,
    today: date | None = None,
) -> int:
    """Print matching transactions as tab-separated lines.

    Without bounds every stored transaction is listed; with one or both
    bounds the range defaults apply to the missing side.
    """

    ledger = TransactionLedger.load(state.user, database_url=state.database_url)
    if start is None and end is None:
        rows = list(ledger.transactions)
    else:
        rows = ledger.by_date_range(*_resolve_range(start, end, today=today or date.today()))

    if category is not None:
        rows = [t for t in rows if t.category == category]
    if subcategory is not None:
        wanted = subcategory.strip().lower()
        rows = [t for t in rows if t.subcategory.lower() == wanted]

    for t in rows:
        tags = ", ".join(t.tags)
        print(
            f"{t.id}\t{t.date}\t{t.amount}\t{t.category.value}\t{t.subcategory}\t"
            f"{t.description}\t{tags}"
        )
    return 0


def cmd_summary(
    state: CliState, *, start: date | None, end: date | None, today: date | None = None
) -> int:
    s, e = _resolve_range(start, end, today=today or date.today())
    ledger = TransactionLedger.load(state.user, database_url=state.database_url)
    _print_summary(ledger.summary(s, e), s, e)
    return 0


def cmd_dashboard(state: CliState, *, today: date | None = None) -> int:
    ledger = TransactionLedger.load(state.user, database_url=state.database_url)
    snap = ledger.dashboard(today or date.today())
    _print_overview("This month", snap.monthly)
    _print_overview("This year", snap.yearly)
    return 0


def cmd_export(
    state: CliState,
    *,
    start: date | None,
    end: date | None,
    output: Path | None = None,
    today: date | None = None,
) -> int:
    """Write a CSV report; ``output`` may be a file or an existing directory."""

    s, e = _resolve_range(start, end, today=today or date.today())
    ledger = TransactionLedger.load(state.user, database_url=state.database_url)
    try:
        text = ledger.export_csv(s, e)
    except ValueError as exc:
        _err(str(exc))
        return 1

    if output is None:
        target = Path.cwd() / export_filename(s, e)
    elif output.is_dir():
        target = output / export_filename(s, e)
    else:
        target = output
    try:
        target.write_text(text, encoding="utf-8")
    except OSError as exc:
        _err(f"Failed to write {target}: {exc}")
        return 1
    print(str(target))
    return 0


def cmd_insights(state: CliState, *, today: date | None = None) -> int:
    from .insights import InsightsError, generate_suggestions

    if not os.getenv("OPENAI_API_KEY"):
        _err("OPENAI_API_KEY is not set in the environment.")
        return 1

    ledger = TransactionLedger.load(state.user, database_url=state.database_url)
    try:
        suggestions = generate_suggestions(ledger.transactions, today=today)
    except InsightsError as e:
        _err(str(e))
        return 1

    for i, tip in enumerate(suggestions, start=1):
        print(f"{i}. {tip}")
    return 0


def cmd_chat(state: CliState, *, message: str | None = None) -> int:
    """Chat with the rule-based assistant.

    With ``message`` a single exchange is printed; otherwise an interactive
    prompt runs until ``exit``.
    """

    from .assistant import AssistantSession
    from .chat_history import ChatHistory, ChatHistoryError
    from .term_ui import format_message, run_chat

    ledger = TransactionLedger.load(state.user, database_url=state.database_url)
    history = ChatHistory(state.user, database_url=state.database_url)
    session = AssistantSession(ledger, history)
    try:
        if message is None:
            run_chat(session)
            return 0
        session.start()
        reply = session.send(message)
    except ChatHistoryError as e:
        _err(str(e))
        return 1
    if reply is not None:
        print(format_message(reply))
    return 0


def cmd_chat_clear(state: CliState) -> int:
    from .chat_history import ChatHistory, ChatHistoryError

    try:
        ChatHistory(state.user, database_url=state.database_url).clear()
    except ChatHistoryError as e:
        _err(str(e))
        return 1
    print("Chat history cleared.")
    return 0


def cmd_migrate(state: CliState) -> int:
    from .migrate import migrate_local_chat_history, migrate_local_transactions

    if state.user is None:
        _err("A user id is required to migrate local data (use --user-id or FT_USER_ID).")
        return 1

    tx_result = migrate_local_transactions(state.user, database_url=state.database_url)
    if not tx_result.success:
        _err(f"{tx_result.error} (migrated {tx_result.migrated_count} transactions)")
        return 1
    chat_result = migrate_local_chat_history(state.user, database_url=state.database_url)
    if not chat_result.success:
        _err(str(chat_result.error))
        return 1
    print(
        f"Migrated {tx_result.migrated_count} transactions and "
        f"{chat_result.migrated_count} chat messages."
    )
    return 0


def cmd_reset_history(state: CliState) -> int:
    from .ledger import REMOTE_ERRORS

    ledger = TransactionLedger(state.user, database_url=state.database_url)
    try:
        removed = ledger.reset_history()
    except REMOTE_ERRORS as e:
        _err(f"reset failed: {e}")
        return 1
    print(f"Removed {removed} transactions.")
    return 0


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Track income and expenses, summarize periods, export CSV reports and get "
        "financial tips. Loads DATABASE_URL/OPENAI_API_KEY from a local .env."
    ),
)

# Module-level option objects to satisfy ruff B008 (no calls in parameter
# defaults). Typer inspects these when used as default values below.
DATE_FORMATS = ["%Y-%m-%d"]
START_OPTION: OptionInfo = typer.Option(
    None, "--start", formats=DATE_FORMATS, help="First day (YYYY-MM-DD), inclusive."
)
END_OPTION: OptionInfo = typer.Option(
    None, "--end", formats=DATE_FORMATS, help="Last day (YYYY-MM-DD), inclusive."
)
ON_OPTION: OptionInfo = typer.Option(
    None, "--date", formats=DATE_FORMATS, help="Transaction date (defaults to today)."
)
AMOUNT_OPTION: OptionInfo = typer.Option(..., "--amount", help="Signed amount, e.g. 12.50")
CATEGORY_OPTION: OptionInfo = typer.Option(
    ..., "--category", case_sensitive=False, help="Income or Expense."
)
CATEGORY_FILTER_OPTION: OptionInfo = typer.Option(
    None, "--category", case_sensitive=False, help="Only this category."
)
SUBCATEGORY_OPTION: OptionInfo = typer.Option(
    None, "--subcategory", help="Subcategory (prompted interactively when omitted)."
)
SUBCATEGORY_FILTER_OPTION: OptionInfo = typer.Option(
    None, "--subcategory", help="Only this subcategory (case-insensitive)."
)
DESCRIPTION_OPTION: OptionInfo = typer.Option("", "--description", help="Free text.")
TAG_OPTION: OptionInfo = typer.Option(None, "--tag", help="Tag label; repeat for several.")
OUTPUT_OPTION: OptionInfo = typer.Option(
    None, "--output", "-o", help="Output file or directory (defaults to the CWD)."
)
MESSAGE_OPTION: OptionInfo = typer.Option(
    None, "--message", "-m", help="Send one message and print the reply."
)
YES_OPTION: OptionInfo = typer.Option(False, "--yes", "-y", help="Skip the confirmation.")


def _state(ctx: typer.Context) -> CliState:
    obj = ctx.obj
    return obj if isinstance(obj, CliState) else CliState()


def _finish(code: int) -> None:
    if code:
        raise typer.Exit(code)


@app.command("add")
def add_cmd(
    ctx: typer.Context,
    amount: str = AMOUNT_OPTION,
    category: Category = CATEGORY_OPTION,
    subcategory: str | None = SUBCATEGORY_OPTION,
    on: datetime | None = ON_OPTION,
    description: str = DESCRIPTION_OPTION,
    tag: list[str] | None = TAG_OPTION,
) -> None:
    """Add an income or expense transaction."""

    _finish(
        cmd_add(
            _state(ctx),
            on=_as_date(on) or date.today(),
            amount=amount,
            category=category,
            subcategory=subcategory,
            description=description,
            tags=tag,
        )
    )


@app.command("delete")
def delete_cmd(ctx: typer.Context, transaction_id: str) -> None:
    """Delete a transaction by id."""

    _finish(cmd_delete(_state(ctx), transaction_id))


@app.command("list")
def list_cmd(
    ctx: typer.Context,
    start: datetime | None = START_OPTION,
    end: datetime | None = END_OPTION,
    category: Category | None = CATEGORY_FILTER_OPTION,
    subcategory: str | None = SUBCATEGORY_FILTER_OPTION,
) -> None:
    """List transactions, optionally filtered by range and category."""

    _finish(
        cmd_list(
            _state(ctx),
            start=_as_date(start),
            end=_as_date(end),
            category=category,
            subcategory=subcategory,
        )
    )


@app.command("summary")
def summary_cmd(
    ctx: typer.Context,
    start: datetime | None = START_OPTION,
    end: datetime | None = END_OPTION,
) -> None:
    """Income, expenses, net savings and a per-subcategory breakdown."""

    _finish(cmd_summary(_state(ctx), start=_as_date(start), end=_as_date(end)))


@app.command("dashboard")
def dashboard_cmd(ctx: typer.Context) -> None:
    """Current month and year at a glance."""

    _finish(cmd_dashboard(_state(ctx)))


@app.command("export")
def export_cmd(
    ctx: typer.Context,
    start: datetime | None = START_OPTION,
    end: datetime | None = END_OPTION,
    output: Path | None = OUTPUT_OPTION,
) -> None:
    """Export transactions in a date range to CSV."""

    _finish(
        cmd_export(_state(ctx), start=_as_date(start), end=_as_date(end), output=output)
    )


@app.command("insights")
def insights_cmd(ctx: typer.Context) -> None:
    """Ask the model for personalized suggestions (last 3 months)."""

    _finish(cmd_insights(_state(ctx)))


@app.command("chat")
def chat_cmd(ctx: typer.Context, message: str | None = MESSAGE_OPTION) -> None:
    """Chat with the rule-based financial assistant."""

    _finish(cmd_chat(_state(ctx), message=message))


@app.command("chat-clear")
def chat_clear_cmd(ctx: typer.Context) -> None:
    """Clear the chat history."""

    _finish(cmd_chat_clear(_state(ctx)))


@app.command("migrate")
def migrate_cmd(ctx: typer.Context) -> None:
    """Copy local transactions and chat history to the remote store."""

    _finish(cmd_migrate(_state(ctx)))


@app.command("reset-history")
def reset_history_cmd(ctx: typer.Context, yes: bool = YES_OPTION) -> None:
    """Delete all of the current user's transactions."""

    if not yes and not typer.confirm("Delete all transactions?"):
        _finish(1)
    _finish(cmd_reset_history(_state(ctx)))


@app.callback(invoke_without_command=True)
def _root(
    ctx: typer.Context,
    *,
    user_id: str | None = typer.Option(
        None, "--user-id", help="Remote identity (falls back to env FT_USER_ID)."
    ),
    database_url: str | None = typer.Option(
        None, help="Override DATABASE_URL (falls back to env var)."
    ),
    log_level: str | None = typer.Option(
        None, help="Log level (falls back to env FINANCE_TRACKER_LOG_LEVEL, then INFO)."
    ),
) -> None:
    """Root command.

    Loads ``.env`` from the current working directory (without overriding any
    already-set environment variables), configures logging and resolves the
    identity shared by every subcommand.
    """

    # Load environment from .env in CWD (override=False to keep existing env)
    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)

    # Central logging setup so child loggers inherit configuration
    configure_logging(log_level)

    uid = (user_id or os.getenv("FT_USER_ID") or "").strip()
    ctx.obj = CliState(user=UserContext(uid) if uid else None, database_url=database_url)

    if ctx.invoked_subcommand is None:
        typer.echo("No subcommand provided. Use --help to see available commands.")
        raise typer.Exit(1)


def main() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    # Running as a module: `python -m finance_tracker.cli`
    main()
