from __future__ import annotations

from datetime import date
from pathlib import Path

import pytest
from typer.testing import CliRunner

import finance_tracker.insights as insights
from finance_tracker.cli import app
from finance_tracker.ledger import TransactionLedger
from tests.helpers.db import count_transactions
from tests.helpers.openai_stub import OpenAIStub, install

runner = CliRunner()

@pytest.fixture(autouse=True)
def _log_to_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    # The runner swaps stderr per invocation; a file handler outlives it.
    log_file = tmp_path / "cli.log"
    monkeypatch.setenv("FINANCE_TRACKER_LOG_FILE", str(log_file))
    return log_file

def test_add_then_list(_log_to_file: Path):
    res = runner.invoke(
        app,
        [
            "add",
            "--date", "2024-03-05",
            "--amount", "-12.50",
            "--category", "expense",
            "--subcategory", "food & dining",
            "--description", "lunch",
            "--tag", "work",
            "--tag", "team",
        ],
    )
    assert res.exit_code == 0, res.output
    tx_id = res.stdout.strip()

    res = runner.invoke(app, ["list"])
    assert res.exit_code == 0
    assert f"{tx_id}\t2024-03-05\t-12.50\tExpense\tFood & Dining\tlunch\twork, team" in res.stdout
    assert "ledger:add source=local" in _log_to_file.read_text(encoding="utf-8")

def test_add_rejects_bad_input():
    res = runner.invoke(app, ["add", "--amount", "abc", "--category", "Income", "--subcategory", "Salary"])
    assert res.exit_code == 1
    assert "Invalid amount" in res.output

    res = runner.invoke(app, ["add", "--amount", "5", "--category", "Income", "--subcategory", "Housing"])
    assert res.exit_code == 1
    assert "Invalid transaction" in res.output
    assert TransactionLedger.load().transactions == ()

def test_list_filters_by_range_and_category():
    for args in (
        ["--date", "2024-01-10", "--amount", "100", "--category", "Income", "--subcategory", "Gifts"],
        ["--date", "2024-02-10", "--amount", "-5", "--category", "Expense", "--subcategory", "Other"],
        ["--date", "2024-02-11", "--amount", "50", "--category", "Income", "--subcategory", "Refunds"],
    ):
        assert runner.invoke(app, ["add", *args]).exit_code == 0

    res = runner.invoke(app, ["list", "--start", "2024-02-01", "--end", "2024-02-29", "--category", "income"])
    lines = res.stdout.strip().splitlines()
    assert len(lines) == 1 and "\tRefunds\t" in lines[0]

def test_delete_unknown_id_fails():
    res = runner.invoke(app, ["delete", "nope"])
    assert res.exit_code == 1
    assert "No transaction with id nope" in res.output

def test_summary_and_dashboard_use_the_current_period():
    today = date.today().isoformat()
    runner.invoke(app, ["add", "--date", today, "--amount", "2000", "--category", "Income", "--subcategory", "Salary"])
    runner.invoke(app, ["add", "--date", today, "--amount", "-500", "--category", "Expense", "--subcategory", "Housing"])

    res = runner.invoke(app, ["summary"])
    assert res.exit_code == 0
    assert "Total income:   $2,000.00" in res.stdout
    assert "Total expenses: $500.00" in res.stdout
    assert "Net savings:    $1,500.00" in res.stdout
    assert "Housing: $-500.00" in res.stdout

    res = runner.invoke(app, ["dashboard"])
    assert "This month: income $2,000.00" in res.stdout
    assert "savings rate 75.0%" in res.stdout

def test_export_writes_report_to_cwd():
    runner.invoke(app, ["add", "--date", "2024-05-01", "--amount", "-3", "--category", "Expense", "--subcategory", "Other"])

    res = runner.invoke(app, ["export", "--start", "2024-05-01", "--end", "2024-05-31"])
    assert res.exit_code == 0, res.output
    report = Path.cwd() / "finance_report_2024-05-01_to_2024-05-31.csv"
    assert res.stdout.strip() == str(report)
    assert report.read_text(encoding="utf-8").splitlines()[1] == "2024-05-01,-3,Expense,Other,,"

def test_export_empty_range_fails():
    res = runner.invoke(app, ["export", "--start", "2020-01-01", "--end", "2020-01-31"])
    assert res.exit_code == 1
    assert "No transactions to export in the selected date range." in res.output
    assert not list(Path.cwd().glob("*.csv"))

def test_insights_requires_api_key():
    res = runner.invoke(app, ["insights"])
    assert res.exit_code == 1
    assert "OPENAI_API_KEY is not set" in res.output

def test_insights_prints_numbered_tips(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("OPENAI_API_KEY", "test-key")
    install(monkeypatch, insights, OpenAIStub(lambda kw: "Tips:\n1. Cook at home\n2. Cancel unused plans"))
    runner.invoke(app, ["add", "--amount", "-40", "--category", "Expense", "--subcategory", "Food & Dining"])

    res = runner.invoke(app, ["insights"])
    assert res.exit_code == 0, res.output
    assert res.stdout.splitlines() == ["1. Cook at home", "2. Cancel unused plans"]

def test_insights_without_transactions_fails(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("OPENAI_API_KEY", "test-key")
    res = runner.invoke(app, ["insights"])
    assert res.exit_code == 1
    assert "Please add some transactions before generating insights." in res.output

def test_chat_single_message_and_clear():
    res = runner.invoke(app, ["chat", "-m", "hello"])
    assert res.exit_code == 0
    assert res.stdout.startswith("Assistant: Hello! I'm your financial assistant.")

    res = runner.invoke(app, ["chat-clear"])
    assert res.exit_code == 0
    assert "Chat history cleared." in res.stdout

def test_chat_without_database_reports_error():
    res = runner.invoke(app, ["--user-id", "alice", "chat", "-m", "hello"])
    assert res.exit_code == 1
    assert "Failed to load chat history" in res.output

def test_migrate_requires_user():
    res = runner.invoke(app, ["migrate"])
    assert res.exit_code == 1
    assert "user id is required" in res.output

def test_migrate_then_remote_reset(sqlite_url: str, monkeypatch: pytest.MonkeyPatch):
    runner.invoke(app, ["add", "--date", "2024-01-01", "--amount", "9", "--category", "Income", "--subcategory", "Gifts"])
    runner.invoke(app, ["chat", "-m", "hello"])

    monkeypatch.setenv("FT_USER_ID", "alice")
    res = runner.invoke(app, ["--database-url", sqlite_url, "migrate"])
    assert res.exit_code == 0, res.output
    assert "Migrated 1 transactions and 3 chat messages." in res.stdout
    assert count_transactions(database_url=sqlite_url, user_id="alice") == 1

    res = runner.invoke(app, ["--database-url", sqlite_url, "reset-history", "--yes"])
    assert res.exit_code == 0
    assert "Removed 1 transactions." in res.stdout
    assert count_transactions(database_url=sqlite_url, user_id="alice") == 0

def test_reset_history_reports_local_count():
    for amount in ("9", "4"):
        res = runner.invoke(
            app,
            ["add", "--date", "2024-01-01", "--amount", amount, "--category", "Income", "--subcategory", "Gifts"],
        )
        assert res.exit_code == 0

    res = runner.invoke(app, ["reset-history", "--yes"])
    assert res.exit_code == 0
    assert "Removed 2 transactions." in res.stdout
    assert TransactionLedger.load().transactions == ()


def test_reset_history_asks_for_confirmation():
    runner.invoke(app, ["add", "--date", "2024-01-01", "--amount", "9", "--category", "Income", "--subcategory", "Gifts"])
    res = runner.invoke(app, ["reset-history"], input="n\n")
    assert res.exit_code == 1
    assert len(TransactionLedger.load().transactions) == 1
