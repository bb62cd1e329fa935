from __future__ import annotations

from datetime import UTC, date, datetime
from decimal import Decimal

import pytest

from finance_tracker.assistant import (
    AssistantSession,
    has_transaction_data,
    is_follow_up,
    respond,
)
from finance_tracker.chat_history import WELCOME_MESSAGE, ChatHistory
from finance_tracker.ledger import TransactionLedger
from finance_tracker.models import Category, ChatMessage, TransactionDraft, TransactionSummary

EMPTY = TransactionSummary()
HEALTHY = TransactionSummary(
    total_income=Decimal(4000),
    total_expense=Decimal(3000),
    total_expense_raw=Decimal(-3000),
    net_savings=Decimal(1000),
    category_breakdown={"Salary": Decimal(4000), "Housing": Decimal(-2000), "Food": Decimal(-1000)},
)
DEFICIT = TransactionSummary(
    total_income=Decimal(1000),
    total_expense=Decimal(1500),
    total_expense_raw=Decimal(-1500),
    net_savings=Decimal(-500),
    category_breakdown={"Salary": Decimal(1000), "Housing": Decimal(-1500)},
)
T0 = datetime(2024, 6, 1, tzinfo=UTC)


def _bot(content: str) -> ChatMessage:
    return ChatMessage(content=content, sender="assistant", timestamp=T0)


def _user(content: str) -> ChatMessage:
    return ChatMessage(content=content, sender="user", timestamp=T0)


# ---- Without data ------------------------------------------------------------


def test_data_presence_looks_at_income_and_expense():
    assert has_transaction_data(EMPTY) is False
    assert has_transaction_data(TransactionSummary(total_expense=Decimal(1))) is True


def test_greeting_is_the_same_in_both_tables():
    assert respond("Hello there", EMPTY) == respond("hey", HEALTHY)
    assert respond("hello", EMPTY).startswith("Hello! I'm your financial assistant.")


def test_no_data_topics():
    assert "profit or loss" in respond("Am I at a loss?", EMPTY)
    assert '"add" command' in respond("show my transactions", EMPTY)
    assert "no income data" in respond("what do I earn", EMPTY)
    assert "no expense data" in respond("my expenses", EMPTY)
    assert "savings rate" in respond("can I save more", EMPTY)


def test_no_data_elaboration_follows_the_last_reply():
    history = [_bot("I don't see any transactions in your account yet.")]
    assert "For income, use positive amounts" in respond("tell me more", EMPTY, history)
    assert "detailed financial insights" in respond("tell me more", EMPTY, [_bot("Sure.")])


@pytest.mark.parametrize("query,index", [("xyz", 0), ("what now", 2), ("good mood", 0)])
def test_no_data_fallback_rotates_by_length(query: str, index: int):
    replies = {respond(q, EMPTY) for q in ("a", "ab", "abc")}
    assert len(replies) == 3
    expected = respond("a" * (3 + index), EMPTY)
    assert respond(query, EMPTY) == expected


# ---- With data ---------------------------------------------------------------


def test_savings_rate_at_or_above_twenty_percent_is_praised():
    reply = respond("How much do I save?", HEALTHY)
    assert "your savings rate is 25.0%" in reply
    assert "That's excellent!" in reply


def test_low_savings_rate_gets_advice():
    reply = respond("saving tips", DEFICIT)
    assert "your savings rate is -50.0%" in reply
    assert "Consider reviewing your expenses" in reply


def test_budget_lists_positive_entries_first():
    reply = respond("my budget", HEALTHY)
    assert reply.startswith("Your top spending categories are Salary: $4000.00.")


def test_income_and_expense_quote_three_month_averages():
    assert "total income was $4000.00" in respond("what did I earn", HEALTHY)
    assert "average monthly income is $1333.33" in respond("what did I earn", HEALTHY)
    assert "average monthly spending is $1000.00" in respond("expense report", HEALTHY)


def test_investing_depends_on_net_savings():
    assert "capacity for investing" in respond("should I invest", HEALTHY)
    assert "focus on increasing your savings" in respond("should I invest", DEFICIT)


def test_profit_or_loss():
    assert "positive financial position with net savings of $1000.00" in respond("profit?", HEALTHY)
    assert "by $500.00" in respond("loss?", DEFICIT)
    balanced = TransactionSummary(total_income=Decimal(10), total_expense=Decimal(10))
    assert "exactly balanced (both $10.00)" in respond("profit?", balanced)


def test_elaboration_uses_the_most_recent_assistant_message():
    history = [
        _bot("Your savings rate is 25%."),
        _user("and income?"),
        _bot("Over the past 3 months, your total income was $4000.00."),
    ]
    assert "Your income breakdown" in respond("elaborate", HEALTHY, history)
    assert "50/30/20 rule" in respond("more detail", HEALTHY, history[:1])


def test_elaborating_on_budget_lists_most_negative_entries():
    reply = respond("tell me more", HEALTHY, [_bot("Your top spending categories are ...")])
    assert "Housing: $2000.00, Food: $1000.00" in reply


def test_data_fallback_rotates_by_length():
    assert respond("xyz", HEALTHY).startswith("I analyzed your recent transactions")
    assert respond("wxyz", HEALTHY).startswith("Looking at your financial data")


def test_follow_up_detection():
    assert is_follow_up("what about rent", []) is False
    assert is_follow_up("what about rent", ["first"]) is True
    assert is_follow_up("That seems high", ["first"]) is True
    assert is_follow_up("rent please", ["first"]) is False
    assert is_follow_up("rent and food", ["first"]) is True


# ---- Session -----------------------------------------------------------------


def test_session_records_both_sides_over_recent_data():
    ledger = TransactionLedger.load()
    ledger.add(
        TransactionDraft(
            date=date(2024, 6, 1), amount=Decimal(4000), category=Category.INCOME, subcategory="Salary"
        )
    )
    ledger.add(
        TransactionDraft(
            date=date(2024, 6, 2), amount=Decimal(-1000), category=Category.EXPENSE, subcategory="Housing"
        )
    )
    session = AssistantSession(ledger, ChatHistory(), today=lambda: date(2024, 6, 15))

    assert [m.content for m in session.start()] == [WELCOME_MESSAGE]
    reply = session.send("how much do I save")
    assert reply is not None and "75.0%" in reply.content
    assert [m.sender for m in session.messages] == ["assistant", "user", "assistant"]

    assert session.send("   ") is None
    assert len(session.messages) == 3

    assert [m.content for m in session.clear()] == [WELCOME_MESSAGE]


def test_session_ignores_data_older_than_three_months():
    ledger = TransactionLedger.load()
    ledger.add(
        TransactionDraft(
            date=date(2023, 1, 1), amount=Decimal(100), category=Category.INCOME, subcategory="Gifts"
        )
    )
    session = AssistantSession(ledger, ChatHistory(), today=lambda: date(2024, 6, 15))
    session.start()
    reply = session.send("my income")
    assert reply is not None and "no income data" in reply.content
