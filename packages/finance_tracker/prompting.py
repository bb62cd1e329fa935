"""Prompt construction for LLM-generated financial suggestions.

This module builds:
- The system instructions for the advisor role.
- The user content: period totals, per-subcategory amounts and a short list
  of recent transactions, one per line.
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal

from .models import Transaction, TransactionSummary

SUGGESTION_COUNT: int = 5


def _money(v: Decimal) -> str:
    return f"${v:.2f}"


def format_transaction_line(t: Transaction) -> str:
    """``<date>: <category> - <subcategory> - $<amount> - <description>``"""

    return (
        f"{t.date}: {t.category.value} - {t.subcategory} - {_money(t.amount)} - {t.description}"
    )


def build_system_instructions() -> str:
    return (
        "You are a financial advisor. Give specific, actionable, data-driven advice based "
        "only on the transaction data provided. Do not include generic advice that does "
        "not relate to that data."
    )


def build_user_content(
    summary: TransactionSummary,
    recent_transactions: Sequence[Transaction],
) -> str:
    """Build the user prompt for one suggestions request.

    - Totals use the summary as computed (expense as a magnitude).
    - ``Spending by Category`` lists the signed breakdown in insertion order.
    - The model is asked for a numbered list so the reply can be split into
      individual suggestions.
    """

    categories = "\n".join(
        f"{name}: {_money(amount)}" for name, amount in summary.category_breakdown.items()
    )
    if recent_transactions:
        recent = "\n".join(format_transaction_line(t) for t in recent_transactions)
    else:
        recent = "No recent transactions available."

    return (
        f"Provide {SUGGESTION_COUNT} personalized financial suggestions based on the "
        "following transaction data.\n\n"
        f"Total Income: {_money(summary.total_income)}\n"
        f"Total Expenses: {_money(summary.total_expense)}\n"
        f"Net Savings: {_money(summary.net_savings)}\n\n"
        f"Spending by Category:\n{categories}\n\n"
        f"Recent Transactions:\n{recent}\n\n"
        "Provide specific, actionable advice for budget optimization, saving opportunities, "
        "and spending habits improvement. Format the answer as a numbered list "
        "(\"1. \", \"2. \", ...) with one concise tip per item."
    )


__all__ = [
    "SUGGESTION_COUNT",
    "build_system_instructions",
    "build_user_content",
    "format_transaction_line",
]
