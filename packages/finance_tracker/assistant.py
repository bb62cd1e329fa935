"""Rule-based conversational financial assistant.

Replies are picked by case-insensitive substring matching against a fixed
intent table, evaluated in order. There are two tables: one used when the
last three months hold no income or expense at all, and one that quotes the
user's own figures. When nothing matches, one of three canned replies is
chosen by ``len(query) % 3`` so repeated questions still vary.

:class:`AssistantSession` ties the responder to a
:class:`~finance_tracker.ledger.TransactionLedger` and a
:class:`~finance_tracker.chat_history.ChatHistory`.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Sequence
from datetime import date
from decimal import Decimal

from .aggregation import savings_rate, trailing_months
from .chat_history import ChatHistory
from .ledger import TransactionLedger
from .logging_setup import get_logger
from .models import ChatMessage, TransactionSummary

_logger = get_logger("finance_tracker.assistant")

_GREETING = (
    "Hello! I'm your financial assistant. I can help you understand your spending "
    "patterns, savings rate, and provide financial insights. How can I assist you today?"
)

_NO_DATA_RESPONSES: tuple[str, ...] = (
    "I don't see any transaction data yet. Would you like to add some transactions to "
    "get started with financial tracking?",
    "It looks like you haven't added any transactions yet. Adding your income and "
    "expenses will help me provide personalized financial insights.",
    "To give you meaningful financial advice, I'll need some transaction data to "
    "analyze. Would you like to know how to add transactions?",
)

_FOLLOW_UP_INDICATORS: tuple[str, ...] = (
    "what about",
    "how about",
    "and",
    "also",
    "why",
    "how",
    "what else",
    "can you",
    "could you",
    "please",
    "then",
    "so",
    "actually",
)
_PRONOUN_START_RE = re.compile(r"^(it|this|that|these|those|they)\b", re.IGNORECASE)

_ELABORATE = ("tell me more", "more detail", "elaborate")


def _has(text: str, *needles: str) -> bool:
    return any(n in text for n in needles)


def _money(v: Decimal) -> str:
    return f"${v:.2f}"


def is_follow_up(query: str, previous_user_messages: Sequence[str]) -> bool:
    """Whether ``query`` reads as a continuation of the earlier conversation."""

    if not previous_user_messages:
        return False
    q = query.lower().strip()
    if _PRONOUN_START_RE.match(q):
        return True
    return any(q.startswith(ind) or f" {ind} " in q for ind in _FOLLOW_UP_INDICATORS)


def has_transaction_data(summary: TransactionSummary) -> bool:
    return abs(summary.total_income) > 0 or abs(summary.total_expense) > 0


# ---- Reply tables ------------------------------------------------------------


def _respond_without_data(q: str, query: str, last_bot_message: str) -> str:
    if _has(q, "hello", "hi", "hey"):
        return _GREETING

    if _has(q, "loss", "profit"):
        return (
            "I don't see any transaction data yet, so I can't determine if you're in a "
            "profit or loss situation. Try adding your income and expenses first, then I "
            "can analyze your financial position."
        )

    if _has(q, *_ELABORATE):
        if "transaction" in last_bot_message.lower():
            return (
                'To add transactions, use the "add" command. Enter the date, amount, '
                "category, and other details. For income, use positive amounts, and for "
                'expenses, you can use either negative amounts or select "Expense" as the '
                "category. Once you've added some transactions, I can provide personalized "
                "financial insights."
            )
        return (
            "To provide detailed financial insights, I'll need some transaction data to "
            "analyze. Once you've added some transactions, I can tell you about your "
            "spending patterns, saving rate, and offer personalized advice."
        )

    if "transaction" in q:
        return (
            "I don't see any transactions in your account yet. To get started, use the "
            '"add" command and enter your income and expenses. Once you\'ve added some '
            "data, I can provide meaningful insights."
        )

    if _has(q, "income", "earn"):
        return (
            "There's no income data recorded yet. To track your income, add transactions "
            'with the "Income" category. You can specify different income sources like '
            '"Salary", "Freelance", or "Investments" as subcategories.'
        )

    if _has(q, "expense", "spend"):
        return (
            "There's no expense data recorded yet. Start tracking your expenses by adding "
            'transactions with the "Expense" category. Categorizing your expenses (like '
            '"Food", "Housing", "Transportation") will help you understand your spending '
            "patterns better."
        )

    if _has(q, "save", "saving"):
        return (
            "I don't have enough transaction data to calculate your savings rate. To track "
            "savings, add both your income and expense transactions. Your savings rate is "
            "the percentage of income that you're not spending."
        )

    if _has(q, "budget", "spending"):
        return (
            "To create a budget, first add your income and expense transactions. This will "
            "help me analyze your spending patterns and suggest appropriate budget "
            "categories and limits based on your actual financial behavior."
        )

    return _NO_DATA_RESPONSES[len(query) % len(_NO_DATA_RESPONSES)]


def _top_categories(summary: TransactionSummary, *, negative: bool) -> list[str]:
    # Positive entries rank largest first; negative entries rank most negative first.
    if negative:
        items = sorted(
            ((k, v) for k, v in summary.category_breakdown.items() if v < 0),
            key=lambda kv: kv[1],
        )
    else:
        items = sorted(
            ((k, v) for k, v in summary.category_breakdown.items() if v > 0),
            key=lambda kv: kv[1],
            reverse=True,
        )
    return [f"{name}: {_money(abs(amount))}" for name, amount in items[:3]]


def _respond_with_data(
    q: str, query: str, last_bot_message: str, summary: TransactionSummary
) -> str:
    income = summary.total_income
    expense = summary.total_expense
    net = summary.net_savings
    rate = savings_rate(summary)

    if _has(q, "hello", "hi", "hey"):
        return _GREETING

    if _has(q, "save", "saving"):
        if float(f"{rate:.1f}") >= 20:
            advice = (
                "That's excellent! Financial experts recommend saving at least 20% of your "
                "income."
            )
        else:
            advice = (
                "Financial experts recommend saving at least 20% of your income. Consider "
                "reviewing your expenses to increase your savings rate."
            )
        return f"Based on your transaction history, your savings rate is {rate:.1f}%. {advice}"

    if _has(q, "budget", "spending"):
        top = _top_categories(summary, negative=False)
        if top:
            return (
                f"Your top spending categories are {', '.join(top)}. Consider setting budget "
                "limits for these categories to better manage your finances."
            )
        return (
            "I don't see any significant spending categories in your recent transactions. "
            "Start tracking your expenses consistently to get better insights."
        )

    if _has(q, "income", "earn"):
        return (
            f"Over the past 3 months, your total income was {_money(income)}. "
            f"Your average monthly income is {_money(income / 3)}."
        )

    if _has(q, "expense", "spend"):
        return (
            f"Over the past 3 months, your total expenses were {_money(expense)}. "
            f"Your average monthly spending is {_money(expense / 3)}."
        )

    if "invest" in q:
        capacity = (
            "you appear to have some capacity for investing."
            if net > 0
            else "you may want to focus on increasing your savings before investing."
        )
        return (
            "If you're interested in investing, a general rule is to first build an "
            "emergency fund of 3-6 months of expenses, then consider low-cost index funds "
            f"for long-term growth. Based on your savings rate of {rate:.1f}%, {capacity}"
        )

    if _has(q, "loss", "profit"):
        if net > 0:
            return (
                "Based on your transactions, you're in a positive financial position with "
                f"net savings of {_money(net)}. Your income ({_money(income)}) exceeds your "
                f"expenses ({_money(expense)}), which is great!"
            )
        if net < 0:
            return (
                f"Currently, your expenses ({_money(expense)}) exceed your income "
                f"({_money(income)}) by {_money(abs(net))}. This means you're in a deficit "
                "position. Consider reviewing your budget to find areas where you can cut back."
            )
        return (
            f"Your income and expenses are exactly balanced (both {_money(income)}). While "
            "you're not in a loss, you're also not saving anything. Consider reducing some "
            "expenses to build savings."
        )

    if _has(q, *_ELABORATE):
        last = last_bot_message.lower()
        if "income" in last:
            return (
                f"Your income breakdown shows a total of {_money(income)} over the past 3 "
                "months. To increase your income, consider exploring side gigs, asking for "
                "a raise, or developing skills that can lead to higher-paying opportunities."
            )
        if "expense" in last:
            return (
                f"Looking at your expense details, you've spent {_money(expense)} in the "
                "last 3 months. The most effective way to reduce expenses is usually to "
                "focus on your largest spending categories first, as they provide the "
                "biggest opportunities for savings."
            )
        if _has(last, "saving", "save"):
            return (
                "To improve your savings, consider implementing the 50/30/20 rule: allocate "
                "50% of your income to needs, 30% to wants, and 20% to savings. Automating "
                "your savings through scheduled transfers can also help make saving more "
                "consistent."
            )
        if _has(last, "budget", "spend"):
            top = _top_categories(summary, negative=True)
            if top:
                return (
                    f"Your highest expense categories are {', '.join(top)}. To improve your "
                    "budget, consider setting specific spending limits for each category and "
                    "tracking your progress weekly."
                )
            return (
                "To create an effective budget, first categorize your expenses, then set "
                "realistic spending limits for each category. Many experts recommend the "
                "50/30/20 rule: 50% for needs, 30% for wants, and 20% for savings."
            )
        return (
            f"Your current financial snapshot shows income of {_money(income)}, expenses "
            f"of {_money(expense)}, and net savings of {_money(net)}. A healthy financial "
            "position typically includes an emergency fund of 3-6 months of expenses, a "
            "savings rate of at least 20%, and manageable debt levels."
        )

    defaults = (
        f"I analyzed your recent transactions (income: {_money(income)}, expenses: "
        f"{_money(expense)}). Your net savings are {_money(net)}. How else can I help you "
        "understand your finances?",
        f"Looking at your financial data, you have income of {_money(income)} and expenses "
        f"of {_money(expense)}. Would you like specific advice about budgeting, saving, or "
        "investing?",
        f"Your financial summary shows {_money(income)} in income and {_money(expense)} in "
        "expenses. Is there a particular aspect of your finances you'd like to improve?",
    )
    return defaults[len(query) % len(defaults)]


def respond(
    query: str,
    summary: TransactionSummary,
    history: Sequence[ChatMessage] = (),
) -> str:
    """Reply to ``query`` given the period ``summary`` and the prior conversation.

    ``history`` holds the messages exchanged before ``query``; the most
    recent assistant message decides the topic of "tell me more" requests.
    """

    q = query.lower().strip()
    user_messages = [m.content for m in history if m.sender == "user"]
    bot_messages = [m.content for m in history if m.sender == "assistant"]
    last_bot_message = bot_messages[-1] if bot_messages else ""

    _logger.debug(
        "respond:query length=%d follow_up=%s has_data=%s",
        len(query),
        is_follow_up(query, user_messages),
        has_transaction_data(summary),
    )

    if not has_transaction_data(summary):
        return _respond_without_data(q, query, last_bot_message)
    return _respond_with_data(q, query, last_bot_message, summary)


class AssistantSession:
    """A chat with the rule-based assistant over the last three months of data."""

    def __init__(
        self,
        ledger: TransactionLedger,
        history: ChatHistory,
        *,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._ledger = ledger
        self._history = history
        self._today = today

    @property
    def messages(self) -> tuple[ChatMessage, ...]:
        return self._history.messages

    def start(self) -> tuple[ChatMessage, ...]:
        return self._history.load()

    def send(self, query: str) -> ChatMessage | None:
        """Record ``query``, generate a reply and record it; blank input is ignored."""

        if not query.strip():
            return None
        prior = self._history.messages
        self._history.add(query, "user")
        summary = self._ledger.summary(*trailing_months(self._today()))
        reply = respond(query, summary, prior)
        return self._history.add(reply, "assistant")

    def clear(self) -> tuple[ChatMessage, ...]:
        return self._history.clear()


__all__ = [
    "AssistantSession",
    "has_transaction_data",
    "is_follow_up",
    "respond",
]
