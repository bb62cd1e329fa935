"""Data models and type aliases for ``finance_tracker``.

Records that cross a boundary (stored transactions, user drafts, chat
messages) are pydantic models so malformed input fails loudly at the edge.
Results computed in-process (summaries, dashboard rows) are frozen
dataclasses.

The sign of ``Transaction.amount`` is deliberately not normalized: some
producers store expenses as negative numbers and others as positive
magnitudes tagged ``Expense``. The aggregation engine tolerates both.
"""

from __future__ import annotations

import datetime as dt
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from decimal import Decimal
from enum import StrEnum
from typing import Literal, TypeAlias

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------


class Category(StrEnum):
    """Top-level classification of a transaction."""

    INCOME = "Income"
    EXPENSE = "Expense"


# Vocabularies offered by the add form. Stored records are not checked
# against these; only new drafts are.
INCOME_SUBCATEGORIES: tuple[str, ...] = (
    "Salary",
    "Freelance",
    "Investments",
    "Gifts",
    "Refunds",
    "Business",
    "Other",
)

EXPENSE_SUBCATEGORIES: tuple[str, ...] = (
    "Food & Dining",
    "Shopping",
    "Housing",
    "Transportation",
    "Entertainment",
    "Healthcare",
    "Personal Care",
    "Education",
    "Travel",
    "Utilities",
    "Insurance",
    "Debt Payments",
    "Savings & Investments",
    "Gifts & Donations",
    "Other",
)

SUBCATEGORIES: Mapping[Category, tuple[str, ...]] = {
    Category.INCOME: INCOME_SUBCATEGORIES,
    Category.EXPENSE: EXPENSE_SUBCATEGORIES,
}


def subcategories_for(category: Category | str) -> tuple[str, ...]:
    """Return the allow-list for ``category`` (raises ``ValueError`` if unknown)."""

    return SUBCATEGORIES[Category(category)]


# ---------------------------------------------------------------------------
# Identity
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class UserContext:
    """Identity of the signed-in user.

    Passed explicitly to persistence-facing code; ``None`` in its place means
    anonymous mode, where data lives in the local store only.
    """

    user_id: str

    def __post_init__(self) -> None:
        if not self.user_id or not self.user_id.strip():
            raise ValueError("UserContext.user_id must be a non-empty string")


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------


def _clean_tags(v: Sequence[str] | None) -> tuple[str, ...]:
    if v is None:
        return ()
    return tuple(s.strip() for s in v if isinstance(s, str) and s.strip())


class Transaction(BaseModel):
    """A stored transaction as held in the in-memory collection.

    ``date`` stays textual: stored rows may use ``YYYY-MM-DD``,
    ``DD-MM-YYYY`` or ``MM/DD/YYYY`` and are resolved during range queries.
    """

    model_config = ConfigDict(frozen=True, extra="ignore", str_strip_whitespace=True)

    id: str
    date: str = ""
    amount: Decimal
    category: Category
    subcategory: str = ""
    description: str = ""
    tags: tuple[str, ...] = ()
    owner: str | None = None
    created_at: dt.datetime | None = None

    @field_validator("description", "subcategory", mode="before")
    @classmethod
    def _none_to_empty(cls, v: str | None) -> str:
        return "" if v is None else v

    @field_validator("tags", mode="before")
    @classmethod
    def _normalize_tags(cls, v: Sequence[str] | None) -> tuple[str, ...]:
        return _clean_tags(v)

    @field_validator("amount")
    @classmethod
    def _finite_amount(cls, v: Decimal) -> Decimal:
        if not v.is_finite():
            raise ValueError("amount must be a finite number")
        return v


class TransactionDraft(BaseModel):
    """User input for a new transaction, validated before it is stored.

    The subcategory must come from the allow-list for the chosen category.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", str_strip_whitespace=True)

    date: dt.date
    amount: Decimal
    category: Category
    subcategory: str
    description: str = ""
    tags: tuple[str, ...] = ()

    @field_validator("tags", mode="before")
    @classmethod
    def _normalize_tags(cls, v: Sequence[str] | None) -> tuple[str, ...]:
        return _clean_tags(v)

    @field_validator("amount")
    @classmethod
    def _finite_amount(cls, v: Decimal) -> Decimal:
        if not v.is_finite():
            raise ValueError("amount must be a finite number")
        return v

    @model_validator(mode="after")
    def _subcategory_allowed(self) -> TransactionDraft:
        allowed = subcategories_for(self.category)
        if self.subcategory not in allowed:
            raise ValueError(
                f"subcategory {self.subcategory!r} is not valid for {self.category.value}; "
                f"expected one of: {', '.join(allowed)}"
            )
        return self

    def to_record(self) -> dict[str, object]:
        """Return the storable fields with the date written as ``YYYY-MM-DD``."""

        return {
            "date": self.date.isoformat(),
            "amount": self.amount,
            "category": self.category.value,
            "subcategory": self.subcategory,
            "description": self.description,
            "tags": list(self.tags),
        }


# ---------------------------------------------------------------------------
# Summaries
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class TransactionSummary:
    """Aggregate totals over a date range.

    ``total_expense`` is always non-negative (``abs(total_expense_raw)``),
    while ``category_breakdown`` holds signed sums per subcategory, so the
    sign of each entry depends on how its transactions were stored.
    """

    total_income: Decimal = Decimal(0)
    total_expense: Decimal = Decimal(0)
    total_expense_raw: Decimal = Decimal(0)
    net_savings: Decimal = Decimal(0)
    category_breakdown: dict[str, Decimal] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class PeriodOverview:
    income: Decimal
    expense: Decimal
    savings: Decimal
    savings_rate: float


@dataclass(frozen=True, slots=True)
class Dashboard:
    monthly: PeriodOverview
    yearly: PeriodOverview


# ---------------------------------------------------------------------------
# Chat
# ---------------------------------------------------------------------------


Sender = Literal["user", "assistant"]


class ChatMessage(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str | None = None
    content: str
    sender: Sender
    timestamp: dt.datetime
    owner: str | None = None


# Generic collections
Transactions: TypeAlias = Sequence[Transaction]
"""An ordered, already-materialized collection of transactions."""
