"""Public interface for the ``finance_tracker`` package.

Only the pure aggregation engine and the models are re-exported here, so that
importing the package does not pull in the database or LLM client stacks.
Use :mod:`finance_tracker.api` for the full surface.
"""

from .aggregation import (
    dashboard_snapshot,
    filter_by_date_range,
    month_bounds,
    resolve_date,
    savings_rate,
    summarize,
    trailing_months,
    year_bounds,
)
from .models import (
    EXPENSE_SUBCATEGORIES,
    INCOME_SUBCATEGORIES,
    Category,
    ChatMessage,
    Dashboard,
    PeriodOverview,
    Transaction,
    TransactionDraft,
    Transactions,
    TransactionSummary,
    UserContext,
)

__all__ = [
    # Engine
    "dashboard_snapshot",
    "filter_by_date_range",
    "month_bounds",
    "resolve_date",
    "savings_rate",
    "summarize",
    "trailing_months",
    "year_bounds",
    # Models / types
    "Category",
    "ChatMessage",
    "Dashboard",
    "EXPENSE_SUBCATEGORIES",
    "INCOME_SUBCATEGORIES",
    "PeriodOverview",
    "Transaction",
    "TransactionDraft",
    "TransactionSummary",
    "Transactions",
    "UserContext",
]
