"""Public API surface for the ``finance_tracker`` package.

This module is a stable import location for the operations that callers use
most. Implementations live in the focused modules (``aggregation``,
``ledger``, ``insights``, ``assistant``, ``migrate``) and are re-exported here.
"""

from __future__ import annotations

from .aggregation import (
    dashboard_snapshot,
    filter_by_date_range,
    resolve_date,
    savings_rate,
    summarize,
)
from .assistant import AssistantSession, respond
from .chat_history import ChatHistory
from .export import export_filename, transactions_to_csv
from .insights import InsightsError, generate_suggestions, parse_suggestions
from .ledger import TransactionLedger
from .migrate import MigrationResult, migrate_local_chat_history, migrate_local_transactions

__all__ = [
    "AssistantSession",
    "ChatHistory",
    "InsightsError",
    "MigrationResult",
    "TransactionLedger",
    "dashboard_snapshot",
    "export_filename",
    "filter_by_date_range",
    "generate_suggestions",
    "migrate_local_chat_history",
    "migrate_local_transactions",
    "parse_suggestions",
    "resolve_date",
    "respond",
    "savings_rate",
    "summarize",
    "transactions_to_csv",
]
