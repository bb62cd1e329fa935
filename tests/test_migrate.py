from __future__ import annotations

import itertools
from datetime import UTC, datetime, timedelta

from finance_tracker.local_store import CHAT_HISTORY_KEY, TRANSACTIONS_KEY, LocalStore
from finance_tracker.migrate import (
    BATCH_SIZE,
    MigrationResult,
    migrate_local_chat_history,
    migrate_local_transactions,
)
from finance_tracker.models import UserContext
from tests.helpers.db import chat_contents, count_transactions

ALICE = UserContext("alice")


def _records(n: int) -> list[dict]:
    return [
        {
            "id": f"local-{i}",
            "date": f"{(i % 28) + 1:02d}-01-2024",
            "amount": str(-i),
            "category": "Expense",
            "subcategory": "Other",
        }
        for i in range(n)
    ]


def test_requires_a_signed_in_user():
    LocalStore().write(TRANSACTIONS_KEY, _records(1))
    assert migrate_local_transactions(None) == MigrationResult(False, 0, "User not authenticated")
    assert migrate_local_chat_history(None).error == "User not authenticated"
    assert LocalStore().read(TRANSACTIONS_KEY) is not None


def test_nothing_to_migrate_is_a_success(sqlite_url: str):
    assert migrate_local_transactions(ALICE, database_url=sqlite_url) == MigrationResult(True, 0)
    assert migrate_local_chat_history(ALICE, database_url=sqlite_url) == MigrationResult(True, 0)


def test_all_batches_are_copied_and_local_data_removed(sqlite_url: str):
    total = BATCH_SIZE * 2 + 7
    LocalStore().write(TRANSACTIONS_KEY, _records(total))

    result = migrate_local_transactions(ALICE, database_url=sqlite_url)

    assert result == MigrationResult(True, total)
    assert count_transactions(database_url=sqlite_url, user_id="alice") == total
    assert LocalStore().read(TRANSACTIONS_KEY) is None


def test_failed_batch_reports_rows_already_copied(sqlite_url: str):
    records = _records(BATCH_SIZE * 2 + 10)
    records[BATCH_SIZE * 2 + 3]["category"] = "Transfer"
    LocalStore().write(TRANSACTIONS_KEY, records)

    result = migrate_local_transactions(ALICE, database_url=sqlite_url)

    assert result.success is False
    assert result.migrated_count == BATCH_SIZE * 2
    assert result.error is not None and result.error.startswith("Error migrating batch:")
    assert count_transactions(database_url=sqlite_url, user_id="alice") == BATCH_SIZE * 2
    assert LocalStore().read(TRANSACTIONS_KEY) == records


def test_chat_history_keeps_the_latest_messages(sqlite_url: str):
    t0 = datetime(2024, 1, 1, tzinfo=UTC)
    seconds = itertools.count()
    LocalStore().write(
        CHAT_HISTORY_KEY,
        [
            {
                "content": f"m{i}",
                "sender": "user" if i % 2 else "assistant",
                "timestamp": (t0 + timedelta(seconds=next(seconds))).isoformat(),
            }
            for i in range(60)
        ],
    )

    result = migrate_local_chat_history(ALICE, database_url=sqlite_url)

    assert result == MigrationResult(True, 50)
    stored = chat_contents(database_url=sqlite_url, user_id="alice")
    assert stored[0] == "m10" and stored[-1] == "m59"
    assert LocalStore().read(CHAT_HISTORY_KEY) is None


def test_unreachable_database_keeps_local_data():
    LocalStore().write(TRANSACTIONS_KEY, _records(3))
    result = migrate_local_transactions(ALICE)
    assert result.success is False and result.migrated_count == 0
    assert LocalStore().read(TRANSACTIONS_KEY) is not None
