# ruff: noqa: I001
"""Move data kept in the local store into the remote database.

Used when an anonymous user signs in: their local transactions and chat
history are copied to the remote store under the new identity. Transactions
are inserted in batches of :data:`BATCH_SIZE`, each batch committed on its
own, so a failure part way through reports how many rows already made it.
Local data is removed only after everything was copied.
"""

from __future__ import annotations

from typing import NamedTuple

from sqlalchemy.exc import SQLAlchemyError

from db.client import session_scope
from .chat_history import MAX_CHAT_HISTORY, parse_chat_messages
from .local_store import CHAT_HISTORY_KEY, TRANSACTIONS_KEY, LocalStore
from .logging_setup import get_logger
from .models import UserContext
from .persistence import insert_chat_messages, insert_transactions

BATCH_SIZE: int = 50

_logger = get_logger("finance_tracker.migrate")


class MigrationResult(NamedTuple):
    success: bool
    migrated_count: int
    error: str | None = None


def migrate_local_transactions(
    user: UserContext | None,
    *,
    store: LocalStore | None = None,
    database_url: str | None = None,
) -> MigrationResult:
    """Copy locally stored transactions to the remote store for ``user``."""

    if user is None:
        return MigrationResult(False, 0, "User not authenticated")

    store = store if store is not None else LocalStore()
    raw = store.read(TRANSACTIONS_KEY)
    if not raw:
        return MigrationResult(True, 0)
    if not isinstance(raw, list):
        return MigrationResult(False, 0, "Error migrating data: local transactions are not a list")

    migrated = 0
    for offset in range(0, len(raw), BATCH_SIZE):
        batch = raw[offset : offset + BATCH_SIZE]
        try:
            with session_scope(database_url=database_url) as session:
                migrated += insert_transactions(session, user=user, records=batch)
        except (SQLAlchemyError, RuntimeError, ValueError, ArithmeticError) as e:
            _logger.error(
                "migrate_local_transactions:batch_failed user=%s offset=%d migrated=%d error=%s",
                user.user_id,
                offset,
                migrated,
                e.__class__.__name__,
            )
            return MigrationResult(False, migrated, f"Error migrating batch: {e}")

    store.remove(TRANSACTIONS_KEY)
    _logger.info(
        "migrate_local_transactions:done user=%s migrated=%d", user.user_id, migrated
    )
    return MigrationResult(True, migrated)


def migrate_local_chat_history(
    user: UserContext | None,
    *,
    store: LocalStore | None = None,
    database_url: str | None = None,
) -> MigrationResult:
    """Copy the most recent local chat messages to the remote store for ``user``."""

    if user is None:
        return MigrationResult(False, 0, "User not authenticated")

    store = store if store is not None else LocalStore()
    messages = parse_chat_messages(store.read(CHAT_HISTORY_KEY))[-MAX_CHAT_HISTORY:]
    if not messages:
        return MigrationResult(True, 0)

    try:
        with session_scope(database_url=database_url) as session:
            count = insert_chat_messages(session, user=user, messages=messages)
    except (SQLAlchemyError, RuntimeError) as e:
        _logger.error(
            "migrate_local_chat_history:failed user=%s error=%s",
            user.user_id,
            e.__class__.__name__,
        )
        return MigrationResult(False, 0, f"Error migrating chat history: {e}")

    store.remove(CHAT_HISTORY_KEY)
    _logger.info("migrate_local_chat_history:done user=%s migrated=%d", user.user_id, count)
    return MigrationResult(True, count)


__all__ = [
    "BATCH_SIZE",
    "MigrationResult",
    "migrate_local_chat_history",
    "migrate_local_transactions",
]
