# ruff: noqa: I001
"""Session-level transaction collection with remote-or-local routing.

:class:`TransactionLedger` holds the transactions visible to one user (or to
the anonymous local profile) and routes writes to the right store:

- With a :class:`~finance_tracker.models.UserContext`, reads and writes go to
  the remote database through :mod:`finance_tracker.persistence`. When that
  fails (``SQLAlchemyError``, or ``RuntimeError`` for a missing
  ``DATABASE_URL``) the ledger logs the error and uses the local store
  instead, so the session keeps working offline.
- Without an identity, everything lives in the local store under the
  ``transactions`` key.

Range queries and summaries are delegated to the pure aggregation engine and
always run over a tuple snapshot of the collection.
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from datetime import date
from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from db.client import session_scope
from .aggregation import dashboard_snapshot, filter_by_date_range, summarize
from .export import transactions_to_csv
from .local_store import TRANSACTIONS_KEY, LocalStore
from .logging_setup import get_logger
from .models import Dashboard, Transaction, TransactionDraft, TransactionSummary, UserContext
from .persistence import (
    delete_all_transactions,
    delete_transaction,
    fetch_transactions,
    insert_transaction,
    parse_transactions,
)

_logger = get_logger("finance_tracker.ledger")

# Failures of the remote store that trigger the local fallback.
REMOTE_ERRORS: tuple[type[Exception], ...] = (SQLAlchemyError, RuntimeError)


class TransactionLedger:
    """Transactions for one user, backed by the remote or the local store."""

    def __init__(
        self,
        user: UserContext | None = None,
        *,
        database_url: str | None = None,
        store: LocalStore | None = None,
    ) -> None:
        self._user = user
        self._database_url = database_url
        self._store = store if store is not None else LocalStore()
        self._transactions: list[Transaction] = []
        # Stored local records that failed validation; written back untouched.
        self._rejected_local: list[Any] = []

    @classmethod
    def load(
        cls,
        user: UserContext | None = None,
        *,
        database_url: str | None = None,
        store: LocalStore | None = None,
    ) -> TransactionLedger:
        """Construct a ledger and populate it with :meth:`refresh`."""

        ledger = cls(user, database_url=database_url, store=store)
        ledger.refresh()
        return ledger

    @property
    def user(self) -> UserContext | None:
        return self._user

    @property
    def transactions(self) -> tuple[Transaction, ...]:
        return tuple(self._transactions)

    # ---- Local store -----------------------------------------------------

    def _read_local(self) -> list[Transaction]:
        self._rejected_local = []
        raw = self._store.read(TRANSACTIONS_KEY)
        if raw is None:
            return []
        if not isinstance(raw, list):
            _logger.error(
                "ledger:local_invalid key=%s type=%s", TRANSACTIONS_KEY, type(raw).__name__
            )
            return []
        return parse_transactions(raw, source="local", rejected=self._rejected_local)

    def _write_local(self) -> None:
        # Amounts are written as decimal strings so cents stay exact; numbers read back too.
        self._store.write(
            TRANSACTIONS_KEY,
            [t.model_dump(mode="json") for t in self._transactions] + self._rejected_local,
        )

    def _add_local(self, draft: TransactionDraft) -> Transaction:
        tx = Transaction.model_validate({**draft.to_record(), "id": str(uuid.uuid4())})
        self._transactions.append(tx)
        self._write_local()
        return tx

    # ---- Operations ------------------------------------------------------

    def refresh(self) -> tuple[Transaction, ...]:
        """Reload the collection from its backing store."""

        if self._user is None:
            self._transactions = self._read_local()
            _logger.info("ledger:refresh source=local count=%d", len(self._transactions))
            return self.transactions

        try:
            with session_scope(database_url=self._database_url) as session:
                self._transactions = fetch_transactions(session, user=self._user)
        except REMOTE_ERRORS as e:
            _logger.error(
                "ledger:refresh_failed user=%s error=%s; falling back to local store",
                self._user.user_id,
                e.__class__.__name__,
            )
            self._transactions = self._read_local()
            return self.transactions

        _logger.info(
            "ledger:refresh source=remote user=%s count=%d",
            self._user.user_id,
            len(self._transactions),
        )
        return self.transactions

    def add(self, draft: TransactionDraft) -> Transaction:
        """Store a new transaction and return it with its assigned id.

        The stored date is always ``YYYY-MM-DD``. If the remote insert fails
        the record is kept locally under a fresh UUID.
        """

        if self._user is None:
            tx = self._add_local(draft)
            _logger.info("ledger:add source=local id=%s", tx.id)
            return tx

        try:
            with session_scope(database_url=self._database_url) as session:
                tx = insert_transaction(session, user=self._user, draft=draft)
        except REMOTE_ERRORS as e:
            _logger.error(
                "ledger:add_failed user=%s error=%s; storing locally",
                self._user.user_id,
                e.__class__.__name__,
            )
            return self._add_local(draft)

        self._transactions.append(tx)
        _logger.info("ledger:add source=remote user=%s id=%s", self._user.user_id, tx.id)
        self.refresh()
        return tx

    def delete(self, transaction_id: str) -> bool:
        """Remove the transaction with ``transaction_id``.

        Returns whether the id was present in the collection. A failed remote
        delete still drops the record from the in-memory collection.
        """

        present = any(t.id == transaction_id for t in self._transactions)
        remaining = [t for t in self._transactions if t.id != transaction_id]

        if self._user is None:
            self._transactions = remaining
            self._write_local()
            _logger.info("ledger:delete source=local id=%s found=%s", transaction_id, present)
            return present

        try:
            with session_scope(database_url=self._database_url) as session:
                removed = delete_transaction(
                    session, user=self._user, transaction_id=transaction_id
                )
        except REMOTE_ERRORS as e:
            _logger.error(
                "ledger:delete_failed user=%s id=%s error=%s",
                self._user.user_id,
                transaction_id,
                e.__class__.__name__,
            )
            self._transactions = remaining
            return present

        self._transactions = remaining
        _logger.info(
            "ledger:delete source=remote user=%s id=%s removed=%s",
            self._user.user_id,
            transaction_id,
            removed,
        )
        self.refresh()
        return present or removed

    def reset_history(self) -> int:
        """Delete every transaction owned by the current user (or the local profile).

        Unlike the other writes, a remote failure here is raised to the
        caller; nothing is cleared in that case.
        """

        if self._user is None:
            stored = self._store.read(TRANSACTIONS_KEY)
            count = len(stored) if isinstance(stored, list) else len(self._transactions)
            self._transactions = []
            self._rejected_local = []
            self._store.remove(TRANSACTIONS_KEY)
            _logger.info("ledger:reset source=local removed=%d", count)
            return count

        with session_scope(database_url=self._database_url) as session:
            count = delete_all_transactions(session, user=self._user)
        self._transactions = []
        _logger.info("ledger:reset source=remote user=%s removed=%d", self._user.user_id, count)
        return count

    # ---- Queries ---------------------------------------------------------

    def by_date_range(self, start: date, end: date) -> list[Transaction]:
        return filter_by_date_range(self.transactions, start, end)

    def summary(self, start: date, end: date) -> TransactionSummary:
        return summarize(self.transactions, start, end)

    def dashboard(self, today: date) -> Dashboard:
        return dashboard_snapshot(self.transactions, today)

    def export_csv(self, start: date, end: date) -> str:
        """CSV text for the transactions in ``[start, end]``.

        Raises ``ValueError`` when the range holds no transactions.
        """

        rows: Sequence[Transaction] = self.by_date_range(start, end)
        if not rows:
            raise ValueError("No transactions to export in the selected date range.")
        return transactions_to_csv(rows)


__all__ = ["REMOTE_ERRORS", "TransactionLedger"]
