# ruff: noqa: I001
"""Persistence integration for finance_tracker.

Functions here read and write the remote store owned by ``libs/db``. They
rely on the SQLAlchemy ORM models in ``db.models.finance`` and take an open
session from ``db.client.session_scope``; committing is the caller's job.

Every function is scoped by an explicit :class:`~finance_tracker.models.UserContext`.
Rows belonging to other users are never read or touched.

Scope:
- Transactions: fetch, insert (single and batch), delete, delete-all.
- Chat history: fetch (oldest first), insert, prune to a cap, delete-all.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import ValidationError
from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from db.models.finance import FtChatMessage, FtTransaction
from .logging_setup import get_logger
from .models import ChatMessage, Sender, Transaction, TransactionDraft, UserContext

_logger = get_logger("finance_tracker.persistence")


# ---- Record conversion -------------------------------------------------------


def parse_transactions(
    records: Iterable[Mapping[str, Any]],
    *,
    source: str,
    rejected: list[Any] | None = None,
) -> list[Transaction]:
    """Validate raw records into :class:`Transaction` objects.

    Records that fail validation are skipped and logged; the rest keep their
    input order. ``source`` only labels the log lines (e.g. ``"local"``).
    When ``rejected`` is given, the skipped raw records are appended to it.
    """

    out: list[Transaction] = []
    for i, rec in enumerate(records):
        try:
            out.append(Transaction.model_validate(rec))
        except ValidationError as e:
            rec_id = rec.get("id") if isinstance(rec, Mapping) else None
            _logger.warning(
                "parse_transactions:skipped source=%s position=%d id=%s errors=%d",
                source,
                i,
                rec_id,
                e.error_count(),
            )
            if rejected is not None:
                rejected.append(rec)
    return out


def _row_to_transaction(row: FtTransaction) -> Transaction:
    return Transaction(
        id=row.id,
        date=row.date,
        amount=row.amount,
        category=row.category,
        subcategory=row.subcategory,
        description=row.description,
        tags=tuple(row.tags or ()),
        owner=row.user_id,
        created_at=row.created_at,
    )


def _row_to_chat_message(row: FtChatMessage) -> ChatMessage:
    return ChatMessage(
        id=row.id,
        content=row.content,
        sender=row.sender,
        timestamp=row.timestamp,
        owner=row.user_id,
    )


def _norm_str(v: Any) -> str | None:
    if v is None:
        return None
    s = str(v).strip()
    return s if s else None


# ---- Transactions ------------------------------------------------------------


def fetch_transactions(session: Session, *, user: UserContext) -> list[Transaction]:
    """Return the user's transactions, most recent date first."""

    stmt = (
        select(FtTransaction)
        .where(FtTransaction.user_id == user.user_id)
        .order_by(FtTransaction.date.desc(), FtTransaction.created_at.desc())
    )
    rows = session.execute(stmt).scalars().all()
    out: list[Transaction] = []
    for row in rows:
        try:
            out.append(_row_to_transaction(row))
        except ValidationError as e:
            _logger.warning(
                "fetch_transactions:skipped id=%s errors=%d", row.id, e.error_count()
            )
    _logger.info("fetch_transactions:done user=%s count=%d", user.user_id, len(out))
    return out


def insert_transaction(
    session: Session, *, user: UserContext, draft: TransactionDraft
) -> Transaction:
    """Insert one validated draft and return it with its store-assigned id."""

    rec = draft.to_record()
    row = FtTransaction(
        user_id=user.user_id,
        date=rec["date"],
        amount=draft.amount,
        category=draft.category.value,
        subcategory=draft.subcategory,
        description=draft.description or None,
        tags=list(draft.tags),
    )
    session.add(row)
    session.flush()
    # Pull server defaults (created_at) back onto the instance.
    session.refresh(row)
    return _row_to_transaction(row)


def insert_transactions(
    session: Session,
    *,
    user: UserContext,
    records: Iterable[Mapping[str, Any]],
) -> int:
    """Bulk-insert raw records for ``user``; ids are always assigned anew.

    Records are written as given apart from trimming; dates keep whatever
    encoding they arrived in. Returns the number of rows added.
    """

    rows: list[FtTransaction] = []
    for rec in records:
        if not isinstance(rec, Mapping):
            _logger.warning("insert_transactions:skipped type=%s", type(rec).__name__)
            continue
        amount = rec.get("amount")
        rows.append(
            FtTransaction(
                user_id=user.user_id,
                date=str(rec.get("date") or "").strip(),
                amount=Decimal(str(amount)) if amount is not None else Decimal(0),
                category=str(rec.get("category") or "").strip(),
                subcategory=_norm_str(rec.get("subcategory")) or "",
                description=_norm_str(rec.get("description")),
                tags=[str(t) for t in (rec.get("tags") or [])],
            )
        )
    session.add_all(rows)
    session.flush()
    return len(rows)


def delete_transaction(session: Session, *, user: UserContext, transaction_id: str) -> bool:
    """Delete one of the user's transactions; return whether a row was removed."""

    stmt = delete(FtTransaction).where(
        (FtTransaction.id == transaction_id) & (FtTransaction.user_id == user.user_id)
    )
    result = session.execute(stmt)
    return bool(result.rowcount)


def delete_all_transactions(session: Session, *, user: UserContext) -> int:
    stmt = delete(FtTransaction).where(FtTransaction.user_id == user.user_id)
    result = session.execute(stmt)
    return int(result.rowcount or 0)


# ---- Chat history ------------------------------------------------------------


def fetch_chat_messages(
    session: Session, *, user: UserContext, limit: int
) -> list[ChatMessage]:
    """Return the user's latest ``limit`` messages, oldest first."""

    stmt = (
        select(FtChatMessage)
        .where(FtChatMessage.user_id == user.user_id)
        .order_by(FtChatMessage.timestamp.desc())
        .limit(limit)
    )
    rows = session.execute(stmt).scalars().all()
    return [_row_to_chat_message(r) for r in reversed(rows)]


def insert_chat_message(
    session: Session,
    *,
    user: UserContext,
    content: str,
    sender: Sender,
    timestamp: datetime,
) -> ChatMessage:
    row = FtChatMessage(
        user_id=user.user_id,
        content=content,
        sender=sender,
        timestamp=timestamp,
    )
    session.add(row)
    session.flush()
    return _row_to_chat_message(row)


def insert_chat_messages(
    session: Session, *, user: UserContext, messages: Iterable[ChatMessage]
) -> int:
    rows = [
        FtChatMessage(
            user_id=user.user_id,
            content=m.content,
            sender=m.sender,
            timestamp=m.timestamp,
        )
        for m in messages
    ]
    session.add_all(rows)
    session.flush()
    return len(rows)


def prune_chat_messages(session: Session, *, user: UserContext, keep: int) -> int:
    """Delete the user's oldest messages beyond the most recent ``keep``."""

    count = session.execute(
        select(func.count()).select_from(FtChatMessage).where(FtChatMessage.user_id == user.user_id)
    ).scalar_one()
    over_limit = int(count) - keep
    if over_limit <= 0:
        return 0

    oldest_ids = (
        session.execute(
            select(FtChatMessage.id)
            .where(FtChatMessage.user_id == user.user_id)
            .order_by(FtChatMessage.timestamp.asc())
            .limit(over_limit)
        )
        .scalars()
        .all()
    )
    session.execute(delete(FtChatMessage).where(FtChatMessage.id.in_(oldest_ids)))
    _logger.info("prune_chat_messages:done user=%s removed=%d", user.user_id, len(oldest_ids))
    return len(oldest_ids)


def delete_chat_messages(session: Session, *, user: UserContext) -> int:
    result = session.execute(delete(FtChatMessage).where(FtChatMessage.user_id == user.user_id))
    return int(result.rowcount or 0)


__all__ = [
    "delete_all_transactions",
    "delete_chat_messages",
    "delete_transaction",
    "fetch_chat_messages",
    "fetch_transactions",
    "insert_chat_message",
    "insert_chat_messages",
    "insert_transaction",
    "insert_transactions",
    "parse_transactions",
    "prune_chat_messages",
]
