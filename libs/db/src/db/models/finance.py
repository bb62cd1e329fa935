from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    Index,
    Numeric,
    String,
    Text,
    func,
    text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


def _new_id() -> str:
    return str(uuid.uuid4())


# ---------------------------
# Core: ft_transactions
# ---------------------------


class FtTransaction(Base):
    __tablename__ = "ft_transactions"

    # Assigned by the store on insert; callers never supply it.
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    user_id: Mapped[str | None] = mapped_column(String, nullable=True)
    # Kept as text: rows migrated from local storage may carry DD-MM-YYYY or
    # MM/DD/YYYY encodings, which the aggregation engine resolves on read.
    date: Mapped[str] = mapped_column(Text, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    category: Mapped[str] = mapped_column(String, nullable=False)
    subcategory: Mapped[str] = mapped_column(Text, nullable=False, server_default=text("''"))
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    tags: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (
        CheckConstraint(
            "category in ('Income','Expense')",
            name="ck_ft_tx_category",
        ),
        Index("ix_ft_tx_user_id", "user_id"),
    )


# ---------------------------
# Assistant: ft_chat_messages
# ---------------------------


class FtChatMessage(Base):
    __tablename__ = "ft_chat_messages"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(String, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    sender: Mapped[str] = mapped_column(String, nullable=False)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        CheckConstraint(
            "sender in ('user','assistant')",
            name="ck_ft_chat_sender",
        ),
        Index("ix_ft_chat_user_ts", "user_id", "timestamp"),
    )


__all__ = [
    "Base",
    "FtTransaction",
    "FtChatMessage",
]
