# ruff: noqa: I001
"""Finance tracker core tables (transactions and chat history).

Revision ID: 0001_ft_core
Revises: None
Create Date: 2026-10-19
"""

from __future__ import annotations  # ruff: noqa: I001

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = "0001_ft_core"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # ft_transactions
    op.create_table(
        "ft_transactions",
        sa.Column(
            "id",
            sa.String(36),
            primary_key=True,
            server_default=sa.text("gen_random_uuid()::text"),
        ),
        sa.Column("user_id", sa.Text(), nullable=True),
        sa.Column("date", sa.Text(), nullable=False),
        sa.Column("amount", sa.Numeric(18, 2), nullable=False),
        sa.Column("category", sa.Text(), nullable=False),
        sa.Column("subcategory", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("tags", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.CheckConstraint(
            "category in ('Income','Expense')",
            name="ck_ft_tx_category",
        ),
    )
    op.create_index("ix_ft_tx_user_id", "ft_transactions", ["user_id"])

    # ft_chat_messages
    op.create_table(
        "ft_chat_messages",
        sa.Column(
            "id",
            sa.String(36),
            primary_key=True,
            server_default=sa.text("gen_random_uuid()::text"),
        ),
        sa.Column("user_id", sa.Text(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("sender", sa.Text(), nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "sender in ('user','assistant')",
            name="ck_ft_chat_sender",
        ),
    )
    op.create_index("ix_ft_chat_user_ts", "ft_chat_messages", ["user_id", "timestamp"])


def downgrade() -> None:
    op.drop_index("ix_ft_chat_user_ts", table_name="ft_chat_messages")
    op.drop_table("ft_chat_messages")
    op.drop_index("ix_ft_tx_user_id", table_name="ft_transactions")
    op.drop_table("ft_transactions")
