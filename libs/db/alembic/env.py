# ruff: noqa: I001
"""Alembic environment for the finance tracker tables.

``DATABASE_URL`` (after loading the nearest ``.env``) takes precedence over
``sqlalchemy.url`` in ``alembic.ini`` and is normalized the same way the
application normalizes it, so both always talk to the same database.
"""

from __future__ import annotations

import os
from logging.config import fileConfig

from alembic import context
from dotenv import find_dotenv, load_dotenv
from sqlalchemy import engine_from_config, pool

import db
from db.client import normalize_database_url

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# Searching from the CWD finds the workspace .env from the root and from libs/db.
_env_file = find_dotenv(usecwd=True)
if _env_file:
    load_dotenv(dotenv_path=_env_file, override=False)


def _database_url() -> str:
    raw = os.getenv("DATABASE_URL") or config.get_main_option("sqlalchemy.url")
    if not raw:
        raise RuntimeError(
            "DATABASE_URL is not set and alembic.ini has no sqlalchemy.url; "
            "cannot run finance tracker migrations"
        )
    return normalize_database_url(raw)


DATABASE_URL = _database_url()
config.set_main_option("sqlalchemy.url", DATABASE_URL)

target_metadata = db.metadata


def run_migrations_offline() -> None:
    """Emit SQL for the ft_* tables without connecting."""
    context.configure(
        url=DATABASE_URL,
        target_metadata=target_metadata,
        literal_binds=True,
        compare_type=True,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Apply migrations over a short-lived connection."""
    connectable = engine_from_config(
        config.get_section(config.config_ini_section) or {},
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
