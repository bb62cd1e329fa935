"""Engine and session helpers for the finance tracker database.

One engine is bound per process, lazily, from ``DATABASE_URL`` or an explicit
``database_url`` argument::

    from db.client import session_scope

    with session_scope() as s:
        s.execute(...)

Hosted Postgres URLs (``postgres://`` / ``postgresql://``) are routed to the
psycopg 3 driver. Asking for a different URL while an engine is bound raises
``RuntimeError``; ``dispose_engine()`` unbinds it first.
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

_PG_SCHEMES = ("postgres://", "postgresql://")
_PG_DRIVER = "postgresql+psycopg://"

_ENGINE: Engine | None = None
_SESSION_MAKER: sessionmaker[Session] | None = None
_BOUND_URL: str | None = None


def normalize_database_url(url: str) -> str:
    """Pick the psycopg driver for bare Postgres URLs; leave others alone."""

    url = url.strip()
    for scheme in _PG_SCHEMES:
        if url.startswith(scheme):
            return _PG_DRIVER + url[len(scheme) :]
    return url


def _resolve_url(override: str | None) -> str:
    url = override or os.getenv("DATABASE_URL")
    if not url:
        raise RuntimeError("DATABASE_URL is not set; the remote store is unavailable")
    return normalize_database_url(url)


def get_engine(*, database_url: str | None = None) -> Engine:
    """Return the process-wide engine, binding it on first use."""

    global _ENGINE, _SESSION_MAKER, _BOUND_URL
    url = _resolve_url(database_url)
    if _ENGINE is not None:
        if url != _BOUND_URL:
            raise RuntimeError(
                "database engine is bound to a different URL; call dispose_engine() first"
            )
        return _ENGINE

    _ENGINE = create_engine(url, pool_pre_ping=True)
    _SESSION_MAKER = sessionmaker(bind=_ENGINE, expire_on_commit=False, class_=Session)
    _BOUND_URL = url
    return _ENGINE


@contextmanager
def session_scope(*, database_url: str | None = None) -> Iterator[Session]:
    """Yield a session that commits on success and rolls back on any error."""

    get_engine(database_url=database_url)
    assert _SESSION_MAKER is not None  # bound by get_engine
    session = _SESSION_MAKER()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def dispose_engine() -> None:
    """Close pooled connections and unbind the engine."""

    global _ENGINE, _SESSION_MAKER, _BOUND_URL
    if _ENGINE is not None:
        _ENGINE.dispose()
    _ENGINE = None
    _SESSION_MAKER = None
    _BOUND_URL = None


__all__ = [
    "dispose_engine",
    "get_engine",
    "normalize_database_url",
    "session_scope",
]
