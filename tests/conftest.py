"""Pytest configuration for test isolation.

Every test gets:

- its own local store directory (``FT_LOCAL_STORE_DIR``) and working
  directory, so JSON documents and exported reports never leak between tests;
- a clean environment without ``DATABASE_URL``/``FT_USER_ID``/``OPENAI_API_KEY``,
  so nothing talks to a real database or API by accident;
- a disposed database engine and reset logging afterwards, because both are
  process-wide singletons.
"""

from __future__ import annotations

import os
import sys
from collections.abc import Iterator
from pathlib import Path

import pytest

_ROOT = Path(__file__).resolve().parents[1]
# Ensure `packages/` and the db library precede the repo root so local packages resolve first.
sys.path[:0] = [
    p
    for p in [str(_ROOT / "packages"), str(_ROOT / "libs" / "db" / "src"), str(_ROOT)]
    if p not in sys.path
]

from db.client import dispose_engine  # noqa: E402
from finance_tracker.logging_setup import reset_logging  # noqa: E402


@pytest.fixture(autouse=True)
def _isolate_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    store_root = tmp_path / "store"
    store_root.mkdir(parents=True, exist_ok=True)
    monkeypatch.setenv("FT_LOCAL_STORE_DIR", os.fspath(store_root))
    for name in (
        "DATABASE_URL",
        "FT_USER_ID",
        "OPENAI_API_KEY",
        "FINANCE_TRACKER_LOG_LEVEL",
        "FINANCE_TRACKER_LOG_FILE",
    ):
        monkeypatch.delenv(name, raising=False)
    work = tmp_path / "work"
    work.mkdir()
    monkeypatch.chdir(work)
    yield
    dispose_engine()
    reset_logging()


@pytest.fixture()
def sqlite_url(tmp_path: Path) -> str:
    from tests.helpers.db import bootstrap_sqlite_db

    return bootstrap_sqlite_db(tmp_path / "db" / "finance.sqlite")
