"""Local fallback store: JSON documents keyed by name.

Used when no user identity is present or the remote database is unreachable.
Each key maps to one file under the store root:

  ``<root>/<key>.json``

Root resolution: explicit ``root`` argument, else the ``FT_LOCAL_STORE_DIR``
environment variable, else ``./.finance_tracker`` under the current working
directory.

Atomicity: writes target ``<key>.json.tmp`` first and then ``os.replace`` into
place.
"""

from __future__ import annotations

import json
import os
import re
from os import PathLike
from pathlib import Path
from typing import Any

from .logging_setup import get_logger

TRANSACTIONS_KEY = "transactions"
CHAT_HISTORY_KEY = "chat_history"

_KEY_RE = re.compile(r"^[a-z][a-z0-9_]*$")

_logger = get_logger("finance_tracker.local_store")


def _default_root() -> Path:
    root = os.getenv("FT_LOCAL_STORE_DIR")
    if root and root.strip():
        return Path(root).expanduser().resolve()
    return (Path.cwd() / ".finance_tracker").resolve()


class LocalStore:
    """Small JSON key/value store on the local filesystem."""

    def __init__(self, root: str | PathLike[str] | None = None) -> None:
        self._root = Path(root).expanduser().resolve() if root is not None else _default_root()

    @property
    def root(self) -> Path:
        return self._root

    def _path(self, key: str) -> Path:
        # Keys become file names; keep them to a safe alphabet.
        if not _KEY_RE.fullmatch(key):
            raise ValueError(f"Invalid local store key: {key!r}")
        return self._root / f"{key}.json"

    def read(self, key: str) -> Any | None:
        """Return the decoded document for ``key`` or ``None`` when absent/corrupt."""

        path = self._path(key)
        try:
            with path.open("r", encoding="utf-8") as f:
                return json.load(f)
        except FileNotFoundError:
            return None
        except json.JSONDecodeError as e:
            _logger.error("local_store:corrupt key=%s path=%s error=%s", key, path, e)
            return None

    def write(self, key: str, value: Any) -> None:
        """Atomically replace the document for ``key`` with JSON-ready ``value``."""

        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(".json.tmp")
        with tmp.open("w", encoding="utf-8") as f:
            json.dump(value, f, ensure_ascii=False, indent=2)
        os.replace(tmp, path)

    def remove(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)


__all__ = ["CHAT_HISTORY_KEY", "TRANSACTIONS_KEY", "LocalStore"]
