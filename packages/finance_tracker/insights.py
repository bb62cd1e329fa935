"""LLM-generated financial suggestions.

Public API:
    - :func:`generate_suggestions`
    - :func:`parse_suggestions`
    - :func:`most_recent`
    - :class:`InsightsError`

No side effects occur at import time (no client creation, no logging handler
attachment, no environment reads). The OpenAI client is created per request
so tests can replace ``finance_tracker.insights.OpenAI``.
"""

from __future__ import annotations

import random
import re
import time
from collections.abc import Sequence
from datetime import date
from typing import Any

from openai import OpenAI

from . import prompting
from .aggregation import resolve_date, summarize, trailing_months
from .logging_setup import get_logger
from .models import Transaction

# ---- Tunables (private) ------------------------------------------------------

_MAX_ATTEMPTS: int = 3
_BACKOFF_SCHEDULE_SEC: tuple[float, ...] = (0.5, 2.0)
_JITTER_PCT: float = 0.20
_LOOKBACK_MONTHS: int = 3
_RECENT_LIMIT: int = 10

# Centralized model name for Responses API calls
_MODEL: str = "gpt-5"

_ITEM_MARKER_RE = re.compile(r"(?m)^\s*\d+\.\s+")

_logger = get_logger("finance_tracker.insights")


class InsightsError(RuntimeError):
    """Suggestions could not be produced (no data, API failure, empty reply)."""


# ---- Internal helpers --------------------------------------------------------


def _create_client() -> OpenAI:
    return OpenAI()


def _is_retryable(exc: BaseException) -> bool:
    """Return True only for HTTP 429 and 5xx errors."""

    sc = getattr(exc, "status_code", None)
    if isinstance(sc, int) and (sc == 429 or 500 <= sc < 600):
        return True
    return False


def _sleep_backoff(attempt_no: int) -> None:
    if attempt_no - 1 < len(_BACKOFF_SCHEDULE_SEC):
        base = _BACKOFF_SCHEDULE_SEC[attempt_no - 1]
    else:
        base = _BACKOFF_SCHEDULE_SEC[-1]
    jitter = base * _JITTER_PCT
    delay = base + random.uniform(-jitter, jitter)
    time.sleep(max(0.0, delay))


def _response_text(resp: Any) -> str:
    text = getattr(resp, "output_text", None)
    if not isinstance(text, str) or not text.strip():
        raise ValueError("Empty response from the model")
    return text


# ---- Public helpers ----------------------------------------------------------


def parse_suggestions(text: str) -> list[str]:
    """Split a model reply into individual suggestions.

    Items are delimited by line-leading ``N. `` markers; any preamble before
    the first marker is dropped. A reply without markers becomes a single
    suggestion.
    """

    stripped = text.strip()
    if not stripped:
        raise InsightsError("Failed to generate suggestions - empty response")

    parts = _ITEM_MARKER_RE.split(stripped)
    if len(parts) == 1:
        return [stripped]
    # Text before the first marker is an intro line, not a suggestion; it is dropped on purpose.
    items = [p.strip() for p in parts[1:] if p.strip()]
    return items or [stripped]


def most_recent(transactions: Sequence[Transaction], limit: int = _RECENT_LIMIT) -> list[Transaction]:
    """Return up to ``limit`` transactions, newest date first.

    Records whose date does not resolve sort after all dated ones.
    """

    def _key(t: Transaction) -> tuple[int, date]:
        d = resolve_date(t.date)
        return (1, d) if d is not None else (0, date.min)

    return sorted(transactions, key=_key, reverse=True)[:limit]


# ---- Orchestration -----------------------------------------------------------


def generate_suggestions(
    transactions: Sequence[Transaction],
    *,
    today: date | None = None,
) -> list[str]:
    """Ask the model for personalized suggestions over the last three months.

    Raises :class:`InsightsError` when there are no transactions, when the
    API fails terminally (after retries for 429/5xx), or when the reply is
    empty.
    """

    if not transactions:
        raise InsightsError("Please add some transactions before generating insights.")

    start, end = trailing_months(today or date.today(), _LOOKBACK_MONTHS)
    summary = summarize(transactions, start, end)
    recent = most_recent(transactions)

    instructions = prompting.build_system_instructions()
    user_content = prompting.build_user_content(summary, recent)

    _logger.info(
        "generate_suggestions:llm start=%s end=%s recent=%d",
        start.isoformat(),
        end.isoformat(),
        len(recent),
    )

    client = _create_client()
    attempt = 1
    while True:
        t0 = time.perf_counter()
        try:
            resp = client.responses.create(
                model=_MODEL,
                instructions=instructions,
                input=user_content,
            )
            text = _response_text(resp)
        except Exception as e:  # noqa: BLE001
            dt_ms = (time.perf_counter() - t0) * 1000.0
            if attempt >= _MAX_ATTEMPTS or not _is_retryable(e):
                _logger.error(
                    "generate_suggestions:failed_terminal latency_ms=%.2f error=%s attempt=%d",
                    dt_ms,
                    e.__class__.__name__,
                    attempt,
                )
                raise InsightsError(f"Failed to generate suggestions: {e}") from e
            _logger.warning(
                "generate_suggestions:retry latency_ms=%.2f error=%s attempt=%d",
                dt_ms,
                e.__class__.__name__,
                attempt,
            )
            _sleep_backoff(attempt)
            attempt += 1
            continue

        suggestions = parse_suggestions(text)
        _logger.info(
            "generate_suggestions:done count=%d latency_ms=%.2f",
            len(suggestions),
            (time.perf_counter() - t0) * 1000.0,
        )
        return suggestions


__all__ = ["InsightsError", "generate_suggestions", "most_recent", "parse_suggestions"]
