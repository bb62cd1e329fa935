"""Transaction aggregation engine: date-range filtering and summaries.

Public API:
    - :func:`resolve_date`
    - :func:`filter_by_date_range`
    - :func:`summarize`
    - :func:`savings_rate`, :func:`month_bounds`, :func:`year_bounds`,
      :func:`trailing_months`, :func:`dashboard_snapshot`

The engine is pure. It accepts :class:`~finance_tracker.models.Transaction`
objects or plain mappings with the same keys (``id``, ``date``, ``amount``,
``category``, ``subcategory``), so records that never went through model
validation can still be summarized.

Two tolerances are built in:

- Dates may be encoded as ``YYYY-MM-DD``, ``DD-MM-YYYY``, ``MM/DD/YYYY`` or
  anything the generic parser understands. Records whose date cannot be
  resolved are excluded from range queries and logged, never raised.
- Expenses may be stored as negative numbers or as positive magnitudes. The
  reported ``total_expense`` is always ``abs`` of the raw sum, while the
  per-subcategory breakdown keeps signed sums.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping, Sequence
from datetime import date, datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any

from dateutil.parser import ParserError
from dateutil.parser import parse as dateutil_parse
from dateutil.relativedelta import relativedelta

from .logging_setup import get_logger
from .models import Category, Dashboard, PeriodOverview, TransactionSummary

_logger = get_logger("finance_tracker.aggregation")

_ISO_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_DMY_RE = re.compile(r"^\d{2}-\d{2}-\d{4}$")
_MDY_RE = re.compile(r"^\d{1,2}/\d{1,2}/\d{4}$")


# ---- Date resolution ---------------------------------------------------------


def _parse_iso(s: str) -> date | None:
    if not _ISO_RE.fullmatch(s):
        return None
    return date.fromisoformat(s)


def _parse_day_month_year(s: str) -> date | None:
    if not _DMY_RE.fullmatch(s):
        return None
    day, month, year = (int(p) for p in s.split("-"))
    return date(year, month, day)


def _parse_month_day_year(s: str) -> date | None:
    if not _MDY_RE.fullmatch(s):
        return None
    month, day, year = (int(p) for p in s.split("/"))
    return date(year, month, day)


def _parse_generic(s: str) -> date | None:
    return dateutil_parse(s, fuzzy=False).date()


_DATE_PARSERS: tuple[Callable[[str], date | None], ...] = (
    _parse_iso,
    _parse_day_month_year,
    _parse_month_day_year,
    _parse_generic,
)


def resolve_date(value: Any) -> date | None:
    """Resolve a stored date value to a calendar date, or ``None``.

    Strings are tried against each format in order; a format that matches
    the shape but names an impossible day (e.g. ``31-02-2023``) falls through
    to the next one. ``date``/``datetime`` values resolve to their date part.
    """

    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None
    s = value.strip()
    if not s:
        return None
    for parser in _DATE_PARSERS:
        try:
            resolved = parser(s)
        except (ValueError, OverflowError, ParserError):
            continue
        if resolved is not None:
            return resolved
    return None


# ---- Record access -----------------------------------------------------------


def _field(tx: Any, name: str) -> Any:
    if isinstance(tx, Mapping):
        return tx.get(name)
    return getattr(tx, name, None)


def _amount_of(tx: Any) -> Decimal | None:
    raw = _field(tx, "amount")
    if isinstance(raw, bool):
        return None
    if isinstance(raw, Decimal):
        return raw if raw.is_finite() else None
    if isinstance(raw, int):
        return Decimal(raw)
    if isinstance(raw, float | str):
        try:
            d = Decimal(str(raw).strip())
        except InvalidOperation:
            return None
        return d if d.is_finite() else None
    return None


def _as_date(value: Any, name: str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    raise TypeError(f"{name} must be a datetime.date, got {type(value).__name__}")


def _ensure_sequence(transactions: Any) -> Sequence[Any]:
    if isinstance(transactions, str | bytes) or not isinstance(transactions, Sequence):
        raise TypeError(
            "transactions must be a sequence of transaction records, "
            f"got {type(transactions).__name__}"
        )
    return transactions


# ---- Queries -----------------------------------------------------------------


def filter_by_date_range(transactions: Sequence[Any], start: date, end: date) -> list[Any]:
    """Return the transactions dated within ``[start, end]`` (both inclusive).

    Comparison is at day granularity; any time component on the bounds is
    ignored. Input order is kept but callers should not rely on it. The input
    sequence is never mutated.
    """

    seq = _ensure_sequence(transactions)
    start_d = _as_date(start, "start")
    end_d = _as_date(end, "end")

    matched: list[Any] = []
    excluded = 0
    for tx in seq:
        raw = _field(tx, "date")
        resolved = resolve_date(raw)
        if resolved is None:
            excluded += 1
            _logger.warning(
                "filter_by_date_range:excluded id=%s date=%r reason=unparseable_date",
                _field(tx, "id"),
                raw,
            )
            continue
        if start_d <= resolved <= end_d:
            matched.append(tx)

    _logger.debug(
        "filter_by_date_range:done start=%s end=%s total=%d matched=%d excluded=%d",
        start_d.isoformat(),
        end_d.isoformat(),
        len(seq),
        len(matched),
        excluded,
    )
    return matched


def summarize(transactions: Sequence[Any], start: date, end: date) -> TransactionSummary:
    """Aggregate income, expense, net savings and a subcategory breakdown.

    - ``total_income``: sum of Income amounts as stored (negative income
      reduces it; nothing is forced positive).
    - ``total_expense_raw``: sum of Expense amounts as stored.
    - ``total_expense``: ``abs(total_expense_raw)``.
    - ``net_savings``: ``income + raw`` when the raw expense sum is negative,
      otherwise ``income - total_expense``.
    - ``category_breakdown``: signed sum per ``subcategory`` over every
      filtered record, Income and Expense alike.

    Records with a non-numeric amount are skipped and logged.
    """

    filtered = filter_by_date_range(transactions, start, end)

    total_income = Decimal(0)
    total_expense_raw = Decimal(0)
    breakdown: dict[str, Decimal] = {}

    for tx in filtered:
        amount = _amount_of(tx)
        if amount is None:
            _logger.warning(
                "summarize:skipped id=%s amount=%r reason=non_numeric_amount",
                _field(tx, "id"),
                _field(tx, "amount"),
            )
            continue

        category = _field(tx, "category")
        if category == Category.INCOME:
            total_income += amount
        elif category == Category.EXPENSE:
            total_expense_raw += amount

        sub = _field(tx, "subcategory")
        key = "" if sub is None else str(sub)
        breakdown[key] = breakdown.get(key, Decimal(0)) + amount

    total_expense = abs(total_expense_raw)
    if total_expense_raw < 0:
        net_savings = total_income + total_expense_raw
    else:
        net_savings = total_income - total_expense

    return TransactionSummary(
        total_income=total_income,
        total_expense=total_expense,
        total_expense_raw=total_expense_raw,
        net_savings=net_savings,
        category_breakdown=breakdown,
    )


# ---- Helpers for summary consumers -------------------------------------------


def savings_rate(summary: TransactionSummary) -> float:
    """Net savings as a percentage of income; ``0.0`` when there is no income."""

    if summary.total_income <= 0:
        return 0.0
    return float(summary.net_savings / summary.total_income * 100)


def month_bounds(day: date) -> tuple[date, date]:
    first = day.replace(day=1)
    return first, first + relativedelta(months=1) - timedelta(days=1)


def year_bounds(day: date) -> tuple[date, date]:
    return date(day.year, 1, 1), date(day.year, 12, 31)


def trailing_months(day: date, months: int = 3) -> tuple[date, date]:
    """Window from ``months`` calendar months before ``day`` through ``day``."""

    if months <= 0:
        raise ValueError("months must be a positive integer")
    return day - relativedelta(months=months), day


def _overview(summary: TransactionSummary) -> PeriodOverview:
    return PeriodOverview(
        income=summary.total_income,
        expense=summary.total_expense,
        savings=summary.net_savings,
        savings_rate=savings_rate(summary),
    )


def dashboard_snapshot(transactions: Sequence[Any], today: date) -> Dashboard:
    """Current-month and current-year overviews for the dashboard cards."""

    return Dashboard(
        monthly=_overview(summarize(transactions, *month_bounds(today))),
        yearly=_overview(summarize(transactions, *year_bounds(today))),
    )


__all__ = [
    "dashboard_snapshot",
    "filter_by_date_range",
    "month_bounds",
    "resolve_date",
    "savings_rate",
    "summarize",
    "trailing_months",
    "year_bounds",
]
