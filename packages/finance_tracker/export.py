"""CSV report rendering for transaction exports."""

from __future__ import annotations

import csv
import io
from collections.abc import Iterable
from datetime import date

from .models import Transaction

CSV_HEADER: tuple[str, ...] = ("Date", "Amount", "Category", "Subcategory", "Description", "Tags")


def export_filename(start: date, end: date) -> str:
    """Return ``finance_report_<start>_to_<end>.csv`` with ISO dates."""

    return f"finance_report_{start.isoformat()}_to_{end.isoformat()}.csv"


def transactions_to_csv(transactions: Iterable[Transaction]) -> str:
    """Render transactions as CSV text with a header row.

    Tags are joined with ``", "`` into a single column; quoting follows the
    ``csv`` module's minimal-quoting rules.
    """

    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for t in transactions:
        writer.writerow(
            [
                t.date,
                str(t.amount),
                t.category.value,
                t.subcategory,
                t.description,
                ", ".join(t.tags),
            ]
        )
    return buf.getvalue()


__all__ = ["CSV_HEADER", "export_filename", "transactions_to_csv"]
