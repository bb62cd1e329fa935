from __future__ import annotations

import csv
import io
from datetime import date
from decimal import Decimal

from finance_tracker.export import CSV_HEADER, export_filename, transactions_to_csv
from finance_tracker.models import Category, Transaction


def test_filename_uses_iso_bounds():
    assert (
        export_filename(date(2024, 1, 1), date(2024, 3, 31))
        == "finance_report_2024-01-01_to_2024-03-31.csv"
    )


def test_rows_follow_header_order():
    txs = [
        Transaction(
            id="1",
            date="2024-02-03",
            amount=Decimal("-12.50"),
            category=Category.EXPENSE,
            subcategory="Food & Dining",
            description='pizza, "large"',
            tags=("friday", "takeout"),
        ),
        Transaction(id="2", date="03-02-2024", amount=Decimal("100"), category=Category.INCOME),
    ]
    text = transactions_to_csv(txs)
    rows = list(csv.reader(io.StringIO(text)))
    assert tuple(rows[0]) == CSV_HEADER
    assert rows[1] == ["2024-02-03", "-12.50", "Expense", "Food & Dining", 'pizza, "large"', "friday, takeout"]
    assert rows[2] == ["03-02-2024", "100", "Income", "", "", ""]


def test_empty_input_is_header_only():
    assert transactions_to_csv([]) == "Date,Amount,Category,Subcategory,Description,Tags\n"
