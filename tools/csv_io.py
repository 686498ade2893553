"""CSV export and import of the transaction ledger.

Format: UTF-8 with BOM, header Date,Time,Type,Amount,Category,Account,Note.
Date is YYYY-MM-DD, Time is HH:MM, Type is Expense or Income.
"""

import csv
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import List, TextIO

from db.manager import write_transaction
from logger import get_logger
from models.category import EXPENSE, INCOME
from models.transaction import Transaction
from services.accounts import find_or_create_in as find_or_create_account_in
from services.categories import find_or_create_in as find_or_create_category_in
from services.transactions import insert_in

logger = get_logger()

CSV_HEADERS = ["Date", "Time", "Type", "Amount", "Category", "Account", "Note"]
UNCATEGORIZED = "未分类"
IMPORTED_CATEGORY_SYMBOL = "questionmark.circle"


@dataclass
class ImportResult:
    success: int = 0
    failed: int = 0
    skipped: int = 0


def _dedupe_key(amount: Decimal, date: datetime, note: str) -> str:
    return f"{amount:.2f}|{date:%Y-%m-%d %H:%M}|{note}"


def write_csv(services, f: TextIO) -> int:
    """Write every transaction to an open text file, newest first.

    The caller opens the file; use encoding "utf-8-sig" to get the BOM.

    Returns:
        Number of rows written.
    """
    category_types = {}
    for category in services.categories.find_all():
        category_types.setdefault(category.name, category.type)

    writer = csv.writer(f, lineterminator="\n")
    writer.writerow(CSV_HEADERS)

    transactions = services.transactions.find_all()
    for t in transactions:
        is_income = category_types.get(t.category_name) == INCOME
        writer.writerow(
            [
                f"{t.date:%Y-%m-%d}",
                f"{t.date:%H:%M}",
                "Income" if is_income else "Expense",
                f"{t.amount:.2f}",
                t.category_name,
                t.account_name or "",
                t.title,
            ]
        )
    return len(transactions)


def export_csv(services, path: Path) -> int:
    """Export the ledger to a CSV file.

    Args:
        services: Services container.
        path: Destination file, overwritten if present.

    Returns:
        Number of transactions exported.
    """
    with open(path, "w", encoding="utf-8-sig", newline="") as f:
        count = write_csv(services, f)
    logger.info(f"Exported {count} transactions to {path}")
    return count


def read_rows(f: TextIO) -> List[List[str]]:
    reader = csv.reader(f)
    rows = [row for row in reader if any(field.strip() for field in row)]
    if rows and rows[0] and rows[0][0].lstrip("\ufeff").strip() == CSV_HEADERS[0]:
        rows = rows[1:]
    return rows


def import_csv(services, path: Path) -> ImportResult:
    """Import transactions from a CSV file in the export format.

    Rows already in the ledger (same amount, minute and note) are skipped.
    Unknown categories are created with the row's Type; unknown accounts are
    created as cash accounts. All rows are saved in one commit.

    Args:
        services: Services container.
        path: CSV file to read.

    Returns:
        ImportResult with success, failed and skipped row counts.

    Raises:
        StoreError: If the final save fails. Nothing is imported in that case.
    """
    with open(path, "r", encoding="utf-8-sig", newline="") as f:
        rows = read_rows(f)

    result = ImportResult()
    seen = {
        _dedupe_key(t.amount, t.date, t.title)
        for t in services.transactions.find_all()
    }

    with services.db_manager.connect() as conn:
        with write_transaction(conn, "import csv"):
            for line_number, row in enumerate(rows, start=2):
                if len(row) < len(CSV_HEADERS):
                    logger.warning(f"Line {line_number}: expected 7 fields, skipping")
                    result.failed += 1
                    continue

                date_str, time_str, type_str, amount_str, category, account, note = (
                    field.strip() for field in row[:7]
                )

                try:
                    date = datetime.strptime(f"{date_str} {time_str}", "%Y-%m-%d %H:%M")
                    amount = Decimal(amount_str.replace(",", ""))
                except (ValueError, InvalidOperation):
                    logger.warning(f"Line {line_number}: unparseable date or amount")
                    result.failed += 1
                    continue

                if amount <= 0:
                    logger.warning(f"Line {line_number}: amount must be positive")
                    result.failed += 1
                    continue

                category = category or UNCATEGORIZED
                title = note or category

                key = _dedupe_key(amount, date, title)
                if key in seen:
                    result.skipped += 1
                    continue
                seen.add(key)

                existing = conn.execute(
                    "SELECT 1 FROM categories WHERE name = ? LIMIT 1", (category,)
                ).fetchone()
                if not existing:
                    category_type = INCOME if type_str.lower() == INCOME else EXPENSE
                    find_or_create_category_in(
                        conn, category, category_type, symbol=IMPORTED_CATEGORY_SYMBOL
                    )
                    logger.info(f"Created category {category} ({category_type})")

                if account:
                    find_or_create_account_in(conn, account, "cash")

                insert_in(
                    conn,
                    Transaction(
                        id=None,
                        amount=amount,
                        title=title,
                        date=date,
                        category_name=category,
                        account_name=account or None,
                    ),
                )
                result.success += 1

    logger.info(
        f"Imported {result.success} transactions from {path} "
        f"({result.failed} failed, {result.skipped} duplicates skipped)"
    )
    return result
