"""Transaction service for database operations.

Every insert and delete keeps account balances and category usage counts in
step with the ledger. The row, the balance and the usage count are written in
one commit.
"""

import sqlite3
from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from db.manager import write_transaction
from models.transaction import Transaction, format_timestamp, parse_timestamp
from services.categories import category_type_for, increment_usage, signed_amount

_TRANSACTION_SELECT_FIELDS = "id, amount, title, date, category_name, account_name"


def _row_to_transaction(row) -> Transaction:
    return Transaction(
        id=row[0],
        amount=Decimal(str(row[1])),
        title=row[2],
        date=parse_timestamp(row[3]),
        category_name=row[4],
        account_name=row[5],
    )


def insert_in(conn: sqlite3.Connection, transaction: Transaction) -> int:
    """Insert a transaction on an open connection and apply its side effects.

    Increments the category's usage count and moves the linked account's
    balance by the signed amount. Does not commit.

    Returns:
        The new transaction id.
    """
    cursor = conn.execute(
        "INSERT INTO transactions (amount, title, date, category_name, account_name) "
        "VALUES (?, ?, ?, ?, ?)",
        (
            float(transaction.amount),
            transaction.title,
            format_timestamp(transaction.date),
            transaction.category_name,
            transaction.account_name,
        ),
    )
    increment_usage(conn, transaction.category_name)

    if transaction.account_name:
        category_type = category_type_for(conn, transaction.category_name)
        conn.execute(
            "UPDATE accounts SET balance = balance + ? WHERE name = ?",
            (
                signed_amount(float(transaction.amount), category_type),
                transaction.account_name,
            ),
        )

    return cursor.lastrowid


class TransactionService:
    """Service for managing transactions."""

    def __init__(self, db_manager):
        """Initialize the transaction service.

        Args:
            db_manager: Database manager instance for database operations.
        """
        self.db_manager = db_manager

    def create(self, transaction: Transaction) -> Transaction:
        """Record a transaction.

        A blank title defaults to the category name.

        Args:
            transaction: Transaction to insert; its id is ignored.

        Returns:
            The Transaction with id populated.

        Raises:
            ValueError: If the amount is not positive.
            StoreError: If the write fails. Nothing is applied in that case.
        """
        if transaction.amount <= 0:
            raise ValueError("Transaction amount must be greater than zero")
        if not transaction.title or not transaction.title.strip():
            transaction.title = transaction.category_name

        with self.db_manager.connect() as conn:
            with write_transaction(conn, "record transaction"):
                transaction.id = insert_in(conn, transaction)

        return transaction

    def delete(self, transaction_id: int) -> bool:
        """Delete a transaction and reverse its balance change.

        Args:
            transaction_id: The transaction ID to delete.

        Returns:
            True if the transaction was deleted, False if not found.
        """
        with self.db_manager.connect() as conn:
            with write_transaction(conn, "delete transaction"):
                row = conn.execute(
                    f"SELECT {_TRANSACTION_SELECT_FIELDS} FROM transactions WHERE id = ?",
                    (transaction_id,),
                ).fetchone()
                if not row:
                    return False

                transaction = _row_to_transaction(row)
                if transaction.account_name:
                    category_type = category_type_for(conn, transaction.category_name)
                    conn.execute(
                        "UPDATE accounts SET balance = balance - ? WHERE name = ?",
                        (
                            signed_amount(float(transaction.amount), category_type),
                            transaction.account_name,
                        ),
                    )
                conn.execute("DELETE FROM transactions WHERE id = ?", (transaction_id,))

        return True

    def find(self, transaction_id: int) -> Optional[Transaction]:
        with self.db_manager.connect() as conn:
            row = conn.execute(
                f"SELECT {_TRANSACTION_SELECT_FIELDS} FROM transactions WHERE id = ?",
                (transaction_id,),
            ).fetchone()
            return _row_to_transaction(row) if row else None

    def find_all(self) -> List[Transaction]:
        """Get all transactions, newest first."""
        return self.find_matching()

    def find_matching(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        category_name: Optional[str] = None,
        account_name: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Transaction]:
        """Get transactions matching every given filter, newest first.

        Args:
            start: Inclusive lower bound on the transaction date.
            end: Inclusive upper bound on the transaction date.
            category_name: Exact category name match.
            account_name: Exact account name match.
            limit: Optional maximum number of rows.

        Returns:
            List of Transaction objects sorted by date descending.
        """
        clauses = []
        params = []

        if start is not None:
            clauses.append("date >= ?")
            params.append(format_timestamp(start))
        if end is not None:
            clauses.append("date <= ?")
            params.append(format_timestamp(end))
        if category_name is not None:
            clauses.append("category_name = ?")
            params.append(category_name)
        if account_name is not None:
            clauses.append("account_name = ?")
            params.append(account_name)

        query = f"SELECT {_TRANSACTION_SELECT_FIELDS} FROM transactions"
        if clauses:
            query += " WHERE " + " AND ".join(clauses)
        query += " ORDER BY date DESC, id DESC"
        if limit is not None:
            query += " LIMIT ?"
            params.append(limit)

        with self.db_manager.connect() as conn:
            cursor = conn.execute(query, params)
            return [_row_to_transaction(row) for row in cursor.fetchall()]

    def count(self) -> int:
        with self.db_manager.connect() as conn:
            return conn.execute("SELECT COUNT(*) FROM transactions").fetchone()[0]
