"""Account service for database operations."""

import sqlite3
from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from db.manager import write_transaction
from logger import get_logger
from models.account import Account, ACCOUNT_TYPES
from models.category import EXPENSE, INCOME
from models.transaction import Transaction, format_timestamp
from services.categories import find_or_create_in as find_or_create_category_in
from services.categories import increment_usage

logger = get_logger()

_ACCOUNT_SELECT_FIELDS = "id, name, balance, type, color, icon"

BALANCE_TOLERANCE = Decimal("0.001")
ADJUSTMENT_CATEGORY = "Balance Adjustment"
ADJUSTMENT_INCOME_CATEGORY = "Balance Adjustment (Income)"
ADJUSTMENT_SYMBOL = "slider.horizontal.3"
ADJUSTMENT_COLOR = "#8E8E93"


def _row_to_account(row) -> Account:
    return Account(
        id=row[0],
        name=row[1],
        balance=Decimal(str(row[2])),
        type=row[3],
        color=row[4],
        icon=row[5],
    )


def find_or_create_in(
    conn: sqlite3.Connection, name: str, account_type: str = "cash"
) -> Account:
    """Find an account by name on an open connection, creating it if missing.

    Does not commit; callers own the surrounding write.
    """
    row = conn.execute(
        f"SELECT {_ACCOUNT_SELECT_FIELDS} FROM accounts "
        "WHERE name = ? ORDER BY id LIMIT 1",
        (name,),
    ).fetchone()
    if row:
        return _row_to_account(row)

    cursor = conn.execute(
        "INSERT INTO accounts (name, balance, type) VALUES (?, 0, ?)",
        (name, account_type),
    )
    return Account(
        id=cursor.lastrowid, name=name, balance=Decimal("0"), type=account_type
    )


class AccountService:
    """Service for managing accounts."""

    def __init__(self, db_manager):
        """Initialize the account service.

        Args:
            db_manager: Database manager instance for database operations.
        """
        self.db_manager = db_manager

    def find_all(self) -> List[Account]:
        """Get all accounts from the database.

        Returns:
            List of Account objects, ordered by id.
        """
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                f"SELECT {_ACCOUNT_SELECT_FIELDS} FROM accounts ORDER BY id"
            )
            return [_row_to_account(row) for row in cursor.fetchall()]

    def find(self, account_id: int) -> Optional[Account]:
        """Get a single account by ID.

        Args:
            account_id: The account ID to find.

        Returns:
            Account object if found, None otherwise.
        """
        with self.db_manager.connect() as conn:
            row = conn.execute(
                f"SELECT {_ACCOUNT_SELECT_FIELDS} FROM accounts WHERE id = ?",
                (account_id,),
            ).fetchone()
            return _row_to_account(row) if row else None

    def find_by_name(self, name: str) -> Optional[Account]:
        """Get a single account by name.

        Args:
            name: The account name to find.

        Returns:
            Account object if found, None otherwise.
        """
        with self.db_manager.connect() as conn:
            row = conn.execute(
                f"SELECT {_ACCOUNT_SELECT_FIELDS} FROM accounts "
                "WHERE name = ? ORDER BY id LIMIT 1",
                (name,),
            ).fetchone()
            return _row_to_account(row) if row else None

    def create(
        self,
        name: str,
        account_type: str = "cash",
        balance: Decimal = Decimal("0"),
        color: str = "#8E8E93",
        icon: str = "creditcard.fill",
    ) -> Account:
        """Create a new account.

        Args:
            name: Account name.
            account_type: One of cash, debit, credit, ewallet, investment,
                renovation, other.
            balance: Opening balance.
            color: Hex color string.
            icon: Icon name.

        Returns:
            The created Account object with id populated.

        Raises:
            ValueError: If the name is blank or the type is unknown.
            StoreError: If the insert fails.
        """
        name = name.strip()
        if not name:
            raise ValueError("Account name cannot be empty")
        if account_type not in ACCOUNT_TYPES:
            raise ValueError(f"Unknown account type: {account_type}")

        with self.db_manager.connect() as conn:
            with write_transaction(conn, "create account"):
                cursor = conn.execute(
                    "INSERT INTO accounts (name, balance, type, color, icon) "
                    "VALUES (?, ?, ?, ?, ?)",
                    (name, float(balance), account_type, color, icon),
                )

            return Account(
                id=cursor.lastrowid,
                name=name,
                balance=balance,
                type=account_type,
                color=color,
                icon=icon,
            )

    def delete(self, account_id: int) -> bool:
        """Delete an account by ID.

        Transactions keep their account_name.

        Args:
            account_id: The account ID to delete.

        Returns:
            True if account was deleted, False if not found.
        """
        with self.db_manager.connect() as conn:
            with write_transaction(conn, "delete account"):
                cursor = conn.execute("DELETE FROM accounts WHERE id = ?", (account_id,))
            return cursor.rowcount > 0

    def adjust_balance(
        self, account_id: int, new_balance: Decimal, now: Optional[datetime] = None
    ) -> Optional[Transaction]:
        """Set an account balance, recording the difference as a transaction.

        The adjustment transaction is tagged with a balance adjustment category
        (income when the balance goes up, expense when it goes down). The
        balance is written directly so the transaction is not applied twice.

        Args:
            account_id: Account to correct.
            new_balance: Target balance.
            now: Timestamp for the adjustment transaction.

        Returns:
            The adjustment Transaction, or None when the change is below 0.001.

        Raises:
            ValueError: If the account does not exist.
            StoreError: If the write fails.
        """
        account = self.find(account_id)
        if account is None:
            raise ValueError(f"Account with ID {account_id} not found")

        diff = Decimal(str(new_balance)) - account.balance
        if abs(diff) < BALANCE_TOLERANCE:
            logger.debug(f"Balance of {account.name} unchanged, skipping adjustment")
            return None

        if diff > 0:
            category_name, category_type = ADJUSTMENT_INCOME_CATEGORY, INCOME
        else:
            category_name, category_type = ADJUSTMENT_CATEGORY, EXPENSE

        transaction = Transaction(
            id=None,
            amount=abs(diff),
            title=category_name,
            date=now or datetime.now(),
            category_name=category_name,
            account_name=account.name,
        )

        with self.db_manager.connect() as conn:
            with write_transaction(conn, "adjust balance"):
                find_or_create_category_in(
                    conn,
                    category_name,
                    category_type,
                    symbol=ADJUSTMENT_SYMBOL,
                    color=ADJUSTMENT_COLOR,
                )
                cursor = conn.execute(
                    "INSERT INTO transactions "
                    "(amount, title, date, category_name, account_name) "
                    "VALUES (?, ?, ?, ?, ?)",
                    (
                        float(transaction.amount),
                        transaction.title,
                        format_timestamp(transaction.date),
                        transaction.category_name,
                        transaction.account_name,
                    ),
                )
                increment_usage(conn, category_name)
                conn.execute(
                    "UPDATE accounts SET balance = ? WHERE id = ?",
                    (float(new_balance), account_id),
                )
            transaction.id = cursor.lastrowid

        logger.info(
            f"Adjusted balance of {account.name} from {account.balance} to {new_balance}"
        )
        return transaction

    def names(self) -> List[str]:
        return [account.name for account in self.find_all()]
