"""Category service for database operations."""

import sqlite3
from typing import List, Optional
from db.manager import write_transaction
from models.category import Category, CATEGORY_TYPES, EXPENSE, INCOME

_CATEGORY_SELECT_FIELDS = "id, name, symbol, color, type, sort_order, usage_count"

DEFAULT_SYMBOL = "tag"
DEFAULT_COLOR = "#8E8E93"


def _row_to_category(row) -> Category:
    return Category(
        id=row[0],
        name=row[1],
        symbol=row[2],
        color=row[3],
        type=row[4],
        sort_order=row[5],
        usage_count=row[6],
    )


def category_type_for(conn: sqlite3.Connection, name: str) -> str:
    """Get the type of the category a transaction points at by name.

    Transactions whose category was renamed or deleted are treated as expense.
    When several categories share a name, the oldest one wins.
    """
    row = conn.execute(
        "SELECT type FROM categories WHERE name = ? ORDER BY id LIMIT 1", (name,)
    ).fetchone()
    return row[0] if row else EXPENSE


def signed_amount(amount: float, category_type: str) -> float:
    """Balance delta for a transaction: income adds, expense subtracts."""
    return amount if category_type == INCOME else -amount


def increment_usage(conn: sqlite3.Connection, name: str) -> None:
    conn.execute(
        "UPDATE categories SET usage_count = usage_count + 1 WHERE name = ?", (name,)
    )


def find_or_create_in(
    conn: sqlite3.Connection,
    name: str,
    category_type: str,
    symbol: str = DEFAULT_SYMBOL,
    color: str = DEFAULT_COLOR,
) -> Category:
    """Find a category by name and type on an open connection, creating it if missing.

    Does not commit; callers own the surrounding write.
    """
    row = conn.execute(
        f"SELECT {_CATEGORY_SELECT_FIELDS} FROM categories "
        "WHERE name = ? AND type = ? ORDER BY id LIMIT 1",
        (name, category_type),
    ).fetchone()
    if row:
        return _row_to_category(row)

    sort_order = _next_sort_order(conn, category_type)
    cursor = conn.execute(
        "INSERT INTO categories (name, symbol, color, type, sort_order) "
        "VALUES (?, ?, ?, ?, ?)",
        (name, symbol, color, category_type, sort_order),
    )
    return Category(
        id=cursor.lastrowid,
        name=name,
        symbol=symbol,
        color=color,
        type=category_type,
        sort_order=sort_order,
    )


def _next_sort_order(conn: sqlite3.Connection, category_type: str) -> int:
    row = conn.execute(
        "SELECT COALESCE(MAX(sort_order), -1) + 1 FROM categories WHERE type = ?",
        (category_type,),
    ).fetchone()
    return row[0]


class CategoryService:
    """Service for managing categories."""

    def __init__(self, db_manager):
        """Initialize the category service.

        Args:
            db_manager: Database manager instance for database operations.
        """
        self.db_manager = db_manager

    def find_all(self) -> List[Category]:
        """Get all categories from the database.

        Returns:
            List of Category objects, expense first, then by sort order.
        """
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                f"SELECT {_CATEGORY_SELECT_FIELDS} FROM categories "
                "ORDER BY type, sort_order, id"
            )
            return [_row_to_category(row) for row in cursor.fetchall()]

    def find_by_type(self, category_type: str) -> List[Category]:
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                f"SELECT {_CATEGORY_SELECT_FIELDS} FROM categories "
                "WHERE type = ? ORDER BY sort_order, id",
                (category_type,),
            )
            return [_row_to_category(row) for row in cursor.fetchall()]

    def find_for_picker(self, category_type: str) -> List[Category]:
        """Get categories of one type in picker order.

        Most used first, then manual sort order.

        Args:
            category_type: "expense" or "income".

        Returns:
            List of Category objects.
        """
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                f"SELECT {_CATEGORY_SELECT_FIELDS} FROM categories "
                "WHERE type = ? ORDER BY usage_count DESC, sort_order, id",
                (category_type,),
            )
            return [_row_to_category(row) for row in cursor.fetchall()]

    def find(self, category_id: int) -> Optional[Category]:
        """Get a single category by ID.

        Args:
            category_id: The category ID to find.

        Returns:
            Category object if found, None otherwise.
        """
        with self.db_manager.connect() as conn:
            row = conn.execute(
                f"SELECT {_CATEGORY_SELECT_FIELDS} FROM categories WHERE id = ?",
                (category_id,),
            ).fetchone()
            return _row_to_category(row) if row else None

    def find_by_name(self, name: str) -> Optional[Category]:
        """Get a single category by name.

        Args:
            name: The category name to find.

        Returns:
            The oldest Category with that name, None if there is none.
        """
        with self.db_manager.connect() as conn:
            row = conn.execute(
                f"SELECT {_CATEGORY_SELECT_FIELDS} FROM categories "
                "WHERE name = ? ORDER BY id LIMIT 1",
                (name,),
            ).fetchone()
            return _row_to_category(row) if row else None

    def create(
        self,
        name: str,
        category_type: str = EXPENSE,
        symbol: str = DEFAULT_SYMBOL,
        color: str = DEFAULT_COLOR,
        sort_order: Optional[int] = None,
    ) -> Category:
        """Create a new category.

        Args:
            name: Category name.
            category_type: "expense" or "income".
            symbol: Icon name.
            color: Hex color string.
            sort_order: Position within its type; appended at the end if omitted.

        Returns:
            The created Category object with id populated.

        Raises:
            ValueError: If the name is blank or the type is unknown.
            StoreError: If the insert fails.
        """
        name = name.strip()
        if not name:
            raise ValueError("Category name cannot be empty")
        if category_type not in CATEGORY_TYPES:
            raise ValueError(f"Unknown category type: {category_type}")

        with self.db_manager.connect() as conn:
            with write_transaction(conn, "create category"):
                if sort_order is None:
                    sort_order = _next_sort_order(conn, category_type)
                cursor = conn.execute(
                    "INSERT INTO categories (name, symbol, color, type, sort_order) "
                    "VALUES (?, ?, ?, ?, ?)",
                    (name, symbol, color, category_type, sort_order),
                )

            return Category(
                id=cursor.lastrowid,
                name=name,
                symbol=symbol,
                color=color,
                type=category_type,
                sort_order=sort_order,
            )

    def delete(self, category_id: int) -> bool:
        """Delete a category by ID.

        Transactions keep their category_name and become orphaned.

        Args:
            category_id: The category ID to delete.

        Returns:
            True if category was deleted, False if not found.
        """
        with self.db_manager.connect() as conn:
            with write_transaction(conn, "delete category"):
                cursor = conn.execute(
                    "DELETE FROM categories WHERE id = ?", (category_id,)
                )
            return cursor.rowcount > 0

    def names(self) -> List[str]:
        return [category.name for category in self.find_all()]
