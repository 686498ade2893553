"""Default categories and accounts for a fresh ledger."""

import json
from pathlib import Path
from typing import Optional, Tuple

from config import get_seed_dir
from db.manager import write_transaction
from logger import get_logger

logger = get_logger()


def _load(seed_dir: Path, name: str) -> list:
    with open(seed_dir / name, "r", encoding="utf-8") as f:
        return json.load(f)


def ensure_defaults(services, seed_dir: Optional[Path] = None) -> Tuple[int, int]:
    """Seed default categories and accounts into an empty ledger.

    Categories are only seeded when there are none, and the same goes for
    accounts, so running this twice changes nothing.

    Args:
        services: Services container.
        seed_dir: Directory holding categories.json and accounts.json.

    Returns:
        Tuple of (categories created, accounts created).
    """
    seed_dir = seed_dir or get_seed_dir()
    categories_created = 0
    accounts_created = 0

    with services.db_manager.connect() as conn:
        with write_transaction(conn, "seed defaults"):
            if conn.execute("SELECT COUNT(*) FROM categories").fetchone()[0] == 0:
                sort_orders = {}
                for item in _load(seed_dir, "categories.json"):
                    sort_order = sort_orders.get(item["type"], 0)
                    sort_orders[item["type"]] = sort_order + 1
                    conn.execute(
                        "INSERT INTO categories (name, symbol, color, type, sort_order) "
                        "VALUES (?, ?, ?, ?, ?)",
                        (
                            item["name"],
                            item["symbol"],
                            item["color"],
                            item["type"],
                            sort_order,
                        ),
                    )
                    categories_created += 1

            if conn.execute("SELECT COUNT(*) FROM accounts").fetchone()[0] == 0:
                for item in _load(seed_dir, "accounts.json"):
                    conn.execute(
                        "INSERT INTO accounts (name, balance, type, color, icon) "
                        "VALUES (?, 0, ?, ?, ?)",
                        (item["name"], item["type"], item["color"], item["icon"]),
                    )
                    accounts_created += 1

    if categories_created or accounts_created:
        logger.info(
            f"Seeded {categories_created} categories and {accounts_created} accounts"
        )
    return categories_created, accounts_created
