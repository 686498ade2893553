"""Database manager for SQLite connections, migrations and path management."""

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import List
from config import Config, get_migrations_dir
from logger import get_logger

logger = get_logger()


class StoreError(Exception):
    """A local store mutation failed and was rolled back."""

    user_message = "Saving to the local ledger failed; nothing was changed."


class DatabaseManager:
    """Manages database connections and paths.

    Args:
        config: Application configuration object.
    """

    def __init__(self, config: Config):
        self.config = config

    @contextmanager
    def connect(self):
        """Get a database connection with automatic cleanup.

        Yields:
            sqlite3.Connection: Database connection.
        """
        db_path = self.config.db_path
        db_path.parent.mkdir(parents=True, exist_ok=True)

        conn = sqlite3.connect(db_path)
        try:
            yield conn
        finally:
            conn.close()

    def get_db_path(self) -> Path:
        return self.config.db_path

    def get_migrations_dir(self) -> Path:
        return get_migrations_dir()


@contextmanager
def write_transaction(conn: sqlite3.Connection, action: str):
    """Run a block of writes as one commit.

    Commits when the block finishes, rolls back and raises StoreError on any
    sqlite error so callers never observe a half-applied change.

    Args:
        conn: Open connection the writes go through.
        action: Short description used in the log line and error.
    """
    try:
        yield conn
        conn.commit()
    except sqlite3.Error as e:
        conn.rollback()
        logger.error(f"Store write failed ({action}): {e}")
        raise StoreError(f"{action} failed: {e}") from e


def ensure_migrations_table(conn: sqlite3.Connection) -> None:
    conn.execute("""
        CREATE TABLE IF NOT EXISTS schema_migrations (
            migration_file TEXT PRIMARY KEY,
            applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    """)
    conn.commit()


def applied_migrations(conn: sqlite3.Connection) -> set:
    cursor = conn.execute("SELECT migration_file FROM schema_migrations")
    return {row[0] for row in cursor.fetchall()}


def available_migrations(migrations_dir: Path) -> List[str]:
    if not migrations_dir.exists():
        return []
    return sorted(path.name for path in migrations_dir.glob("*.sql"))


def apply_pending_migrations(
    conn: sqlite3.Connection, migrations_dir: Path
) -> List[str]:
    """Apply every migration not yet recorded in schema_migrations.

    Args:
        conn: Connection to migrate.
        migrations_dir: Directory holding the ordered .sql files.

    Returns:
        Names of the migrations that were applied, in order.
    """
    ensure_migrations_table(conn)
    done = applied_migrations(conn)
    pending = [m for m in available_migrations(migrations_dir) if m not in done]

    for migration in pending:
        sql = (migrations_dir / migration).read_text(encoding="utf-8")
        try:
            conn.executescript(sql)
            conn.execute(
                "INSERT INTO schema_migrations (migration_file) VALUES (?)",
                (migration,),
            )
            conn.commit()
            logger.info(f"Applied migration: {migration}")
        except sqlite3.Error as e:
            conn.rollback()
            logger.error(f"Error applying migration {migration}: {e}")
            raise

    return pending
