"""Shared pytest fixtures for all tests."""

import sqlite3
import pytest
from datetime import datetime
from pathlib import Path

from assistant import Assistant
from config import Config, get_migrations_dir
from llm.client import CompletionClient
from services.base import Services
from services.secrets import SecretStore
from tests.helpers import FakeChatClient, run_migrations

FROZEN_NOW = datetime(2024, 6, 15, 10, 0, 0)


@pytest.fixture
def test_db():
    """Create an in-memory SQLite database for testing.

    Yields:
        sqlite3.Connection: Connection to in-memory database.
    """
    conn = sqlite3.connect(":memory:")
    yield conn
    conn.close()


@pytest.fixture
def test_config(tmp_path):
    """Create a test configuration pointing to a temporary directory.

    Args:
        tmp_path: pytest tmp_path fixture for temporary directory.

    Returns:
        Config: Test configuration object.
    """
    return Config(
        base_dir=tmp_path / "tally",
        db_data_dir=tmp_path / "tally" / "db",
        db_filename="test.db",
        log_level="DEBUG",
        log_dir=tmp_path / "tally" / "logs",
        secrets_path=tmp_path / "tally" / "secrets.toml",
    )


@pytest.fixture
def db_manager_with_schema(test_db):
    """Create a DatabaseManager with schema already set up.

    This fixture provides a DatabaseManager that uses an in-memory database
    with all migrations already applied.

    Args:
        test_db: In-memory database connection fixture.

    Returns:
        DatabaseManager: Database manager with schema ready.
    """
    migrations_dir = get_migrations_dir()
    run_migrations(test_db, migrations_dir)

    class TestDatabaseManager:
        """Test database manager that uses in-memory connection."""

        def __init__(self, conn):
            self.conn = conn

        def connect(self):
            """Return a context manager for the test connection."""
            return _TestConnectionContext(self.conn)

        def get_db_path(self):
            """Return a fake path for the test database."""
            return Path(":memory:")

        def get_migrations_dir(self):
            """Get the migrations directory path."""
            return get_migrations_dir()

    class _TestConnectionContext:
        """Context manager for test database connections."""

        def __init__(self, conn):
            self.conn = conn

        def __enter__(self):
            return self.conn

        def __exit__(self, exc_type, exc_val, exc_tb):
            # Don't close the connection - let the fixture handle it
            pass

    return TestDatabaseManager(test_db)


@pytest.fixture
def services(test_config, db_manager_with_schema):
    """Create a Services container with test database and secret file.

    Args:
        test_config: Test configuration fixture.
        db_manager_with_schema: Database manager with schema set up.

    Returns:
        Services: Services container for testing.
    """
    return Services(
        test_config,
        db_manager=db_manager_with_schema,
        secrets=SecretStore(test_config.secrets_path),
    )


@pytest.fixture
def now():
    return FROZEN_NOW


@pytest.fixture
def fake_chat():
    """SDK stand-in that replays queued completion contents."""
    return FakeChatClient()


@pytest.fixture
def completion_client(fake_chat):
    return CompletionClient(
        "https://api.test/v1", "sk-test", "test-model", client=fake_chat
    )


@pytest.fixture
def assistant(services, completion_client):
    """Assistant wired to the fake endpoint and a frozen clock."""
    return Assistant(
        services,
        client_factory=lambda: completion_client,
        clock=lambda: FROZEN_NOW,
    )
