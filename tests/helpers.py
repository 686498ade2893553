"""Helper utilities for tests."""

import json
from decimal import Decimal
from pathlib import Path
from types import SimpleNamespace
import sqlite3

import httpx
import openai


def run_migrations(conn: sqlite3.Connection, migrations_dir: Path) -> None:
    """Run all SQL migrations in order.

    Args:
        conn: SQLite connection to run migrations against.
        migrations_dir: Path to directory containing .sql migration files.
    """
    migration_files = sorted(migrations_dir.glob("*.sql"))

    for migration_file in migration_files:
        with open(migration_file, "r") as f:
            sql = f.read()

        conn.executescript(sql)

    conn.commit()


class FakeChatClient:
    """Stands in for openai.OpenAI.

    Queue message contents (str) or exceptions with reply(); each
    chat.completions.create call pops the next one. Calls are recorded as
    keyword-argument dicts.
    """

    def __init__(self):
        self.replies = []
        self.calls = []
        self.options = []
        self.chat = SimpleNamespace(completions=self)

    def reply(self, *contents):
        for content in contents:
            if isinstance(content, dict):
                content = json.dumps(content, ensure_ascii=False)
            self.replies.append(content)
        return self

    def with_options(self, **options):
        self.options.append(options)
        return self

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if not self.replies:
            raise AssertionError("Unexpected LLM call")
        content = self.replies.pop(0)
        if isinstance(content, BaseException):
            raise content
        return SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content=content))]
        )

    def system_prompt(self, index=-1) -> str:
        return self.calls[index]["messages"][0]["content"]

    def user_prompt(self, index=-1) -> str:
        return self.calls[index]["messages"][1]["content"]


_REQUEST = httpx.Request("POST", "https://api.test/v1/chat/completions")


def status_error(status_code: int, body) -> openai.APIStatusError:
    """Build the error the SDK raises for a non-2xx response."""
    response = httpx.Response(status_code, request=_REQUEST, json=body)
    return openai.APIStatusError("error", response=response, body=body)


def timeout_error() -> openai.APITimeoutError:
    return openai.APITimeoutError(request=_REQUEST)


def connection_error() -> openai.APIConnectionError:
    return openai.APIConnectionError(message="Connection refused", request=_REQUEST)


def sdk_client_answering(status_code, text, content_type="application/json"):
    """A real OpenAI client whose transport always returns one fixed response."""

    def handler(request):
        return httpx.Response(
            status_code, text=text, headers={"content-type": content_type}
        )

    return openai.OpenAI(
        api_key="sk-test",
        base_url="https://api.test/v1",
        max_retries=0,
        http_client=httpx.Client(transport=httpx.MockTransport(handler)),
    )


def add_category(services, name, category_type="expense"):
    return services.categories.create(name, category_type=category_type)


def add_account(services, name, balance="0", account_type="cash"):
    return services.accounts.create(
        name, account_type=account_type, balance=Decimal(balance)
    )
