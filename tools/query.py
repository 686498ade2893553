"""Run query intents against the local ledger.

Read-only: nothing here mutates transactions or balances.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from llm.intents import Operation, QueryIntent
from models.transaction import Transaction

LIST_LIMIT = 20
LIST_HEADER = "Date,Name,Amount,Category,Account"
NO_RECORDS = "No records found."
CHAT_GREETING = "Hi! I'm your bookkeeping assistant. Ask me about your spending."


@dataclass
class QueryResult:
    """Formatted result of one query intent.

    Attributes:
        text: Compact text block for display or for the final-answer prompt.
        record_count: Number of matching transactions (0 for chat).
    """

    text: str
    record_count: int = 0

    @property
    def is_empty(self) -> bool:
        return self.record_count == 0


def end_of_day(value: datetime) -> datetime:
    return value.replace(hour=23, minute=59, second=59, microsecond=0)


def run_query(services, intent: QueryIntent) -> List[Transaction]:
    """Fetch the transactions an intent's filters select, newest first.

    Dates in an intent are start-of-day values, so the end bound covers
    the whole of its day.
    """
    return services.transactions.find_matching(
        start=intent.start_date,
        end=end_of_day(intent.end_date) if intent.end_date else None,
        category_name=intent.category_name,
        account_name=intent.account_name,
    )


def describe_filters(intent: QueryIntent) -> Optional[str]:
    parts = []
    if intent.start_date:
        parts.append(f"from {intent.start_date:%Y-%m-%d}")
    if intent.end_date:
        parts.append(f"to {intent.end_date:%Y-%m-%d}")
    if intent.category_name:
        parts.append(f"category={intent.category_name}")
    if intent.account_name:
        parts.append(f"account={intent.account_name}")
    return ", ".join(parts) if parts else None


def _csv_safe(value: Optional[str]) -> str:
    return (value or "").replace(",", ";").replace("\n", " ")


def format_sum(transactions: List[Transaction], filters: Optional[str]) -> str:
    total = sum((t.amount for t in transactions), Decimal("0"))
    text = f"Total: {total:.2f}\nRecords: {len(transactions)}"
    if filters:
        text += f"\nFilters: {filters}"
    return text


def format_count(count: int) -> str:
    noun = "record" if count == 1 else "records"
    return f"Found {count} {noun}."


def format_list(transactions: List[Transaction]) -> str:
    if not transactions:
        return f"{LIST_HEADER}\n{NO_RECORDS}"

    lines = [LIST_HEADER]
    for t in transactions[:LIST_LIMIT]:
        lines.append(
            f"{t.date:%Y-%m-%d %H:%M},{_csv_safe(t.title)},{t.amount:.2f},"
            f"{_csv_safe(t.category_name)},{_csv_safe(t.account_name)}"
        )
    if len(transactions) > LIST_LIMIT:
        lines.append(f"... (showing {LIST_LIMIT} of {len(transactions)} records)")
    return "\n".join(lines)


def execute(intent: QueryIntent, services) -> QueryResult:
    """Execute a query intent and format the result.

    Args:
        intent: Decoded query intent.
        services: Services container; only read from.

    Returns:
        QueryResult. An empty match is a valid zero-value result, not an error.
    """
    if intent.operation == Operation.CHAT:
        return QueryResult(text=intent.chat_response or CHAT_GREETING)

    transactions = run_query(services, intent)
    count = len(transactions)

    if intent.operation == Operation.SUM:
        text = format_sum(transactions, describe_filters(intent))
    elif intent.operation == Operation.COUNT:
        text = format_count(count)
    else:
        text = format_list(transactions)

    return QueryResult(text=text, record_count=count)
