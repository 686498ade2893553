from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"


def format_timestamp(value: datetime) -> str:
    """Serialize a local timestamp the way the transactions table stores it."""
    return value.replace(microsecond=0).strftime(DATE_FORMAT)


def parse_timestamp(value: str) -> datetime:
    return datetime.fromisoformat(value)


@dataclass
class Transaction:
    id: Optional[int]
    amount: Decimal  # always positive, direction comes from the category type
    title: str
    date: datetime  # local wall-clock time
    category_name: str  # matched by name, may dangle after a rename
    account_name: Optional[str] = None  # None means no funding account

    def to_dict(self) -> dict:
        """Convert transaction to dictionary for database storage."""
        return {
            "id": self.id,
            "amount": float(self.amount),
            "title": self.title,
            "date": format_timestamp(self.date),
            "category_name": self.category_name,
            "account_name": self.account_name,
        }
