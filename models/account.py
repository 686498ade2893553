from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

ACCOUNT_TYPES = (
    "cash",
    "debit",
    "credit",
    "ewallet",
    "investment",
    "renovation",
    "other",
)


@dataclass
class Account:
    id: Optional[int]
    name: str  # human readable, e.g. "现金" or "Chase Checking"
    balance: Decimal  # signed, negative means liability
    type: str  # one of ACCOUNT_TYPES
    color: str = "#8E8E93"
    icon: str = "creditcard.fill"

    def to_dict(self) -> dict:
        """Convert account to dictionary for database storage."""
        return {
            "id": self.id,
            "name": self.name,
            "balance": float(self.balance),
            "type": self.type,
            "color": self.color,
            "icon": self.icon,
        }
