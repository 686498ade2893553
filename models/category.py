"""Category model for transaction categorization."""

from dataclasses import dataclass
from typing import Optional

EXPENSE = "expense"
INCOME = "income"
CATEGORY_TYPES = (EXPENSE, INCOME)


@dataclass
class Category:
    """Represents a transaction category.

    Attributes:
        id: Unique identifier (auto-generated).
        name: Category name. Unique in practice, not enforced.
        symbol: Icon name shown next to the category.
        color: Hex color, e.g. "#FF9500".
        type: Either "expense" or "income"; decides the sign of its transactions.
        sort_order: Manual ordering used after usage_count in pickers.
        usage_count: Number of transactions recorded against this category.
    """

    id: Optional[int]
    name: str
    symbol: str
    color: str
    type: str
    sort_order: int = 0
    usage_count: int = 0

    @property
    def is_income(self) -> bool:
        return self.type == INCOME

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "symbol": self.symbol,
            "color": self.color,
            "type": self.type,
            "sort_order": self.sort_order,
            "usage_count": self.usage_count,
        }
