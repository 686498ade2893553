"""Transaction analysis tools."""

from datetime import date, datetime
from decimal import Decimal
from typing import Dict

from dateutil.relativedelta import relativedelta

from models.category import INCOME


def get_period_summary(
    services,
    start_month: date,
    end_month: date,
) -> Dict[str, Dict]:
    """Get summarized transaction data for a period, organized by month.

    Transactions whose category no longer exists count as expenses.

    Args:
        services: Services container with transaction and category services.
        start_month: Start of period (date object, day component ignored).
        end_month: End of period (date object, day component ignored).

    Returns:
        Dictionary mapping month keys (format: "YYYY/MM") to:
        - "income_total": Total income for the month (Decimal)
        - "expense_total": Total expenses for the month (Decimal)
        - "net": income_total - expense_total (Decimal)
        - "expenses_by_category": Dict mapping category name to expense amount

    Example:
        {
            "2024/06": {
                "income_total": Decimal("8000.00"),
                "expense_total": Decimal("180.00"),
                "net": Decimal("7820.00"),
                "expenses_by_category": {"餐饮": Decimal("180.00")},
            },
        }
    """
    category_types = {}
    for category in services.categories.find_all():
        category_types.setdefault(category.name, category.type)

    result = {}
    current = date(start_month.year, start_month.month, 1)
    last = date(end_month.year, end_month.month, 1)

    while current <= last:
        month_start = datetime(current.year, current.month, 1)
        month_end = month_start + relativedelta(months=1, seconds=-1)

        income_total = Decimal("0")
        expense_total = Decimal("0")
        expenses_by_category: Dict[str, Decimal] = {}

        for transaction in services.transactions.find_matching(
            start=month_start, end=month_end
        ):
            if category_types.get(transaction.category_name) == INCOME:
                income_total += transaction.amount
            else:
                expense_total += transaction.amount
                expenses_by_category[transaction.category_name] = (
                    expenses_by_category.get(transaction.category_name, Decimal("0"))
                    + transaction.amount
                )

        result[f"{current.year:04d}/{current.month:02d}"] = {
            "income_total": income_total,
            "expense_total": expense_total,
            "net": income_total - expense_total,
            "expenses_by_category": expenses_by_category,
        }

        current += relativedelta(months=1)

    return result
