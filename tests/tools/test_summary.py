"""Tests for monthly summaries."""

from datetime import date, datetime
from decimal import Decimal

from models.transaction import Transaction
from tests.helpers import add_category
from tools.summary import get_period_summary


def _record(services, amount, category, when):
    services.transactions.create(
        Transaction(None, Decimal(amount), "", when, category)
    )


class TestGetPeriodSummary:
    """Tests for get_period_summary function."""

    def test_single_month(self, services):
        add_category(services, "餐饮")
        add_category(services, "交通")
        add_category(services, "工资", "income")
        _record(services, "50", "餐饮", datetime(2024, 6, 3, 12, 0))
        _record(services, "30", "餐饮", datetime(2024, 6, 30, 23, 59, 59))
        _record(services, "20", "交通", datetime(2024, 6, 10, 8, 0))
        _record(services, "8000", "工资", datetime(2024, 6, 10, 9, 0))

        summary = get_period_summary(services, date(2024, 6, 1), date(2024, 6, 1))

        assert list(summary) == ["2024/06"]
        june = summary["2024/06"]
        assert june["income_total"] == Decimal("8000")
        assert june["expense_total"] == Decimal("100")
        assert june["net"] == Decimal("7900")
        assert june["expenses_by_category"] == {
            "餐饮": Decimal("80"),
            "交通": Decimal("20"),
        }

    def test_multiple_months_including_empty(self, services):
        add_category(services, "餐饮")
        _record(services, "10", "餐饮", datetime(2024, 4, 15, 12, 0))
        _record(services, "25", "餐饮", datetime(2024, 6, 1, 0, 0))

        summary = get_period_summary(services, date(2024, 4, 20), date(2024, 6, 5))

        assert list(summary) == ["2024/04", "2024/05", "2024/06"]
        assert summary["2024/04"]["expense_total"] == Decimal("10")
        assert summary["2024/05"]["expense_total"] == Decimal("0")
        assert summary["2024/05"]["expenses_by_category"] == {}
        assert summary["2024/06"]["expense_total"] == Decimal("25")

    def test_year_boundary(self, services):
        add_category(services, "餐饮")
        _record(services, "10", "餐饮", datetime(2023, 12, 31, 20, 0))
        _record(services, "15", "餐饮", datetime(2024, 1, 1, 8, 0))

        summary = get_period_summary(services, date(2023, 12, 1), date(2024, 1, 1))

        assert summary["2023/12"]["expense_total"] == Decimal("10")
        assert summary["2024/01"]["expense_total"] == Decimal("15")

    def test_orphaned_category_counts_as_expense(self, services):
        _record(services, "12", "Deleted", datetime(2024, 6, 3, 12, 0))

        summary = get_period_summary(services, date(2024, 6, 1), date(2024, 6, 1))

        assert summary["2024/06"]["expense_total"] == Decimal("12")
        assert summary["2024/06"]["expenses_by_category"] == {"Deleted": Decimal("12")}
