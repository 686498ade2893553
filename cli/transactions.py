#!/usr/bin/env python3

import argparse
import sys
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path
from dateutil.relativedelta import relativedelta
from logger import get_logger
from models.transaction import Transaction
from tools.csv_io import export_csv, import_csv
from tools.summary import get_period_summary

logger = get_logger()


def _parse_date(value: str) -> datetime:
    """Parse YYYY-MM-DD or YYYY-MM-DD HH:MM."""
    for fmt in ("%Y-%m-%d %H:%M", "%Y-%m-%d"):
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue
    logger.error(f"Invalid date '{value}'. Use YYYY-MM-DD or 'YYYY-MM-DD HH:MM'.")
    sys.exit(1)


def _parse_month(value: str) -> date:
    try:
        year, month = value.split("/")
        return date(int(year), int(month), 1)
    except ValueError:
        logger.error(f"Invalid month '{value}'. Use YYYY/MM, e.g. 2024/06.")
        sys.exit(1)


def cmd_add(args, services):
    """Record a transaction without going through the assistant."""
    try:
        amount = Decimal(args.amount)
    except InvalidOperation:
        logger.error(f"Invalid amount '{args.amount}'.")
        sys.exit(1)

    category = services.categories.find_by_name(args.category)
    if category is None:
        logger.error(f"Category '{args.category}' not found.")
        logger.info("Use 'python -m cli categories list' to see available categories.")
        sys.exit(1)

    if args.account and services.accounts.find_by_name(args.account) is None:
        logger.error(f"Account '{args.account}' not found.")
        logger.info("Use 'python -m cli accounts list' to see available accounts.")
        sys.exit(1)

    transaction = services.transactions.create(
        Transaction(
            id=None,
            amount=amount,
            title=args.title or "",
            date=_parse_date(args.date) if args.date else datetime.now(),
            category_name=category.name,
            account_name=args.account,
        )
    )

    logger.info(f"\n✓ Transaction recorded with ID: {transaction.id}")
    logger.info(f"  {transaction.date:%Y-%m-%d %H:%M}  {transaction.title}")
    logger.info(f"  Amount: {transaction.amount:.2f} ({category.type})")
    if transaction.account_name:
        logger.info(f"  Account: {transaction.account_name}")


def cmd_list(args, services):
    """List transactions, newest first."""
    start = _parse_date(args.start_date) if args.start_date else None
    end = _parse_date(args.end_date) if args.end_date else None
    if end is not None and end.hour == 0 and end.minute == 0:
        end = end.replace(hour=23, minute=59, second=59)

    transactions = services.transactions.find_matching(
        start=start,
        end=end,
        category_name=args.category,
        account_name=args.account,
        limit=args.limit,
    )

    if not transactions:
        logger.info("No transactions found.")
        return

    logger.info(f"\n{'ID':>5}  {'Date':<16}  {'Amount':>10}  {'Category':<12}  Title")
    logger.info("=" * 72)
    for t in transactions:
        account = f"  [{t.account_name}]" if t.account_name else ""
        logger.info(
            f"{t.id:>5}  {t.date:%Y-%m-%d %H:%M}  {t.amount:>10.2f}  "
            f"{t.category_name:<12}  {t.title}{account}"
        )
    logger.info(f"\nShowing {len(transactions)} transaction(s)")


def cmd_delete(args, services):
    """Delete a transaction and reverse its balance change."""
    if not services.transactions.delete(args.id):
        logger.error(f"Transaction with ID {args.id} not found.")
        sys.exit(1)
    logger.info(f"✓ Deleted transaction {args.id}")


def cmd_export(args, services):
    """Export every transaction to CSV."""
    count = export_csv(services, Path(args.output))
    logger.info(f"✓ Wrote {count} transaction(s) to {args.output}")


def cmd_import(args, services):
    """Import transactions from a CSV file in the export format."""
    path = Path(args.input)
    if not path.exists():
        logger.error(f"File not found: {path}")
        sys.exit(1)

    result = import_csv(services, path)
    logger.info("\nImport complete:")
    logger.info(f"  Imported: {result.success}")
    logger.info(f"  Duplicates skipped: {result.skipped}")
    logger.info(f"  Failed: {result.failed}")


def cmd_summary(args, services):
    """Show income, expenses and top categories per month."""
    this_month = date.today().replace(day=1)
    end_month = _parse_month(args.to_month) if args.to_month else this_month
    if args.from_month:
        start_month = _parse_month(args.from_month)
    else:
        start_month = end_month - relativedelta(months=args.months - 1)

    if start_month > end_month:
        logger.error("--from-month must not be after --to-month")
        sys.exit(1)

    summary = get_period_summary(services, start_month, end_month)
    for month, data in summary.items():
        logger.info(f"\n{month}")
        logger.info("-" * 40)
        logger.info(f"  Income:   {data['income_total']:>12.2f}")
        logger.info(f"  Expenses: {data['expense_total']:>12.2f}")
        logger.info(f"  Net:      {data['net']:>12.2f}")

        top = sorted(
            data["expenses_by_category"].items(), key=lambda item: item[1], reverse=True
        )
        for name, amount in top[: args.top]:
            logger.info(f"    {name:<20} {amount:>10.2f}")


def setup_parser(subparsers):
    """Setup transactions subcommand parser.

    Args:
        subparsers: The subparsers object from the main CLI
    """
    parser = subparsers.add_parser(
        "transactions",
        help="Manage transactions",
        description="Record, list, import and export transactions",
    )

    transactions_subparsers = parser.add_subparsers(
        title="subcommands",
        description="Available transaction commands",
        dest="subcommand",
        required=True,
    )

    # transactions add
    add_parser = transactions_subparsers.add_parser(
        "add",
        help="Record a transaction",
        epilog="""
Examples:
  python -m cli transactions add 35.5 --category 餐饮 --account 现金 --title 午饭
  python -m cli transactions add 8000 --category 工资 --account 银行卡 --date 2024-06-10
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    add_parser.add_argument("amount", help="Positive amount")
    add_parser.add_argument("--category", required=True, help="Category name")
    add_parser.add_argument("--account", help="Account name")
    add_parser.add_argument("--title", help="Note; defaults to the category name")
    add_parser.add_argument(
        "--date", help="YYYY-MM-DD or 'YYYY-MM-DD HH:MM' (default: now)"
    )
    add_parser.set_defaults(func=cmd_add)

    # transactions list
    list_parser = transactions_subparsers.add_parser(
        "list", help="List transactions, newest first"
    )
    list_parser.add_argument("--start-date", help="Inclusive start, YYYY-MM-DD")
    list_parser.add_argument("--end-date", help="Inclusive end, YYYY-MM-DD")
    list_parser.add_argument("--category", help="Exact category name")
    list_parser.add_argument("--account", help="Exact account name")
    list_parser.add_argument(
        "--limit", type=int, default=50, help="Maximum rows (default: 50)"
    )
    list_parser.set_defaults(func=cmd_list)

    # transactions delete
    delete_parser = transactions_subparsers.add_parser(
        "delete", help="Delete a transaction"
    )
    delete_parser.add_argument("id", type=int, help="Transaction ID")
    delete_parser.set_defaults(func=cmd_delete)

    # transactions export
    export_parser = transactions_subparsers.add_parser(
        "export", help="Export all transactions to CSV"
    )
    export_parser.add_argument("output", help="Output CSV file path")
    export_parser.set_defaults(func=cmd_export)

    # transactions import
    import_parser = transactions_subparsers.add_parser(
        "import",
        help="Import transactions from CSV",
        description=(
            "Import a CSV with columns Date,Time,Type,Amount,Category,Account,Note. "
            "Rows already in the ledger are skipped."
        ),
    )
    import_parser.add_argument("input", help="CSV file path")
    import_parser.set_defaults(func=cmd_import)

    # transactions summary
    summary_parser = transactions_subparsers.add_parser(
        "summary", help="Monthly income and expense summary"
    )
    summary_parser.add_argument("--from-month", help="First month, YYYY/MM")
    summary_parser.add_argument(
        "--to-month", help="Last month, YYYY/MM (default: this month)"
    )
    summary_parser.add_argument(
        "--months",
        type=int,
        default=3,
        help="Months to show when --from-month is not given (default: 3)",
    )
    summary_parser.add_argument(
        "--top", type=int, default=5, help="Expense categories to show per month"
    )
    summary_parser.set_defaults(func=cmd_summary)
