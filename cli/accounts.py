#!/usr/bin/env python3

import sys
from decimal import Decimal, InvalidOperation
from logger import get_logger
from models.account import ACCOUNT_TYPES

logger = get_logger()


def _parse_amount(value: str) -> Decimal:
    try:
        return Decimal(value)
    except InvalidOperation:
        logger.error(f"Invalid amount '{value}'.")
        sys.exit(1)


def cmd_list(args, services):
    """List all accounts with their balances."""
    accounts = services.accounts.find_all()

    if not accounts:
        logger.info("No accounts found. Run 'python -m cli categories seed' for defaults.")
        return

    logger.info("\nAccounts:")
    logger.info("=" * 60)
    total = Decimal("0")
    for account in accounts:
        logger.info(
            f"{account.id:>4}  {account.name:<20} {account.type:<12} "
            f"{account.balance:>12.2f}"
        )
        total += account.balance
    logger.info("-" * 60)
    logger.info(f"Net worth: {total:.2f} across {len(accounts)} account(s)")


def cmd_create(args, services):
    """Create a new account."""
    account = services.accounts.create(
        args.name,
        account_type=args.type,
        balance=_parse_amount(args.balance),
    )
    logger.info(f"\n✓ Account created successfully with ID: {account.id}")
    logger.info(f"  Name: {account.name}")
    logger.info(f"  Type: {account.type}")
    logger.info(f"  Balance: {account.balance:.2f}")


def cmd_adjust_balance(args, services):
    """Set an account's balance, recording the difference as a transaction."""
    account = services.accounts.find_by_name(args.name)
    if account is None:
        logger.error(f"Account '{args.name}' not found.")
        sys.exit(1)

    transaction = services.accounts.adjust_balance(
        account.id, _parse_amount(args.balance)
    )
    if transaction is None:
        logger.info(f"Balance of {account.name} is already {account.balance:.2f}.")
        return

    logger.info(
        f"✓ {account.name}: {account.balance:.2f} -> {args.balance} "
        f"(recorded {transaction.amount:.2f} as {transaction.category_name})"
    )


def setup_parser(subparsers):
    """Setup accounts subcommand parser.

    Args:
        subparsers: The subparsers object from the main CLI
    """
    parser = subparsers.add_parser(
        "accounts",
        help="Manage accounts",
        description="Create, list and reconcile funding accounts",
    )

    accounts_subparsers = parser.add_subparsers(
        title="subcommands",
        description="Available account commands",
        dest="subcommand",
        required=True,
    )

    list_parser = accounts_subparsers.add_parser("list", help="List all accounts")
    list_parser.set_defaults(func=cmd_list)

    create_parser = accounts_subparsers.add_parser("create", help="Create a new account")
    create_parser.add_argument("name", help="Account name, e.g. 现金 or Checking")
    create_parser.add_argument(
        "--type", choices=ACCOUNT_TYPES, default="cash", help="Account type"
    )
    create_parser.add_argument("--balance", default="0", help="Opening balance")
    create_parser.set_defaults(func=cmd_create)

    adjust_parser = accounts_subparsers.add_parser(
        "adjust-balance",
        help="Set an account balance and record the difference",
    )
    adjust_parser.add_argument("name", help="Account name")
    adjust_parser.add_argument("balance", help="New balance")
    adjust_parser.set_defaults(func=cmd_adjust_balance)
