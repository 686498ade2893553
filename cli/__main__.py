#!/usr/bin/env python3
"""
Tally CLI - natural-language expense tracking from the command line.

Usage:
    python -m cli <command> [subcommand] [options]

Commands:
    accounts      Manage funding accounts and balances
    categories    Manage categories
    transactions  Record, list, import and export transactions
    llm           Manage LLM endpoint configurations
    ask           Ask a question about your spending
    record        Record one or more transactions from free text
    voice         Record a transaction from a speech transcript
    chat          Interactive assistant session
    migrate       Database migrations

Examples:
    python -m cli migrate apply
    python -m cli categories seed
    python -m cli llm add --provider deepseek --name DeepSeek
    python -m cli record "昨天午饭花了50"
    python -m cli ask "这个月花了多少"
    python -m cli transactions export ledger.csv
"""

import sys
import argparse
from cli import accounts, assistant, categories, llm, migrate, transactions
from config import load_config
from services.base import Services
from db.manager import DatabaseManager
from logger import get_logger, setup_logging

logger = get_logger()


def main():
    """Main CLI entry point with subcommands."""
    parser = argparse.ArgumentParser(
        prog="cli",
        description="Tally - personal expense tracking with an LLM assistant",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    subparsers = parser.add_subparsers(
        title="commands",
        description="Available commands",
        dest="command",
        required=True,
    )

    accounts.setup_parser(subparsers)
    categories.setup_parser(subparsers)
    transactions.setup_parser(subparsers)
    llm.setup_parser(subparsers)
    assistant.setup_parser(subparsers)
    migrate.setup_parser(subparsers)

    args = parser.parse_args()

    if hasattr(args, "func"):
        try:
            config = load_config()
            setup_logging(config)

            # migrate works on the raw database, everything else on services
            if args.command == "migrate":
                args.func(args, DatabaseManager(config))
            else:
                args.func(args, Services(config))
        except Exception as e:
            logger.error(f"Error: {e}")
            sys.exit(1)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
