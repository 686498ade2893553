#!/usr/bin/env python3

import sys
from logger import get_logger
from models.category import CATEGORY_TYPES, EXPENSE
from tools.seed import ensure_defaults

logger = get_logger()


def cmd_list(args, services):
    """List categories per type, most used first unless --order manual."""
    types = [args.type] if args.type else list(CATEGORY_TYPES)
    if args.order == "manual":
        find = services.categories.find_by_type
    else:
        find = services.categories.find_for_picker

    total = 0
    for category_type in types:
        categories = find(category_type)
        if not categories:
            continue

        logger.info(f"\n{category_type.capitalize()} categories:")
        logger.info("=" * 60)
        for category in categories:
            logger.info(
                f"{category.id:>4}  {category.name:<16} {category.symbol:<28} "
                f"used {category.usage_count}"
            )
        total += len(categories)

    if total == 0:
        logger.info("No categories found. Run 'python -m cli categories seed'.")
        return

    logger.info(f"\nTotal categories: {total}")


def cmd_create(args, services):
    """Create a new category."""
    category = services.categories.create(
        args.name, category_type=args.type, symbol=args.symbol, color=args.color
    )
    logger.info(f"\n✓ Category created successfully with ID: {category.id}")
    logger.info(f"  Name: {category.name}")
    logger.info(f"  Type: {category.type}")


def cmd_delete(args, services):
    """Delete a category. Its transactions keep the name and count as expense."""
    category = services.categories.find_by_name(args.name)
    if category is None:
        logger.error(f"Category '{args.name}' not found.")
        sys.exit(1)

    services.categories.delete(category.id)
    logger.info(f"✓ Deleted category {category.name}")


def cmd_seed(args, services):
    """Seed default categories and accounts into an empty ledger."""
    categories_created, accounts_created = ensure_defaults(services)
    if not categories_created and not accounts_created:
        logger.info("Categories and accounts already exist; nothing seeded.")
        return
    logger.info(
        f"✓ Seeded {categories_created} categories and {accounts_created} accounts"
    )


def setup_parser(subparsers):
    """Setup categories subcommand parser.

    Args:
        subparsers: The subparsers object from the main CLI
    """
    parser = subparsers.add_parser(
        "categories",
        help="Manage categories",
        description="Create, list, delete and seed categories",
    )

    categories_subparsers = parser.add_subparsers(
        title="subcommands",
        description="Available category commands",
        dest="subcommand",
        required=True,
    )

    list_parser = categories_subparsers.add_parser("list", help="List categories")
    list_parser.add_argument("--type", choices=CATEGORY_TYPES, help="Only one type")
    list_parser.add_argument(
        "--order",
        choices=("usage", "manual"),
        default="usage",
        help="usage: most used first (default); manual: sort order only",
    )
    list_parser.set_defaults(func=cmd_list)

    create_parser = categories_subparsers.add_parser("create", help="Create a category")
    create_parser.add_argument("name", help="Category name")
    create_parser.add_argument("--type", choices=CATEGORY_TYPES, default=EXPENSE)
    create_parser.add_argument("--symbol", default="tag", help="Icon name")
    create_parser.add_argument("--color", default="#8E8E93", help="Hex color")
    create_parser.set_defaults(func=cmd_create)

    delete_parser = categories_subparsers.add_parser("delete", help="Delete a category")
    delete_parser.add_argument("name", help="Category name")
    delete_parser.set_defaults(func=cmd_delete)

    seed_parser = categories_subparsers.add_parser(
        "seed", help="Seed default categories and accounts"
    )
    seed_parser.set_defaults(func=cmd_seed)
