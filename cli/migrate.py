#!/usr/bin/env python3

from db.manager import (
    applied_migrations,
    apply_pending_migrations,
    available_migrations,
    ensure_migrations_table,
)
from logger import get_logger

logger = get_logger()


def cmd_status(args, db_manager):
    """Show migration status."""
    db_path = db_manager.get_db_path()

    if not db_path.exists():
        logger.info(
            "Database does not exist. Run 'python -m cli migrate apply' to create it."
        )
        return

    with db_manager.connect() as conn:
        ensure_migrations_table(conn)
        applied = applied_migrations(conn)
        available = available_migrations(db_manager.get_migrations_dir())

        logger.info("Migration Status:")
        logger.info("================")

        if not available:
            logger.info("No migrations found.")
            return

        for migration in available:
            status = "applied" if migration in applied else "pending"
            logger.info(f"  [{status}] {migration}")

        pending = len([m for m in available if m not in applied])
        logger.info(f"\n{len(available) - pending} applied, {pending} pending")


def cmd_apply(args, db_manager):
    """Apply all pending migrations."""
    with db_manager.connect() as conn:
        applied = apply_pending_migrations(conn, db_manager.get_migrations_dir())

    if not applied:
        logger.info("Database is up to date.")
    else:
        logger.info(f"Applied {len(applied)} migration(s).")


def setup_parser(subparsers):
    """Setup migrate subcommand parser.

    Args:
        subparsers: The subparsers object from the main CLI
    """
    parser = subparsers.add_parser(
        "migrate",
        help="Database migrations",
        description="Show and apply database migrations",
    )

    migrate_subparsers = parser.add_subparsers(
        title="subcommands",
        description="Available migration commands",
        dest="subcommand",
        required=True,
    )

    status_parser = migrate_subparsers.add_parser("status", help="Show migration status")
    status_parser.set_defaults(func=cmd_status)

    apply_parser = migrate_subparsers.add_parser(
        "apply", help="Apply pending migrations"
    )
    apply_parser.set_defaults(func=cmd_apply)
