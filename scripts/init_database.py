#!/usr/bin/env python3
"""
Initialize the Library Catalog database.

This script:
1. Creates all database tables
2. Optionally loads sample data
3. Verifies the tables the service needs exist

Usage:
    python scripts/init_database.py [--drop-existing] [--sample-data] [--database-url URL]
"""

import argparse
import logging
import sys

from sqlalchemy import inspect

from library_catalog.config import get_config
from library_catalog.database.loan_repository import LoanPolicy
from library_catalog.database.seed import seed_database
from library_catalog.database.session import DatabaseManager

logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

EXPECTED_TABLES = {"books", "bookcopies", "borrowers"}


def main():
    """Main entry point for database initialization."""
    parser = argparse.ArgumentParser(description="Initialize the Library Catalog database")
    parser.add_argument(
        "--drop-existing",
        action="store_true",
        help="Drop existing tables before creating new ones",
    )
    parser.add_argument(
        "--sample-data",
        action="store_true",
        help="Load sample books, copies and loans after creating tables",
    )
    parser.add_argument(
        "--books",
        type=int,
        default=50,
        help="Number of sample books (with --sample-data)",
    )
    parser.add_argument(
        "--database-url",
        help="Override the configured database URL",
    )

    args = parser.parse_args()
    config = get_config()

    db_manager = DatabaseManager(
        args.database_url or config.get_database_url(),
        pool_size=config.database_pool_size,
        max_overflow=config.database_max_overflow,
    )

    if not db_manager.verify_connection():
        logger.error("Failed to connect to database")
        sys.exit(1)

    try:
        logger.info("Creating database schema...")
        db_manager.init_database(drop_existing=args.drop_existing)

        tables = set(inspect(db_manager.engine).get_table_names())
        logger.info("Tables: %s", ", ".join(sorted(tables)))
        missing = EXPECTED_TABLES - tables
        if missing:
            logger.error("Missing expected tables: %s", ", ".join(sorted(missing)))
            sys.exit(1)

        if args.sample_data:
            logger.info("Loading sample data...")
            with db_manager.session_scope() as session:
                seed_database(session, num_books=args.books, policy=LoanPolicy.from_config(config))

        logger.info("Database initialization complete")
    except Exception:
        logger.exception("Database initialization failed")
        sys.exit(1)
    finally:
        db_manager.close()


if __name__ == "__main__":
    main()
