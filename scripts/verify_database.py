"""
Database Verification Script.

============================================================
VERIFY DATABASE CONNECTIVITY
============================================================

This script:
1. Loads the database configuration (.env / environment)
2. Creates an engine and runs a connectivity check
3. Prints row counts for every reflected table

USAGE:
    python -m scripts.verify_database [--env-file PATH]

EXIT CODES:
- 0: Connection verified
- 1: Database connection failed
- 2: Configuration error

============================================================
"""

import argparse
import logging
import sys
from typing import Dict, List, Optional

from core.constants import LOG_DATE_FORMAT, LOG_FORMAT
from core.exceptions import ConfigurationError, StorageError
from database import (
    DatabaseConfig,
    create_database_engine,
    get_table_row_counts,
    verify_database_connection,
)

logger = logging.getLogger("verify_database")


def print_verification_report(config: DatabaseConfig, counts: Dict[str, int]) -> None:
    """Print table row counts."""
    print("\n" + "=" * 70)
    print("DATABASE VERIFICATION REPORT")
    print("=" * 70)
    print(f"\nDatabase: {config.safe_url()}")

    print("\n" + "-" * 70)
    print("TABLE ROW COUNTS")
    print("-" * 70)

    if not counts:
        print("  (no tables)")
    for table, count in sorted(counts.items()):
        status = "✓" if count >= 0 else "✗"
        shown = "error" if count < 0 else f"{count:6d}"
        print(f"  {status} {table:30s} : {shown} rows")

    print(f"\n  Tables: {len(counts)}")


def main(argv: Optional[List[str]] = None) -> int:
    """Main verification function."""
    parser = argparse.ArgumentParser(description="Verify the configured database")
    parser.add_argument("--env-file", default=None, help="Path to a .env file")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    print("\n[1/3] Loading configuration...")
    try:
        config = DatabaseConfig.from_env(args.env_file)
        engine = create_database_engine(config)
    except ConfigurationError as e:
        print(f"  ✗ Configuration error: {e.message}")
        return 2
    print(f"  ✓ Using {config.safe_url()}")

    try:
        print("\n[2/3] Verifying connection...")
        try:
            verify_database_connection(engine)
        except StorageError as e:
            print(f"  ✗ Connection failed: {e.message}")
            return 1
        print("  ✓ Connection verified")

        print("\n[3/3] Counting rows...")
        counts = get_table_row_counts(engine)
        print_verification_report(config, counts)
        return 0
    finally:
        engine.dispose()


if __name__ == "__main__":
    sys.exit(main())
