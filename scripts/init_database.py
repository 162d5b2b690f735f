#!/usr/bin/env python3
# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Database initialization script for analog.

Creates the SQLite database with the cloudwatch_logs schema ahead of the
first extraction run.
"""

import argparse
import logging
import sys
from pathlib import Path

# Add src to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root / "src"))

from analog.database.store import LogStore
from analog.errors import StoreError

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def main() -> int:
    """Initialize database."""
    parser = argparse.ArgumentParser(description="Create the analog SQLite schema")
    parser.add_argument("--sqlite-path", default="logs.db", help="Database file (default: logs.db)")
    args = parser.parse_args()

    logger.info(f"Initializing database: {args.sqlite_path}")

    try:
        store = LogStore.open(args.sqlite_path)
        store.init_schema()
    except StoreError as e:
        logger.error(f"Failed to initialize database: {e}")
        return 1

    if store.client.exists():
        logger.info(f"✅ Database initialized successfully ({store.count_rows()} rows stored)")
        return 0

    logger.error("❌ Database file was not created")
    return 1


if __name__ == "__main__":
    sys.exit(main())
