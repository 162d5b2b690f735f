# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
SQLite connection management.

Every operation opens its own short-lived connection, so the client can be
shared by tasks running on different executor threads. Write transactions
use BEGIN IMMEDIATE and SQLite's busy timeout arbitrates between writers.
"""

import logging
import sqlite3
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, Sequence

logger = logging.getLogger(__name__)

# Operations slower than this are logged as warnings
SLOW_OPERATION_SECONDS = 10.0


class SQLiteClient:
    """File-backed SQLite access with per-operation connections."""

    def __init__(
        self,
        db_path: str,
        busy_timeout: float = 30.0,
        slow_threshold: float = SLOW_OPERATION_SECONDS,
    ):
        """
        Initialize SQLite client.

        Args:
            db_path: Path to the database file (created if missing)
            busy_timeout: Seconds to wait for a lock held by another writer
            slow_threshold: Seconds after which an operation is logged as slow
        """
        self.db_path = Path(db_path).expanduser()
        self.busy_timeout = busy_timeout
        self.slow_threshold = slow_threshold

    def initialize_database(self) -> None:
        """Create the database file and apply connection-independent PRAGMAs."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with self.get_connection() as conn:
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute("PRAGMA synchronous=NORMAL")
        logger.debug(f"Database initialized: {self.db_path}")

    def exists(self) -> bool:
        return self.db_path.exists()

    @contextmanager
    def get_connection(self) -> Iterator[sqlite3.Connection]:
        """
        Open a connection in autocommit mode.

        Statements are traced at DEBUG level.
        """
        conn = sqlite3.connect(
            str(self.db_path),
            timeout=self.busy_timeout,
            isolation_level=None,
            check_same_thread=False,
        )
        conn.row_factory = sqlite3.Row
        if logger.isEnabledFor(logging.DEBUG):
            conn.set_trace_callback(lambda statement: logger.debug(f"SQL: {statement.strip()}"))
        try:
            yield conn
        finally:
            conn.close()

    @contextmanager
    def transaction(self, name: str = "transaction") -> Iterator[sqlite3.Connection]:
        """
        Run the block inside a single write transaction.

        Commits when the block exits normally. On any exception the
        transaction is rolled back and the exception re-raised.
        """
        started = time.monotonic()
        with self.get_connection() as conn:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
                conn.execute("COMMIT")
            except BaseException:
                if conn.in_transaction:
                    conn.execute("ROLLBACK")
                raise
            finally:
                elapsed = time.monotonic() - started
                if elapsed >= self.slow_threshold:
                    logger.warning(f"Slow database operation '{name}': {elapsed:.1f}s")

    def query(self, sql: str, params: Sequence = ()) -> list:
        """Run a read-only query and return all rows."""
        with self.get_connection() as conn:
            return conn.execute(sql, params).fetchall()

    def query_value(self, sql: str, params: Sequence = (), default: Optional[object] = None):
        """Run a query and return the first column of the first row."""
        rows = self.query(sql, params)
        if not rows or rows[0][0] is None:
            return default
        return rows[0][0]
