# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Log event store.

Each mutating operation runs in its own transaction, so insert_batch() may be
called concurrently from several extraction tasks. dedupe() must only run
once all inserts have finished; the runner enforces that ordering.
"""

import logging
import sqlite3
from typing import Dict, List, Optional, Sequence

from ..errors import StoreError
from ..models import LogEvent, StoredLogRow
from .schema import LOGS_TABLE, MESSAGE_COUNTS_VIEW, create_schema
from .sqlite_client import SQLiteClient

logger = logging.getLogger(__name__)

INSERT_EVENT_SQL = f"""
    INSERT INTO {LOGS_TABLE} (log_group, event_id, timestamp, message)
    VALUES (?, ?, ?, ?)
"""

DEDUPE_SQL = f"""
    DELETE FROM {LOGS_TABLE}
    WHERE id NOT IN (
        SELECT MIN(id)
        FROM {LOGS_TABLE}
        GROUP BY log_group, event_id, timestamp, message
    )
"""


class LogStore:
    """Persists fetched events into the cloudwatch_logs table."""

    def __init__(self, client: SQLiteClient):
        self.client = client

    @classmethod
    def open(cls, db_path: str) -> "LogStore":
        """
        Open (creating if needed) the database file at db_path.

        Raises:
            StoreError: if the file cannot be created or opened
        """
        client = SQLiteClient(db_path)
        try:
            client.initialize_database()
        except (sqlite3.Error, OSError) as e:
            raise StoreError(f"Failed to open database {db_path}: {e}", operation="connect") from e
        logger.info(f"Using database: {client.db_path}")
        return cls(client)

    def init_schema(self) -> None:
        """
        Create table, indexes and view if they do not exist.

        Raises:
            StoreError: on any SQLite failure
        """
        try:
            create_schema(self.client)
        except sqlite3.Error as e:
            raise StoreError(f"Failed to create schema: {e}", operation="init_schema") from e

    def insert_batch(self, log_group_name: str, events: Sequence[LogEvent]) -> int:
        """
        Insert all events of one log group in a single transaction.

        Args:
            log_group_name: Partition key stored in every row
            events: Events as fetched; absent fields are stored as defaults

        Returns:
            Number of rows inserted

        Raises:
            StoreError: if any insert or the commit fails; nothing from this
                batch is committed in that case
        """
        if not events:
            logger.debug(f"No events to store for log group: {log_group_name}")
            return 0

        try:
            with self.client.transaction(name=f"insert_batch[{log_group_name}]") as conn:
                for event in events:
                    conn.execute(INSERT_EVENT_SQL, event.to_row_values(log_group_name))
        except sqlite3.Error as e:
            raise StoreError(
                f"Failed to store events for log group '{log_group_name}': {e}",
                operation="insert_batch",
            ) from e

        return len(events)

    def dedupe(self) -> int:
        """
        Delete all but the lowest-id row of each duplicate
        (log_group, event_id, timestamp, message) tuple.

        Returns:
            Number of rows deleted

        Raises:
            StoreError: on any SQLite failure
        """
        try:
            with self.client.transaction(name="dedupe") as conn:
                cursor = conn.execute(DEDUPE_SQL)
                deleted = cursor.rowcount
        except sqlite3.Error as e:
            raise StoreError(f"Failed to deduplicate rows: {e}", operation="dedupe") from e

        return max(deleted, 0)

    def count_rows(self, log_group: Optional[str] = None) -> int:
        """Number of stored rows, optionally for one log group."""
        try:
            if log_group is None:
                return self.client.query_value(f"SELECT COUNT(*) FROM {LOGS_TABLE}", default=0)
            return self.client.query_value(
                f"SELECT COUNT(*) FROM {LOGS_TABLE} WHERE log_group = ?",
                (log_group,),
                default=0,
            )
        except sqlite3.Error as e:
            raise StoreError(f"Failed to count rows: {e}", operation="count_rows") from e

    def fetch_rows(self, log_group: Optional[str] = None) -> List[StoredLogRow]:
        """Stored rows in insertion order, optionally for one log group."""
        query = f"SELECT id, log_group, event_id, timestamp, message FROM {LOGS_TABLE}"
        params: tuple = ()
        if log_group is not None:
            query += " WHERE log_group = ?"
            params = (log_group,)
        query += " ORDER BY id ASC"

        try:
            rows = self.client.query(query, params)
        except sqlite3.Error as e:
            raise StoreError(f"Failed to read rows: {e}", operation="fetch_rows") from e

        return [
            StoredLogRow(
                id=row["id"],
                log_group=row["log_group"],
                event_id=row["event_id"],
                timestamp=row["timestamp"],
                message=row["message"],
            )
            for row in rows
        ]

    def group_counts(self) -> List[Dict[str, object]]:
        """Row count and time range per log group."""
        try:
            rows = self.client.query(f"""
                SELECT log_group,
                       COUNT(*) AS row_count,
                       MIN(timestamp) AS first_timestamp,
                       MAX(timestamp) AS last_timestamp
                FROM {LOGS_TABLE}
                GROUP BY log_group
                ORDER BY row_count DESC, log_group ASC
            """)
        except sqlite3.Error as e:
            raise StoreError(f"Failed to read group counts: {e}", operation="group_counts") from e

        return [dict(row) for row in rows]

    def top_messages(self, limit: int = 10, log_group: Optional[str] = None) -> List[Dict[str, object]]:
        """Most frequent messages from the log_message_counts view."""
        query = f"SELECT log_group, message, occurrences FROM {MESSAGE_COUNTS_VIEW}"
        params: list = []
        if log_group is not None:
            query += " WHERE log_group = ?"
            params.append(log_group)
        query += " ORDER BY occurrences DESC, log_group ASC LIMIT ?"
        params.append(limit)

        try:
            rows = self.client.query(query, params)
        except sqlite3.Error as e:
            raise StoreError(f"Failed to read message counts: {e}", operation="top_messages") from e

        return [dict(row) for row in rows]
