# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
SQLite schema for stored CloudWatch log events.
"""

import logging

from .sqlite_client import SQLiteClient

logger = logging.getLogger(__name__)

LOGS_TABLE = "cloudwatch_logs"
MESSAGE_COUNTS_VIEW = "log_message_counts"

CREATE_LOGS_TABLE = f"""
    CREATE TABLE IF NOT EXISTS {LOGS_TABLE} (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        log_group TEXT NOT NULL,
        event_id TEXT NOT NULL DEFAULT '',
        timestamp INTEGER NOT NULL DEFAULT 0,
        message TEXT NOT NULL DEFAULT ''
    )
"""

CREATE_INDEXES = (
    f"CREATE INDEX IF NOT EXISTS idx_log_group ON {LOGS_TABLE} (log_group)",
    f"CREATE INDEX IF NOT EXISTS idx_timestamp ON {LOGS_TABLE} (timestamp)",
)

# Operator convenience; the pipeline never reads it
CREATE_MESSAGE_COUNTS_VIEW = f"""
    CREATE VIEW IF NOT EXISTS {MESSAGE_COUNTS_VIEW} AS
    SELECT log_group, message, COUNT(*) AS occurrences
    FROM {LOGS_TABLE}
    GROUP BY log_group, message
"""


def create_schema(client: SQLiteClient) -> None:
    """Create the logs table, its indexes and the message count view."""
    with client.transaction(name="create_schema") as conn:
        conn.execute(CREATE_LOGS_TABLE)
        for statement in CREATE_INDEXES:
            conn.execute(statement)
        conn.execute(CREATE_MESSAGE_COUNTS_VIEW)
    logger.debug("Schema created")
