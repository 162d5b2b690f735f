# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
SQLite persistence for fetched log events.
"""

from .sqlite_client import SQLiteClient
from .schema import create_schema
from .store import LogStore

__all__ = [
    'SQLiteClient',
    'create_schema',
    'LogStore',
]
