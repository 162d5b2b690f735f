# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Exception hierarchy for analog.

Collaborator failures (botocore, sqlite3) are wrapped into one of these
types with ``raise ... from e`` so callers only need to handle AnalogError.
"""

from typing import Optional


class AnalogError(Exception):
    """Base class for all analog errors."""


class ConfigError(AnalogError):
    """Invalid configuration: bad duration expression, config file or value."""


class RemoteCallError(AnalogError):
    """A call to the remote log service failed."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        log_group: Optional[str] = None,
    ):
        super().__init__(message)
        self.operation = operation
        self.log_group = log_group


class StoreError(AnalogError):
    """A SQLite connection, schema, insert or dedupe operation failed."""

    def __init__(self, message: str, operation: Optional[str] = None):
        super().__init__(message)
        self.operation = operation
