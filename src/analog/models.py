# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Data models shared by the remote, storage and pipeline layers.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from .errors import ConfigError

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def millis_to_datetime(millis: int) -> datetime:
    """
    Convert epoch milliseconds to an aware UTC datetime.

    Values outside the range datetime can represent fall back to the epoch.
    """
    try:
        return EPOCH + timedelta(milliseconds=millis)
    except (OverflowError, TypeError):
        return EPOCH


def datetime_to_millis(value: datetime) -> int:
    """Convert an aware datetime to epoch milliseconds."""
    return int((value - EPOCH) / timedelta(milliseconds=1))


@dataclass(frozen=True)
class LogGroup:
    """A CloudWatch log group as returned by DescribeLogGroups."""

    name: str
    arn: Optional[str] = None
    creation_time: Optional[int] = None
    stored_bytes: Optional[int] = None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> Optional["LogGroup"]:
        """Build from an API dict; returns None when the group has no name."""
        name = data.get("logGroupName")
        if not name:
            return None
        return cls(
            name=name,
            arn=data.get("arn"),
            creation_time=data.get("creationTime"),
            stored_bytes=data.get("storedBytes"),
        )


@dataclass(frozen=True)
class LogEvent:
    """A log event as returned by FilterLogEvents. Every field may be absent."""

    event_id: Optional[str] = None
    timestamp: Optional[int] = None
    message: Optional[str] = None
    log_stream_name: Optional[str] = None
    ingestion_time: Optional[int] = None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "LogEvent":
        return cls(
            event_id=data.get("eventId"),
            timestamp=data.get("timestamp"),
            message=data.get("message"),
            log_stream_name=data.get("logStreamName"),
            ingestion_time=data.get("ingestionTime"),
        )

    def to_row_values(self, log_group: str) -> tuple:
        """
        Column values for an INSERT into cloudwatch_logs.

        Absent fields become their storage defaults: "" for event_id and
        message, 0 for timestamp.
        """
        return (
            log_group,
            self.event_id or "",
            self.timestamp if self.timestamp is not None else 0,
            self.message or "",
        )


@dataclass(frozen=True)
class StoredLogRow:
    """A row of the cloudwatch_logs table."""

    id: int
    log_group: str
    event_id: str
    timestamp: int
    message: str


@dataclass(frozen=True)
class TimeWindow:
    """Closed UTC interval [start, end] shared read-only by all fetch tasks."""

    start: datetime
    end: datetime

    @classmethod
    def ending_now(cls, duration: timedelta, now: Optional[datetime] = None) -> "TimeWindow":
        """
        Window of the given length ending at now.

        Raises:
            ConfigError: if the window would start before year 1
        """
        end = now or datetime.now(timezone.utc)
        try:
            start = end - duration
        except OverflowError as e:
            raise ConfigError(f"Duration {duration} reaches too far into the past") from e
        return cls(start=start, end=end)

    @property
    def start_ms(self) -> int:
        return datetime_to_millis(self.start)

    @property
    def end_ms(self) -> int:
        return datetime_to_millis(self.end)

    def __str__(self) -> str:
        return f"{self.start.isoformat()} to {self.end.isoformat()}"
