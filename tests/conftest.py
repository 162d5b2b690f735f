# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Shared fixtures: an in-memory stand-in for the CloudWatch Logs client and a
temporary SQLite store.
"""

import threading
import time
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

import pytest

from analog.database.store import LogStore
from analog.errors import RemoteCallError
from analog.models import LogEvent, LogGroup, datetime_to_millis

FIXED_NOW = datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
FIXED_NOW_MS = datetime_to_millis(FIXED_NOW)


class FakeRemote:
    """
    Serves log groups and events from memory with token pagination.

    filter_log_events_page honours the time range like the real API and
    can be told to fail for some log groups or to sleep per call.
    """

    def __init__(
        self,
        groups: Iterable[str],
        events: Optional[Dict[str, List[LogEvent]]] = None,
        page_size: int = 2,
        failing_groups: Iterable[str] = (),
        fail_discovery: bool = False,
        delay: float = 0.0,
    ):
        self.groups = [LogGroup(name=name) for name in groups]
        self.events = events or {}
        self.page_size = page_size
        self.failing_groups = set(failing_groups)
        self.fail_discovery = fail_discovery
        self.delay = delay

        self.event_calls: List[tuple] = []
        self.active_fetches = 0
        self.peak_fetches = 0
        self._lock = threading.Lock()

    def _page(self, items, next_token):
        start = int(next_token or 0)
        end = start + self.page_size
        return items[start:end], (str(end) if end < len(items) else None)

    def describe_log_groups_page(self, next_token=None):
        if self.fail_discovery:
            raise RemoteCallError("DescribeLogGroups failed: AccessDenied", operation="DescribeLogGroups")
        return self._page(self.groups, next_token)

    def filter_log_events_page(self, log_group_name, start_ms, end_ms, next_token=None):
        with self._lock:
            self.event_calls.append((log_group_name, start_ms, end_ms, next_token))
            self.active_fetches += 1
            self.peak_fetches = max(self.peak_fetches, self.active_fetches)
        try:
            if self.delay:
                time.sleep(self.delay)
            if log_group_name in self.failing_groups:
                raise RemoteCallError(
                    f"FilterLogEvents failed for {log_group_name}: ResourceNotFoundException",
                    operation="FilterLogEvents",
                    log_group=log_group_name,
                )
            in_range = [
                event for event in self.events.get(log_group_name, [])
                if event.timestamp is None or start_ms <= event.timestamp <= end_ms
            ]
            return self._page(in_range, next_token)
        finally:
            with self._lock:
                self.active_fetches -= 1


def make_events(count: int, base_ms: int = FIXED_NOW_MS - 60_000, prefix: str = "e") -> List[LogEvent]:
    return [
        LogEvent(
            event_id=f"{prefix}{i}",
            timestamp=base_ms + i,
            message=f"message {i}",
            log_stream_name="stream-1",
            ingestion_time=base_ms + i + 5,
        )
        for i in range(count)
    ]


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "logs.db")


@pytest.fixture
def store(db_path):
    log_store = LogStore.open(db_path)
    log_store.init_schema()
    return log_store


@pytest.fixture
def isolated_env(monkeypatch, tmp_path):
    """Keep user config files and ANALOG_* variables out of tests."""
    monkeypatch.setattr("analog.config.DEFAULT_CONFIG_PATH", tmp_path / "no-such-config.yaml")
    for name in (
        "ANALOG_REGION", "ANALOG_PROFILE", "ANALOG_LOG_GROUPS", "ANALOG_DURATION",
        "ANALOG_SQLITE_PATH", "ANALOG_LOG_LEVEL", "ANALOG_DEBUG",
    ):
        monkeypatch.delenv(name, raising=False)
