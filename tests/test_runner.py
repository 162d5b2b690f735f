# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Tests for ExtractionRunner.
"""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from analog.config import AppConfig
from analog.database.store import LogStore
from analog.errors import ConfigError, RemoteCallError, StoreError
from analog.models import LogEvent
from analog.pipeline.runner import ExtractionRunner, RunState

from conftest import FIXED_NOW, FIXED_NOW_MS, FakeRemote, make_events


def make_runner(db_path, remote, store=None, **config_values):
    config = AppConfig(sqlite_path=db_path, log_file=None, **config_values)
    return ExtractionRunner(config, remote=remote, store=store, clock=lambda: FIXED_NOW)


class FailingStore(LogStore):
    """Store whose inserts fail for selected log groups."""

    def __init__(self, client, failing_groups):
        super().__init__(client)
        self.failing_groups = set(failing_groups)

    def insert_batch(self, log_group_name, events):
        if log_group_name in self.failing_groups:
            raise StoreError(f"disk I/O error for {log_group_name}", operation="insert_batch")
        return super().insert_batch(log_group_name, events)


class TestEndToEnd:
    """Test complete runs against a fake remote."""

    def test_two_groups_one_with_events(self, db_path):
        remote = FakeRemote(groups=["A", "B"], events={"A": make_events(3)})
        runner = make_runner(db_path, remote)

        summary = asyncio.run(runner.run())

        store = LogStore.open(db_path)
        rows = store.fetch_rows()
        assert len(rows) == 3
        assert {row.log_group for row in rows} == {"A"}
        assert summary.state is RunState.DONE
        assert runner.state is RunState.DONE
        assert summary.groups_discovered == 2
        assert summary.groups_selected == 2
        assert summary.events_fetched == 3
        assert summary.rows_stored == 3
        assert summary.failed_groups == {}

    def test_window_is_computed_once_from_clock(self, db_path):
        remote = FakeRemote(groups=["A", "B", "C"])
        runner = make_runner(db_path, remote, duration="2h")

        summary = asyncio.run(runner.run())

        expected_start = FIXED_NOW_MS - int(timedelta(hours=2).total_seconds() * 1000)
        assert summary.window.end_ms == FIXED_NOW_MS
        assert summary.window.start_ms == expected_start
        assert {(call[1], call[2]) for call in remote.event_calls} == {(expected_start, FIXED_NOW_MS)}

    def test_events_outside_window_are_not_stored(self, db_path):
        old = LogEvent(event_id="old", timestamp=FIXED_NOW_MS - 7_200_000, message="old")
        recent = LogEvent(event_id="new", timestamp=FIXED_NOW_MS - 1_000, message="new")
        remote = FakeRemote(groups=["A"], events={"A": [old, recent]})

        asyncio.run(make_runner(db_path, remote, duration="1h").run())

        assert [row.event_id for row in LogStore.open(db_path).fetch_rows()] == ["new"]

    def test_repeated_runs_are_deduplicated(self, db_path):
        remote = FakeRemote(groups=["A"], events={"A": make_events(4)})

        asyncio.run(make_runner(db_path, remote).run())
        second = asyncio.run(make_runner(db_path, remote).run())

        assert second.rows_stored == 4
        assert second.rows_deduped == 4
        assert LogStore.open(db_path).count_rows() == 4

    def test_only_requested_groups_are_fetched(self, db_path):
        remote = FakeRemote(
            groups=["A", "B", "C"],
            events={name: make_events(2, prefix=name) for name in ("A", "B", "C")},
        )
        runner = make_runner(db_path, remote, log_groups=("C", "A", "missing"))

        summary = asyncio.run(runner.run())

        assert {call[0] for call in remote.event_calls} == {"A", "C"}
        assert summary.missing_groups == ["missing"]
        assert LogStore.open(db_path).count_rows(log_group="B") == 0


class TestEmptySelection:
    """Test the no-op path."""

    def test_no_matching_groups_finishes_without_work(self, db_path):
        remote = FakeRemote(groups=["A", "B"])
        runner = make_runner(db_path, remote, log_groups=("nope",))

        summary = asyncio.run(runner.run())

        assert summary.state is RunState.DONE
        assert summary.groups_selected == 0
        assert summary.outcomes == []
        assert summary.window is None
        assert remote.event_calls == []

    def test_no_groups_discovered(self, db_path):
        summary = asyncio.run(make_runner(db_path, FakeRemote(groups=[])).run())

        assert summary.state is RunState.DONE
        assert summary.groups_discovered == 0


class TestGroupFailures:
    """Test that per-group failures are logged and skipped."""

    def test_fetch_failure_skips_group(self, db_path):
        remote = FakeRemote(
            groups=["A", "B", "C"],
            events={"A": make_events(2, prefix="a"), "C": make_events(1, prefix="c")},
            failing_groups=["B"],
        )

        summary = asyncio.run(make_runner(db_path, remote).run())

        assert summary.state is RunState.DONE
        assert list(summary.failed_groups) == ["B"]
        failed = [o for o in summary.outcomes if not o.ok][0]
        assert failed.failed_stage == "fetch"
        assert LogStore.open(db_path).count_rows() == 3

    def test_store_failure_keeps_other_groups(self, db_path, store):
        remote = FakeRemote(
            groups=["A", "B"],
            events={"A": make_events(2, prefix="a"), "B": make_events(2, prefix="b")},
        )
        failing_store = FailingStore(store.client, failing_groups=["A"])

        summary = asyncio.run(make_runner(db_path, remote, store=failing_store).run())

        assert summary.state is RunState.DONE
        outcome_a = next(o for o in summary.outcomes if o.log_group == "A")
        assert outcome_a.failed_stage == "store"
        assert outcome_a.events_fetched == 2
        assert outcome_a.rows_stored == 0
        assert store.count_rows(log_group="B") == 2
        assert store.count_rows(log_group="A") == 0


class TestFatalErrors:
    """Test errors that abort the run."""

    def test_discovery_failure_is_fatal(self, db_path):
        runner = make_runner(db_path, FakeRemote(groups=["A"], fail_discovery=True))

        with pytest.raises(RemoteCallError):
            asyncio.run(runner.run())
        assert runner.state is RunState.FAILED

    def test_invalid_duration_fails_before_connecting(self, db_path):
        remote = FakeRemote(groups=["A"])
        runner = make_runner(db_path, remote, duration="soon")

        with pytest.raises(ConfigError):
            asyncio.run(runner.run())
        assert runner.state is RunState.FAILED
        assert remote.event_calls == []

    @pytest.mark.parametrize("duration", ["99999999999d", "999999d"])
    def test_out_of_range_duration_is_config_error(self, db_path, duration):
        remote = FakeRemote(groups=["A"])
        runner = make_runner(db_path, remote, duration=duration)

        with pytest.raises(ConfigError):
            asyncio.run(runner.run())
        assert runner.state is RunState.FAILED
        assert remote.event_calls == []

    def test_window_before_year_one_is_config_error(self, db_path):
        remote = FakeRemote(groups=["A"])
        config = AppConfig(sqlite_path=db_path, log_file=None, duration="2d")
        early = datetime(1, 1, 2, tzinfo=timezone.utc)
        runner = ExtractionRunner(config, remote=remote, clock=lambda: early)

        with pytest.raises(ConfigError):
            asyncio.run(runner.run())
        assert runner.state is RunState.FAILED
        assert remote.event_calls == []

    def test_dedupe_failure_is_fatal(self, db_path, store):
        class BrokenDedupeStore(LogStore):
            def dedupe(self):
                raise StoreError("database is locked", operation="dedupe")

        runner = make_runner(
            db_path, FakeRemote(groups=["A"]), store=BrokenDedupeStore(store.client)
        )

        with pytest.raises(StoreError):
            asyncio.run(runner.run())
        assert runner.state is RunState.FAILED


class TestConcurrency:
    """Test the admission gate under the runner."""

    def test_at_most_max_concurrent_groups_in_flight(self, db_path):
        remote = FakeRemote(
            groups=[f"g{i}" for i in range(5)],
            events={f"g{i}": make_events(1, prefix=f"g{i}") for i in range(5)},
            delay=0.05,
        )
        runner = make_runner(db_path, remote, max_concurrent=2)

        summary = asyncio.run(runner.run())

        assert runner.pool.peak_active == 2
        assert remote.peak_fetches <= 2
        assert summary.rows_stored == 5
