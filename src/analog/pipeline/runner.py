# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Extraction runner.

Drives one run from start to finish:

    INIT -> CONNECTED -> GROUPS_DISCOVERED -> GROUPS_SELECTED
         -> FETCHING -> DEDUPING -> DONE

Any fatal error moves the run to FAILED and is re-raised. Failures while
fetching or storing a single log group are not fatal: they are logged,
recorded in the summary and the remaining groups carry on.
"""

import asyncio
import functools
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from ..config import AppConfig
from ..database.store import LogStore
from ..errors import RemoteCallError, StoreError
from ..models import LogGroup, TimeWindow
from ..remote.client import CloudWatchLogsClient
from ..remote.fetcher import EventFetcher, discover_log_groups
from ..selection import missing_log_groups, select_log_groups
from .worker_pool import BoundedWorkerPool, TaskResult

logger = logging.getLogger(__name__)


class RunState(Enum):
    INIT = "init"
    CONNECTED = "connected"
    GROUPS_DISCOVERED = "groups_discovered"
    GROUPS_SELECTED = "groups_selected"
    FETCHING = "fetching"
    DEDUPING = "deduping"
    DONE = "done"
    FAILED = "failed"


@dataclass
class GroupOutcome:
    """What happened to one log group during a run."""

    log_group: str
    events_fetched: int = 0
    rows_stored: int = 0
    failed_stage: Optional[str] = None  # fetch, store or task
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.failed_stage is None


@dataclass
class RunSummary:
    """Result of a completed run."""

    state: RunState = RunState.INIT
    window: Optional[TimeWindow] = None
    groups_discovered: int = 0
    groups_selected: int = 0
    missing_groups: List[str] = field(default_factory=list)
    outcomes: List[GroupOutcome] = field(default_factory=list)
    rows_deduped: int = 0

    @property
    def events_fetched(self) -> int:
        return sum(o.events_fetched for o in self.outcomes)

    @property
    def rows_stored(self) -> int:
        return sum(o.rows_stored for o in self.outcomes)

    @property
    def failed_groups(self) -> Dict[str, str]:
        return {o.log_group: o.error or "" for o in self.outcomes if not o.ok}


class ExtractionRunner:
    """
    Fetches events for the selected log groups and stores them.

    Blocking boto3 and sqlite3 calls run in the event loop's default
    executor, so each remote call and each store operation is a suspension
    point for the calling task only.
    """

    def __init__(
        self,
        config: AppConfig,
        remote: Optional[Any] = None,
        store: Optional[LogStore] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize the runner.

        Args:
            config: Validated or unvalidated application configuration
            remote: Remote log client; built from config when not provided
            store: Log store; opened from config.sqlite_path when not provided
            clock: Returns "now" as an aware UTC datetime (for tests)
        """
        self.config = config
        self.remote = remote
        self.store = store
        self.clock = clock

        self.state = RunState.INIT
        self.summary = RunSummary()
        self.pool = BoundedWorkerPool(max_concurrent=config.max_concurrent)
        self.fetcher: Optional[EventFetcher] = None
        self._duration: Optional[timedelta] = None

    def _transition(self, state: RunState) -> None:
        logger.debug(f"Run state: {self.state.value} -> {state.value}")
        self.state = state
        self.summary.state = state

    async def _in_executor(self, func, *args):
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, functools.partial(func, *args))

    async def run(self) -> RunSummary:
        """
        Execute one full run.

        Returns:
            RunSummary with state DONE

        Raises:
            ConfigError: invalid configuration (e.g. duration expression)
            RemoteCallError: client creation or log group discovery failed
            StoreError: database open, schema creation or dedupe failed
        """
        try:
            await self._run()
        except Exception:
            self._transition(RunState.FAILED)
            raise
        return self.summary

    async def _run(self) -> None:
        self.config.validate()
        self._duration = self.config.duration_delta()

        await self._connect()
        self._transition(RunState.CONNECTED)

        all_groups = await self._in_executor(
            discover_log_groups, self.remote, self.config.max_pages
        )
        self.summary.groups_discovered = len(all_groups)
        self._transition(RunState.GROUPS_DISCOVERED)

        selected = self._select(all_groups)
        self._transition(RunState.GROUPS_SELECTED)
        if not selected:
            logger.info("No matching log groups found. Exiting.")
            self._transition(RunState.DONE)
            return

        now = self.clock() if self.clock else None
        window = TimeWindow.ending_now(self._duration, now=now)
        self.summary.window = window
        logger.info(f"Fetching logs from {window.start.isoformat()} to {window.end.isoformat()}")

        self._transition(RunState.FETCHING)
        results = await self.pool.run(
            selected,
            functools.partial(self._process_log_group, window),
            name=lambda group: group.name,
        )
        self.summary.outcomes = [self._outcome_from(result) for result in results]

        failed = self.summary.failed_groups
        if failed:
            logger.warning(
                f"{len(failed)} of {len(selected)} log group(s) failed: {', '.join(sorted(failed))}"
            )

        self._transition(RunState.DEDUPING)
        logger.info("Deduplicate log events")
        self.summary.rows_deduped = await self._in_executor(self.store.dedupe)
        logger.info(f"Removed {self.summary.rows_deduped} duplicate row(s)")

        self._transition(RunState.DONE)
        logger.info("Done!")

    async def _connect(self) -> None:
        """Open the store and build the remote client."""
        if self.store is None:
            self.store = await self._in_executor(LogStore.open, self.config.sqlite_path)
        await self._in_executor(self.store.init_schema)

        if self.remote is None:
            self.remote = await self._in_executor(CloudWatchLogsClient.from_config, self.config)

        self.fetcher = EventFetcher(self.remote, max_pages=self.config.max_pages)

    def _select(self, all_groups: List[LogGroup]) -> List[LogGroup]:
        requested = list(self.config.log_groups)
        selected = select_log_groups(all_groups, requested)

        missing = missing_log_groups(all_groups, requested)
        if missing:
            logger.warning(f"Requested log group(s) not found: {', '.join(missing)}")
        self.summary.missing_groups = missing
        self.summary.groups_selected = len(selected)

        logger.info(f"Selected {len(selected)} log group(s).")
        return selected

    async def _process_log_group(self, window: TimeWindow, log_group: LogGroup) -> GroupOutcome:
        """Fetch then store one log group; failures are recorded, not raised."""
        name = log_group.name
        outcome = GroupOutcome(log_group=name)

        logger.info(f"Retrieving events for log group: {name}")
        try:
            events = await self._in_executor(
                self.fetcher.fetch, name, window.start_ms, window.end_ms
            )
        except RemoteCallError as e:
            logger.error(f"Failed to fetch events for log group '{name}': {e}")
            outcome.failed_stage = "fetch"
            outcome.error = str(e)
            return outcome

        outcome.events_fetched = len(events)
        logger.info(f"Retrieved {len(events)} event(s) for log group: {name}")

        try:
            outcome.rows_stored = await self._in_executor(self.store.insert_batch, name, events)
        except StoreError as e:
            logger.error(f"Failed to store events for log group '{name}': {e}")
            outcome.failed_stage = "store"
            outcome.error = str(e)
            return outcome

        logger.info(f"Stored {outcome.rows_stored} event(s) for log group: {name}")
        return outcome

    @staticmethod
    def _outcome_from(result: TaskResult) -> GroupOutcome:
        if result.ok:
            return result.value
        return GroupOutcome(
            log_group=result.name,
            failed_stage="task",
            error=str(result.error),
        )
