# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Bounded worker pool for per-log-group extraction tasks.

One asyncio task is created per item as soon as the items are known. An
admission gate (semaphore) lets at most max_concurrent task bodies run at
once. A failing task is logged and recorded; its siblings keep running.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Generic, List, Optional, Sequence, TypeVar

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONCURRENT = 5

T = TypeVar("T")


@dataclass
class TaskResult(Generic[T]):
    """Outcome of one pool task."""

    name: str
    item: T
    value: Any = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class BoundedWorkerPool:
    """
    Runs an async handler over a sequence of items with bounded concurrency.

    The pool tracks how many task bodies currently hold an admission slot
    (active) and the highest value seen (peak_active).
    """

    def __init__(self, max_concurrent: int = DEFAULT_MAX_CONCURRENT):
        """
        Initialize worker pool.

        Args:
            max_concurrent: Capacity of the admission gate
        """
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")

        self.max_concurrent = max_concurrent
        self.active = 0
        self.peak_active = 0
        self.stats = {
            'submitted': 0,
            'succeeded': 0,
            'failed': 0,
        }

    async def run(
        self,
        items: Sequence[T],
        handler: Callable[[T], Awaitable[Any]],
        name: Callable[[T], str] = str,
    ) -> List[TaskResult[T]]:
        """
        Run handler once per item and wait for every task to finish.

        Args:
            items: Work items, one task each
            handler: Coroutine function processing a single item
            name: Labels an item in log messages and results

        Returns:
            One TaskResult per item, in item order
        """
        if not items:
            return []

        # Created inside the running loop
        gate = asyncio.Semaphore(self.max_concurrent)

        logger.info(
            f"Scheduling {len(items)} task(s) with at most {self.max_concurrent} running at once"
        )

        tasks = [
            asyncio.create_task(self._run_one(gate, item, handler, name(item)))
            for item in items
        ]
        self.stats['submitted'] += len(tasks)

        return list(await asyncio.gather(*tasks))

    async def _run_one(
        self,
        gate: asyncio.Semaphore,
        item: T,
        handler: Callable[[T], Awaitable[Any]],
        task_name: str,
    ) -> TaskResult[T]:
        """
        Run a single task body while holding an admission slot.

        Exceptions are logged and captured in the result rather than raised,
        so one failure never cancels the other tasks.
        """
        async with gate:
            self.active += 1
            self.peak_active = max(self.peak_active, self.active)
            try:
                value = await handler(item)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Task {task_name} failed: {e}")
                self.stats['failed'] += 1
                return TaskResult(name=task_name, item=item, error=e)
            finally:
                self.active -= 1

        self.stats['succeeded'] += 1
        return TaskResult(name=task_name, item=item, value=value)

    def get_stats(self) -> Dict[str, Any]:
        """
        Get pool statistics.

        Returns:
            Dictionary with pool stats
        """
        return {
            **self.stats,
            'max_concurrent': self.max_concurrent,
            'active': self.active,
            'peak_active': self.peak_active,
        }
