# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Log group discovery and time-ranged event retrieval.
"""

import functools
import logging
from typing import List, Optional

from ..models import LogEvent, LogGroup
from .paginator import paginate

logger = logging.getLogger(__name__)


def discover_log_groups(remote, max_pages: Optional[int] = None) -> List[LogGroup]:
    """
    List every log group visible to the remote client.

    Raises:
        RemoteCallError: if any page fails
    """
    groups = paginate(remote.describe_log_groups_page, max_pages=max_pages)
    logger.info(f"Found {len(groups)} total log group(s).")
    return groups


class EventFetcher:
    """Retrieves all events of one log group within a time interval."""

    def __init__(self, remote, max_pages: Optional[int] = None):
        """
        Args:
            remote: Object providing filter_log_events_page()
            max_pages: Optional per-group page limit
        """
        self.remote = remote
        self.max_pages = max_pages

    def fetch(self, log_group_name: str, start_ms: int, end_ms: int) -> List[LogEvent]:
        """
        Fetch events for log_group_name with start_ms <= timestamp <= end_ms.

        Events are returned in remote order, unsorted and unfiltered.

        Raises:
            RemoteCallError: propagated unchanged from the paginator
        """
        fetch_page = functools.partial(
            self.remote.filter_log_events_page, log_group_name, start_ms, end_ms
        )
        return paginate(fetch_page, max_pages=self.max_pages)
