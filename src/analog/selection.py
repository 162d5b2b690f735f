# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""Log group selection."""

from typing import Iterable, List, Sequence

from .config import ALL_LOG_GROUPS
from .models import LogGroup


def select_log_groups(groups: Sequence[LogGroup], requested: Iterable[str]) -> List[LogGroup]:
    """
    Filter discovered log groups down to the requested names.

    An empty request, or one containing "all", selects every group.
    Otherwise the groups whose name was requested are returned in their
    original order.
    """
    wanted = set(requested)
    if not wanted or ALL_LOG_GROUPS in wanted:
        return list(groups)
    return [group for group in groups if group.name in wanted]


def missing_log_groups(groups: Sequence[LogGroup], requested: Iterable[str]) -> List[str]:
    """Requested names that match no discovered group, in request order."""
    names = {group.name for group in groups}
    return [
        name for name in requested
        if name != ALL_LOG_GROUPS and name not in names
    ]
