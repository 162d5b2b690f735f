# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Remote side of the pipeline: CloudWatch Logs access and pagination.
"""

from .client import CloudWatchLogsClient
from .fetcher import EventFetcher, discover_log_groups
from .paginator import paginate

__all__ = [
    'CloudWatchLogsClient',
    'EventFetcher',
    'discover_log_groups',
    'paginate',
]
