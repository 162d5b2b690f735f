# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Extraction pipeline: bounded fan-out over log groups and run orchestration.
"""

from .worker_pool import BoundedWorkerPool, TaskResult
from .runner import ExtractionRunner, GroupOutcome, RunState, RunSummary

__all__ = [
    'BoundedWorkerPool',
    'TaskResult',
    'ExtractionRunner',
    'GroupOutcome',
    'RunState',
    'RunSummary',
]
