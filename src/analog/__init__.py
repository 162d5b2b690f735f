"""
analog

Pull AWS CloudWatch log events into a local, deduplicated SQLite store.
"""

# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only

__version__ = "0.1.0"
__author__ = "Sierra Labs"
__all__ = ["__version__", "__author__"]
