# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Relative duration expressions such as "1h", "2days" or "3 hours 15 min".
"""

import re
from datetime import timedelta

from .errors import ConfigError

_UNITS = {
    "ms": "milliseconds",
    "msec": "milliseconds",
    "msecs": "milliseconds",
    "millisecond": "milliseconds",
    "milliseconds": "milliseconds",
    "s": "seconds",
    "sec": "seconds",
    "secs": "seconds",
    "second": "seconds",
    "seconds": "seconds",
    "m": "minutes",
    "min": "minutes",
    "mins": "minutes",
    "minute": "minutes",
    "minutes": "minutes",
    "h": "hours",
    "hr": "hours",
    "hrs": "hours",
    "hour": "hours",
    "hours": "hours",
    "d": "days",
    "day": "days",
    "days": "days",
    "w": "weeks",
    "wk": "weeks",
    "wks": "weeks",
    "week": "weeks",
    "weeks": "weeks",
}

_TERM_RE = re.compile(r"(\d+(?:\.\d+)?)\s*([a-z]+)")
_SEPARATOR_RE = re.compile(r"[\s,]*")


def parse_duration(expr: str) -> timedelta:
    """
    Parse a relative duration expression into a timedelta.

    Terms are summed, so "1h30m" and "1 hour 30 minutes" are equivalent.

    Raises:
        ConfigError: if the expression is empty or contains anything other
            than <number><unit> terms.
    """
    if expr is None or not expr.strip():
        raise ConfigError("Duration expression is empty")

    text = expr.strip().lower()
    total = timedelta(0)
    pos = 0
    found = False

    while pos < len(text):
        pos = _SEPARATOR_RE.match(text, pos).end()
        if pos >= len(text):
            break

        match = _TERM_RE.match(text, pos)
        if match is None:
            raise ConfigError(f"Invalid duration expression: {expr!r}")

        value, unit = match.groups()
        if unit not in _UNITS:
            raise ConfigError(f"Unknown duration unit {unit!r} in {expr!r}")

        try:
            total += timedelta(**{_UNITS[unit]: float(value)})
        except OverflowError as e:
            raise ConfigError(f"Duration {expr!r} is out of range") from e
        found = True
        pos = match.end()

    if not found:
        raise ConfigError(f"Invalid duration expression: {expr!r}")

    return total
