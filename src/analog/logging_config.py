# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Process-wide logging setup.

configure_logging() is called once by the CLI before any extraction task is
started. Library modules only ever call logging.getLogger(__name__).
"""

import logging
import sys
from pathlib import Path
from typing import List, Optional

LOG_FORMAT = "[%(asctime)s %(levelname)s %(name)s] %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S%z"

# Third-party loggers that are too chatty at INFO
QUIET_LOGGERS = ("boto3", "botocore", "urllib3", "s3transfer")

_configured = False


def configure_logging(level: str = "INFO", log_file: Optional[str] = "output.log") -> bool:
    """
    Send log records to stdout and, optionally, a log file.

    Args:
        level: Root log level name
        log_file: Path of the log file; None disables file output

    Returns:
        True if logging was configured by this call, False if it had already
        been configured earlier in the process.
    """
    global _configured
    if _configured:
        return False

    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        path = Path(log_file).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(path, encoding="utf-8"))

    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
        handlers=handlers,
        force=True,
    )

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(logging.WARNING, logging.getLogger().level))

    _configured = True
    return True
