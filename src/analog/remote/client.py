# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
CloudWatch Logs client.

Thin wrapper over the boto3 "logs" client exposing one method per paginated
operation. Each method fetches a single page and returns (items, next_token);
the paginator drives them to completion.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from ..config import AppConfig
from ..errors import RemoteCallError
from ..models import LogEvent, LogGroup

logger = logging.getLogger(__name__)


def _describe_error(error: Exception) -> str:
    if isinstance(error, ClientError):
        err = error.response.get("Error", {})
        return f"{err.get('Code', 'ClientError')}: {err.get('Message', str(error))}"
    return str(error)


class CloudWatchLogsClient:
    """
    Page-level access to DescribeLogGroups and FilterLogEvents.

    The underlying boto3 client is thread-safe and is shared by every
    extraction task.
    """

    def __init__(
        self,
        region: Optional[str] = None,
        profile: Optional[str] = None,
        timeout: float = 60.0,
        client: Optional[Any] = None,
    ):
        """
        Initialize the client.

        Args:
            region: AWS region name; None defers to the SDK's resolution chain
            profile: Named profile; None defers to the SDK's resolution chain
            timeout: Connect and read timeout in seconds for each API call
            client: Pre-built boto3 logs client (skips session creation)

        Raises:
            RemoteCallError: if the session or client cannot be created,
                e.g. unknown profile or unknown region
        """
        self.region = region
        self.profile = profile

        if client is not None:
            self._client = client
            return

        try:
            session = boto3.Session(profile_name=profile, region_name=region)
            self._client = session.client(
                "logs",
                config=BotoConfig(connect_timeout=timeout, read_timeout=timeout),
            )
        except (BotoCoreError, ClientError, ValueError) as e:
            raise RemoteCallError(
                f"Failed to create CloudWatch Logs client: {_describe_error(e)}",
                operation="CreateClient",
            ) from e

        logger.info(
            f"CloudWatch Logs client ready (region={self._client.meta.region_name}, "
            f"profile={profile or 'default chain'})"
        )

    @classmethod
    def from_config(cls, config: AppConfig) -> "CloudWatchLogsClient":
        return cls(region=config.region, profile=config.profile, timeout=config.timeout)

    def describe_log_groups_page(
        self, next_token: Optional[str] = None
    ) -> Tuple[List[LogGroup], Optional[str]]:
        """Fetch one page of log groups."""
        params: Dict[str, Any] = {}
        if next_token:
            params["nextToken"] = next_token

        try:
            response = self._client.describe_log_groups(**params)
        except (BotoCoreError, ClientError) as e:
            raise RemoteCallError(
                f"DescribeLogGroups failed: {_describe_error(e)}",
                operation="DescribeLogGroups",
            ) from e

        groups = []
        for data in response.get("logGroups", []):
            group = LogGroup.from_api(data)
            if group is None:
                logger.warning("Skipping log group without a name")
                continue
            groups.append(group)

        return groups, response.get("nextToken")

    def filter_log_events_page(
        self,
        log_group_name: str,
        start_ms: int,
        end_ms: int,
        next_token: Optional[str] = None,
    ) -> Tuple[List[LogEvent], Optional[str]]:
        """Fetch one page of events for a log group within [start_ms, end_ms]."""
        params: Dict[str, Any] = {
            "logGroupName": log_group_name,
            "startTime": start_ms,
            "endTime": end_ms,
        }
        if next_token:
            params["nextToken"] = next_token

        try:
            response = self._client.filter_log_events(**params)
        except (BotoCoreError, ClientError) as e:
            raise RemoteCallError(
                f"FilterLogEvents failed for {log_group_name}: {_describe_error(e)}",
                operation="FilterLogEvents",
                log_group=log_group_name,
            ) from e

        events = [LogEvent.from_api(data) for data in response.get("events", [])]
        return events, response.get("nextToken")
