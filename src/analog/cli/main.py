# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Main CLI entry point for analog.
"""

import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict

import click
from rich.console import Console

from .. import __version__
from ..config import LOG_LEVELS, AppConfig
from ..database.store import LogStore
from ..errors import AnalogError
from ..logging_config import configure_logging
from ..pipeline.runner import ExtractionRunner
from .formatters import print_group_counts, print_run_summary, print_top_messages

logger = logging.getLogger(__name__)

# Create console for rich output
console = Console()


def _load_config(settings: Dict[str, Any], **overrides) -> AppConfig:
    """Resolve configuration and start logging. Raises ConfigError."""
    merged = {**settings.get("overrides", {}), **overrides}
    config = AppConfig.load(config_path=settings.get("config_path"), overrides=merged)

    # Start logging before validating so config errors reach the log file
    level = str(config.log_level).upper()
    configure_logging(level if level in LOG_LEVELS else "INFO", config.log_file)

    config.validate()
    return config


def _report_error(error: Exception, debug: bool) -> None:
    if debug:
        console.print_exception()
    else:
        console.print(f"[red]Error:[/red] {error}")


@click.group()
@click.version_option(version=__version__, prog_name="analog")
@click.option(
    "--config", "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="YAML config file (default: ~/.analog/config.yaml if present)"
)
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    help="Log level (default: INFO)"
)
@click.option(
    "--log-file",
    help="Log file path (default: output.log)"
)
@click.option(
    "--debug",
    envvar="ANALOG_DEBUG",
    is_flag=True,
    help="Show tracebacks on errors"
)
@click.pass_context
def cli(ctx, config_path: Path, log_level: str, log_file: str, debug: bool):
    """
    analog - fetch AWS CloudWatch logs and store them in SQLite.

    Examples:
        analog extract --duration 2h --log-groups /aws/lambda/api
        analog extract --log-groups all --sqlite-path logs.db
        analog stats --limit 20
    """
    ctx.obj = {
        "config_path": config_path,
        "debug": debug,
        "overrides": {
            "log_level": log_level.upper() if log_level else None,
            "log_file": log_file,
            "debug": debug or None,
        },
    }


@cli.command()
@click.option("--region", help="AWS region (default: us-east-1)")
@click.option("--profile", help="AWS named profile (default: default)")
@click.option(
    "--log-groups", "log_groups",
    multiple=True,
    help='Log group to fetch; repeatable or comma-separated, "all" for every group (default: all)'
)
@click.option("--duration", help='How far back to fetch, e.g. "1h", "2days" (default: 1h)')
@click.option("--sqlite-path", help="SQLite database file (default: logs.db)")
@click.option(
    "--max-concurrent",
    type=click.IntRange(min=1),
    help="Log groups processed at once (default: 5)"
)
@click.option(
    "--timeout",
    type=click.FloatRange(min=0, min_open=True),
    help="Per-call AWS connect/read timeout in seconds (default: 60)"
)
@click.pass_obj
def extract(
    settings: Dict[str, Any],
    region: str,
    profile: str,
    log_groups: tuple,
    duration: str,
    sqlite_path: str,
    max_concurrent: int,
    timeout: float,
):
    """Fetch log events for the selected log groups and store them."""
    try:
        config = _load_config(
            settings,
            region=region,
            profile=profile,
            log_groups=log_groups,
            duration=duration,
            sqlite_path=sqlite_path,
            max_concurrent=max_concurrent,
            timeout=timeout,
        )
        logger.info(f"Starting application with args: {config.to_dict()}")

        summary = asyncio.run(ExtractionRunner(config).run())
    except AnalogError as e:
        logger.error(f"Run failed: {e}")
        _report_error(e, settings.get("debug", False))
        sys.exit(1)

    print_run_summary(console, summary)


@cli.command()
@click.option("--sqlite-path", help="SQLite database file (default: logs.db)")
@click.pass_obj
def dedupe(settings: Dict[str, Any], sqlite_path: str):
    """Remove duplicate rows from the store."""
    try:
        config = _load_config(settings, sqlite_path=sqlite_path)
        store = LogStore.open(config.sqlite_path)
        store.init_schema()
        deleted = store.dedupe()
    except AnalogError as e:
        logger.error(f"Dedupe failed: {e}")
        _report_error(e, settings.get("debug", False))
        sys.exit(1)

    logger.info(f"Removed {deleted} duplicate row(s)")
    console.print(f"[green]✓[/green] Removed {deleted:,} duplicate row(s)")


@cli.command()
@click.option("--sqlite-path", help="SQLite database file (default: logs.db)")
@click.option("--log-group", help="Only show messages from this log group")
@click.option(
    "--limit", "-n",
    type=click.IntRange(min=1),
    default=10,
    show_default=True,
    help="Number of top messages to show"
)
@click.pass_obj
def stats(settings: Dict[str, Any], sqlite_path: str, log_group: str, limit: int):
    """Show stored row counts and the most frequent messages."""
    try:
        config = _load_config(settings, sqlite_path=sqlite_path)
        if not Path(config.sqlite_path).expanduser().exists():
            console.print(f"[red]Error:[/red] Database not found: {config.sqlite_path}")
            sys.exit(1)

        store = LogStore.open(config.sqlite_path)
        store.init_schema()
        counts = store.group_counts()
        messages = store.top_messages(limit=limit, log_group=log_group)
    except AnalogError as e:
        _report_error(e, settings.get("debug", False))
        sys.exit(1)

    if not counts:
        console.print("[yellow]⚠[/yellow] No log events stored yet")
        return

    print_group_counts(console, counts)
    print_top_messages(console, messages)


def main():
    """Main entry point for the CLI."""
    try:
        cli()
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        sys.exit(130)
    except Exception as e:
        if os.environ.get("ANALOG_DEBUG"):
            console.print_exception()
        else:
            console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
