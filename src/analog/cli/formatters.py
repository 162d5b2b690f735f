# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Rich table output for run summaries and store statistics.
"""

from typing import Any, Dict, List

from rich.console import Console
from rich.table import Table

from ..models import millis_to_datetime
from ..pipeline.runner import RunSummary

MAX_MESSAGE_WIDTH = 80


def _format_number(value: int) -> str:
    return f"{int(value):,}"


def _format_millis(value) -> str:
    if value is None:
        return "-"
    return millis_to_datetime(value).strftime("%Y-%m-%d %H:%M:%S")


def _truncate(text: str, width: int = MAX_MESSAGE_WIDTH) -> str:
    text = " ".join(str(text).split())
    return text if len(text) <= width else text[: width - 1] + "…"


def print_run_summary(console: Console, summary: RunSummary) -> None:
    """Per-group results of an extraction run, followed by totals."""
    if summary.window is not None:
        console.print(f"[bold]Window:[/bold] {summary.window}")

    if summary.outcomes:
        table = Table(title="Extraction Summary", show_header=True, header_style="bold magenta")
        table.add_column("Log Group", style="cyan", no_wrap=True)
        table.add_column("Events", justify="right")
        table.add_column("Stored", justify="right")
        table.add_column("Status")

        for outcome in sorted(summary.outcomes, key=lambda o: o.log_group):
            if outcome.ok:
                status = "[green]ok[/green]"
            else:
                status = f"[red]{outcome.failed_stage} failed[/red]"
            table.add_row(
                outcome.log_group,
                _format_number(outcome.events_fetched),
                _format_number(outcome.rows_stored),
                status,
            )

        console.print(table)

    console.print(
        f"Groups: {summary.groups_selected} selected of {summary.groups_discovered} discovered · "
        f"Events: {_format_number(summary.events_fetched)} · "
        f"Stored: {_format_number(summary.rows_stored)} · "
        f"Duplicates removed: {_format_number(summary.rows_deduped)}"
    )

    for name in summary.missing_groups:
        console.print(f"[yellow]⚠[/yellow] Requested log group not found: {name}")

    for name, error in sorted(summary.failed_groups.items()):
        console.print(f"[red]✗[/red] {name}: {error}")


def print_group_counts(console: Console, counts: List[Dict[str, Any]]) -> None:
    """Row counts and time span per stored log group."""
    table = Table(title="Stored Log Groups", show_header=True, header_style="bold magenta")
    table.add_column("Log Group", style="cyan", no_wrap=True)
    table.add_column("Rows", justify="right")
    table.add_column("First Event")
    table.add_column("Last Event")

    for row in counts:
        table.add_row(
            row["log_group"],
            _format_number(row["row_count"]),
            _format_millis(row["first_timestamp"]),
            _format_millis(row["last_timestamp"]),
        )

    console.print(table)


def print_top_messages(console: Console, messages: List[Dict[str, Any]]) -> None:
    """Most frequent messages from the log_message_counts view."""
    table = Table(title="Top Messages", show_header=True, header_style="bold magenta")
    table.add_column("Count", justify="right")
    table.add_column("Log Group", style="cyan")
    table.add_column("Message")

    for row in messages:
        table.add_row(
            _format_number(row["occurrences"]),
            row["log_group"],
            _truncate(row["message"]),
        )

    console.print(table)
