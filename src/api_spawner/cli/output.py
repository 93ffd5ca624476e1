"""Rich terminal output layer for api-spawner commands.

Provides the shared stderr console, a progress bar for bulk runs,
grouped API listings, account tables, bulk summaries, and JSON output.
"""

from __future__ import annotations

import json
import sys
from collections.abc import Iterable
from typing import TYPE_CHECKING

from rich import box
from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

from api_spawner.execution.bulk import BulkEvent, ItemCompleted, ItemRetrying
from api_spawner.planning import group_by_account_region

if TYPE_CHECKING:
    from api_spawner.models.bulk import BulkSummary
    from api_spawner.models.config import AppConfig
    from api_spawner.models.gateway import ApiGatewayInfo

console = Console(stderr=True)


def create_progress(console: Console) -> Progress | None:
    """Create a Rich Progress bar for bulk runs.

    Returns None if the console is not a terminal (CI/pipe mode),
    so the caller can skip progress display.
    """
    if not console.is_terminal:
        return None

    return Progress(
        TextColumn("[bold blue]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        TimeElapsedColumn(),
        TextColumn("{task.fields[status]}"),
        console=console,
        transient=True,
    )


def format_retry_status(event: ItemRetrying) -> str:
    attempt = event.attempt
    seconds = round(attempt.delay_ms / 1000)
    if attempt.delay_source == "retry-after":
        delay_info = f"Retry-After: {seconds}s"
    else:
        delay_info = f"Backoff: {seconds}s"
    return f"Retrying {event.label} (attempt {attempt.attempt}/{event.max_attempts}) - {delay_info}"


class BulkProgressReporter:
    """Event sink for BulkRunner that drives a progress bar or plain lines."""

    def __init__(self, console: Console, title: str, total: int, verb: str) -> None:
        self._console = console
        self._verb = verb
        self._progress = create_progress(console)
        self._task: TaskID | None = None
        if self._progress is not None:
            self._task = self._progress.add_task(title, total=total, status="Starting...")

    def __enter__(self) -> BulkProgressReporter:
        if self._progress is not None:
            self._progress.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        if self._progress is not None:
            self._progress.stop()

    def __call__(self, event: BulkEvent) -> None:
        if isinstance(event, ItemRetrying):
            status = format_retry_status(event)
            if self._progress is not None and self._task is not None:
                self._progress.update(self._task, status=status)
            else:
                self._console.print(f"[yellow]{status}[/yellow]")
        elif isinstance(event, ItemCompleted):
            outcome = event.outcome
            status = f"{self._verb} {outcome.label}" if outcome.success else f"Failed {outcome.label}"
            if self._progress is not None and self._task is not None:
                self._progress.update(self._task, completed=event.completed, status=status)
            else:
                style = "green" if outcome.success else "red"
                self._console.print(f"[{style}]{status}[/{style}] ({event.completed}/{event.total})")


def render_api_groups(apis: Iterable[ApiGatewayInfo], console: Console, style: str = "green") -> None:
    """Print APIs grouped by account and region."""
    for (account, region), group in group_by_account_region(apis).items():
        console.print(f"\n[bold blue]{account} ({region})[/bold blue]")
        console.print("[blue]" + "─" * 50 + "[/blue]")
        for api in group:
            console.print(f"  [{style}]{api.name}[/{style}]")
            console.print(f"    [dim]ID: {api.id}[/dim]")
            console.print(f"    [dim]URL: {api.url}[/dim]")
            console.print(f"    [dim]Created: {api.created_date.date().isoformat()}[/dim]")


def render_accounts(config: AppConfig, console: Console) -> None:
    table = Table(box=box.SIMPLE, show_header=True, padding=(0, 2))
    table.add_column("#", style="dim")
    table.add_column("Alias", style="bold green")
    table.add_column("Account ID")
    table.add_column("Role ARN")
    table.add_column("External ID")
    table.add_column("Session Name")

    for i, (alias, account) in enumerate(config.accounts.items(), 1):
        table.add_row(
            str(i),
            alias,
            account.account_id,
            account.role_arn,
            account.external_id or "-",
            account.session_name,
        )
    console.print(table)


def render_bulk_summary(summary: BulkSummary, console: Console) -> None:
    """Render successes, failures, and rate-limit statistics of a bulk run."""
    verb = "created" if summary.operation == "create" else "deleted"
    succeeded = summary.succeeded
    failed = summary.failed

    if succeeded:
        console.print(f"\n[bold green]✓ Successfully {verb} {len(succeeded)} API Gateway(s)[/bold green]")
        for outcome in succeeded:
            console.print(f"  [cyan]{outcome.label}[/cyan] ({outcome.account}/{outcome.region})")
            if outcome.api is not None:
                console.print(f"    [dim]ID: {outcome.api.id}[/dim]")
                console.print(f"    [dim]URL: {outcome.api.url}[/dim]")

    if failed:
        console.print(f"\n[bold red]✗ Failed: {len(failed)} API Gateway(s)[/bold red]")
        for outcome in failed:
            console.print(
                f"  [red]{outcome.label}[/red] ({outcome.account}/{outcome.region}): "
                f"{outcome.error_message} [dim](attempts={outcome.attempts})[/dim]"
            )

    table = Table(box=box.SIMPLE, show_header=False, padding=(0, 2))
    table.add_column("Key", style="bold")
    table.add_column("Value")
    table.add_row("Summary", f"{len(succeeded)} {verb}, {len(failed)} failed")
    if summary.total_retries > 0:
        table.add_row("Retries", str(summary.total_retries))
    if summary.rate_limits.total_rate_limits > 0:
        table.add_row("Rate limits hit", str(summary.rate_limits.total_rate_limits))
        table.add_row(
            "Average suggested delay",
            f"{round(summary.rate_limits.average_delay_ms / 1000)}s",
        )
    console.print()
    console.print(table)


def output_json(payload: object) -> None:
    """Write a pydantic model (or a list of them) as pure JSON to stdout."""
    if hasattr(payload, "model_dump_json"):
        sys.stdout.write(payload.model_dump_json(indent=2))  # type: ignore[attr-defined]
    else:
        data = [
            item.model_dump(mode="json") if hasattr(item, "model_dump") else item
            for item in payload  # type: ignore[attr-defined]
        ]
        sys.stdout.write(json.dumps(data, indent=2))
    sys.stdout.write("\n")
