"""api-spawner bulk-delete -- delete API Gateways by pattern across accounts."""

from __future__ import annotations

import asyncio
from typing import Optional

import typer
from botocore.exceptions import BotoCoreError, ClientError
from rich.markup import escape

from api_spawner.aws.gateway import ApiGatewayManager
from api_spawner.cli.output import (
    BulkProgressReporter,
    console,
    output_json,
    render_api_groups,
    render_bulk_summary,
)
from api_spawner.cli.targets import (
    DEFAULT_ROLE_PATTERN,
    AccessMode,
    configured_targets,
    discovered_targets,
    load_config_or_exit,
    prompt_aliases,
    prompt_mode,
    prompt_regions,
    require_accounts,
)
from api_spawner.errors import ApiSpawnerError
from api_spawner.execution.bulk import BulkRunner
from api_spawner.execution.rate_limiter import AdaptiveRateLimiter, RetryOverrides
from api_spawner.execution.retry import RetryManager
from api_spawner.models.config import AppConfig
from api_spawner.models.gateway import ApiGatewayInfo, TargetAccount
from api_spawner.planning import (
    DEFAULT_REGION_CODES,
    filter_by_pattern,
    filter_by_prefix,
    parse_csv,
)

BULK_DELETE_SESSION_NAME = "api-spawner-bulk-delete-session"


def bulk_delete(
    pattern: Optional[str] = typer.Option(None, "-p", "--pattern", help="Glob pattern for API names (* and ?)"),
    name: Optional[str] = typer.Option(None, "-n", "--name", help="Delete APIs whose name starts with this prefix"),
    interactive: bool = typer.Option(False, "-i", "--interactive", help="Pick APIs to delete from a list"),
    regions: Optional[str] = typer.Option(None, "-r", "--regions", help="Comma-separated AWS regions"),
    mode: Optional[AccessMode] = typer.Option(None, "-m", "--mode", help="Account access mode"),
    role_pattern: Optional[str] = typer.Option(None, "--role-pattern", help="Role name pattern (discovery mode)"),
    account_aliases: Optional[str] = typer.Option(None, "--account-aliases", help="Comma-separated aliases (configured mode)"),
    external_id: Optional[str] = typer.Option(None, "--external-id", help="External ID for role assumption"),
    parallel: bool = typer.Option(False, "--parallel", help="Delete in small concurrent batches"),
    max_retries: Optional[int] = typer.Option(None, "--max-retries", min=0, help="Maximum retries per deletion"),
    retry_delay: Optional[float] = typer.Option(None, "--retry-delay", min=0, help="Base retry delay in ms"),
    max_retry_delay: Optional[float] = typer.Option(None, "--max-retry-delay", min=0, help="Maximum retry delay in ms"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show what would be deleted without deleting"),
    force: bool = typer.Option(False, "-f", "--force", help="Skip the confirmation prompt"),
    json_output: bool = typer.Option(False, "--json", help="Output the run summary as JSON to stdout"),
) -> None:
    """Delete API Gateways matching a pattern across multiple accounts and regions."""
    config = load_config_or_exit(console)
    access_mode = prompt_mode(mode)
    region_list = prompt_regions(regions, default=DEFAULT_REGION_CODES)

    try:
        targets = _resolve_targets(config, access_mode, role_pattern, account_aliases, external_id)
    except (ApiSpawnerError, ClientError, BotoCoreError) as exc:
        console.print(f"[bold red]Error resolving accounts:[/bold red] {escape(str(exc))}")
        raise typer.Exit(code=1) from None
    if not targets:
        console.print("[bold red]No accounts available for bulk deletion[/bold red]")
        raise typer.Exit(code=1)

    if not (pattern or name or interactive):
        pattern = typer.prompt("API name pattern (glob, e.g. bulk-api-*)")

    limiter = AdaptiveRateLimiter()
    manager = ApiGatewayManager.for_targets(
        targets,
        BULK_DELETE_SESSION_NAME,
        retry_manager=RetryManager(),
        rate_limiter=limiter,
    )
    overrides = RetryOverrides(
        max_retries=max_retries,
        base_delay_ms=retry_delay,
        max_delay_ms=max_retry_delay,
    )
    asyncio.run(
        _bulk_delete_async(
            manager,
            limiter,
            region_list,
            pattern,
            name,
            interactive,
            parallel=parallel,
            batch_size=config.retry.delete_batch_size,
            overrides=overrides,
            dry_run=dry_run,
            force=force,
            json_output=json_output,
        )
    )


def _resolve_targets(
    config: AppConfig,
    mode: AccessMode,
    role_pattern: str | None,
    account_aliases: str | None,
    external_id: str | None,
) -> list[TargetAccount]:
    if mode is AccessMode.configured:
        require_accounts(config, console)
        return configured_targets(config, prompt_aliases(config, account_aliases), external_id)

    pattern = role_pattern or typer.prompt("Role name pattern", default=DEFAULT_ROLE_PATTERN)
    return asyncio.run(discovered_targets(console, pattern, external_id, probe=False))


def select_apis(
    apis: list[ApiGatewayInfo],
    pattern: str | None,
    prefix: str | None,
) -> list[ApiGatewayInfo]:
    """Narrow the inventory by glob pattern and/or name prefix."""
    selected = apis
    if pattern:
        selected = filter_by_pattern(selected, pattern)
    if prefix:
        selected = filter_by_prefix(selected, prefix)
    return selected


def _pick_interactively(apis: list[ApiGatewayInfo]) -> list[ApiGatewayInfo]:
    for i, api in enumerate(apis, 1):
        console.print(f"  {i}. {api.name} ({api.id}) - {api.account}/{api.region}")
    answer = typer.prompt("Numbers to delete (comma-separated, or 'all')", default="all")
    if answer.strip().lower() == "all":
        return apis

    picked: list[ApiGatewayInfo] = []
    for token in parse_csv(answer):
        if not token.isdigit() or not 1 <= int(token) <= len(apis):
            console.print(f"[yellow]Ignoring invalid selection: {token}[/yellow]")
            continue
        api = apis[int(token) - 1]
        if api not in picked:
            picked.append(api)
    return picked


async def _bulk_delete_async(
    manager: ApiGatewayManager,
    limiter: AdaptiveRateLimiter,
    regions: list[str],
    pattern: str | None,
    prefix: str | None,
    interactive: bool,
    *,
    parallel: bool,
    batch_size: int,
    overrides: RetryOverrides,
    dry_run: bool,
    force: bool,
    json_output: bool,
) -> None:
    with console.status("Fetching API Gateways..."):
        apis = await manager.list_api_gateways(regions=regions)

    matching = select_apis(apis, pattern, prefix)
    if interactive and matching:
        matching = _pick_interactively(matching)

    if not matching:
        console.print("[yellow]No API Gateways match the selection.[/yellow]")
        return

    console.print(f"[bold red]{len(matching)} API Gateway(s) selected for deletion[/bold red]")
    render_api_groups(matching, console, style="red")

    if dry_run:
        console.print(f"\n[yellow]Dry run: {len(matching)} API Gateway(s) would be deleted.[/yellow]")
        return

    if not force and not typer.confirm(f"Delete {len(matching)} API Gateway(s)?", default=False):
        console.print("[yellow]Bulk deletion cancelled.[/yellow]")
        return

    with BulkProgressReporter(console, "Deleting API Gateways", len(matching), "Deleted") as reporter:
        runner = BulkRunner(
            manager,
            limiter,
            parallel=parallel,
            batch_size=batch_size,
            overrides=overrides,
            on_event=reporter,
        )
        summary = await runner.delete_all(matching)

    if json_output:
        output_json(summary)
    else:
        render_bulk_summary(summary, console)

    if summary.failed:
        raise typer.Exit(code=1)
