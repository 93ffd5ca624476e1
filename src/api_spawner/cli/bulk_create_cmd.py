"""api-spawner bulk-create -- create API Gateways across many accounts and regions.

Resolves target accounts (configured aliases or discovered roles),
distributes the requested number of gateways over accounts and regions,
then runs the creations through BulkRunner with adaptive retries.
"""

from __future__ import annotations

import asyncio
from typing import Optional

import click
import typer
from botocore.exceptions import BotoCoreError, ClientError
from rich.markup import escape

from api_spawner.aws.gateway import ApiGatewayManager
from api_spawner.cli.output import (
    BulkProgressReporter,
    console,
    output_json,
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
from api_spawner.models.config import AppConfig
from api_spawner.models.gateway import CreateTarget, TargetAccount
from api_spawner.planning import MAX_BULK_GATEWAYS, gateway_name, plan_create_targets

BULK_CREATE_SESSION_NAME = "api-spawner-bulk-session"


def bulk_create(
    name: Optional[str] = typer.Option(None, "-n", "--name", help="Base name for the API Gateways"),
    description: Optional[str] = typer.Option(None, "-d", "--description", help="API Gateway description"),
    regions: Optional[str] = typer.Option(None, "-r", "--regions", help="Comma-separated AWS regions"),
    mode: Optional[AccessMode] = typer.Option(None, "-m", "--mode", help="Account access mode"),
    role_pattern: Optional[str] = typer.Option(None, "--role-pattern", help="Role name pattern (discovery mode)"),
    account_aliases: Optional[str] = typer.Option(None, "--account-aliases", help="Comma-separated aliases (configured mode)"),
    external_id: Optional[str] = typer.Option(None, "--external-id", help="External ID for role assumption"),
    total_gateways: Optional[int] = typer.Option(
        None, "-t", "--total-gateways", min=1, max=MAX_BULK_GATEWAYS, help="Total number of gateways to create",
    ),
    parallel: bool = typer.Option(False, "--parallel", help="Create all gateways concurrently"),
    max_retries: Optional[int] = typer.Option(None, "--max-retries", min=0, help="Maximum retries per gateway"),
    retry_delay: Optional[float] = typer.Option(None, "--retry-delay", min=0, help="Base retry delay in ms"),
    max_retry_delay: Optional[float] = typer.Option(None, "--max-retry-delay", min=0, help="Maximum retry delay in ms"),
    yes: bool = typer.Option(False, "-y", "--yes", help="Skip the confirmation prompt"),
    json_output: bool = typer.Option(False, "--json", help="Output the run summary as JSON to stdout"),
) -> None:
    """Create API Gateways across multiple accounts and regions."""
    config = load_config_or_exit(console)
    access_mode = prompt_mode(mode)
    region_list = prompt_regions(regions)
    if not region_list:
        console.print("[bold red]Error:[/bold red] At least one region is required")
        raise typer.Exit(code=1)

    try:
        targets = _resolve_targets(config, access_mode, role_pattern, account_aliases, external_id)
    except (ApiSpawnerError, ClientError, BotoCoreError) as exc:
        console.print(f"[bold red]Error resolving accounts:[/bold red] {escape(str(exc))}")
        raise typer.Exit(code=1) from None
    if not targets:
        console.print("[bold red]No accounts available for bulk creation[/bold red]")
        raise typer.Exit(code=1)

    name = name or typer.prompt("Base name for API Gateways", default="bulk-api")
    if description is None:
        description = typer.prompt("API Gateway description (optional)", default="", show_default=False)
    if total_gateways is None:
        total_gateways = typer.prompt(
            f"Total gateways to create (1-{MAX_BULK_GATEWAYS})",
            default=len(targets) * len(region_list),
            type=click.IntRange(1, MAX_BULK_GATEWAYS),
        )

    plan = plan_create_targets(targets, region_list, total_gateways)
    _print_plan(name, plan, targets, region_list, parallel)
    if not yes and not typer.confirm(f"Create {len(plan)} API Gateway(s)?", default=False):
        console.print("[yellow]Bulk creation cancelled.[/yellow]")
        return

    settings = config.retry
    overrides = RetryOverrides(
        max_retries=max_retries if max_retries is not None else settings.max_retries,
        base_delay_ms=retry_delay if retry_delay is not None else settings.base_delay_ms,
        max_delay_ms=max_retry_delay if max_retry_delay is not None else settings.max_delay_ms,
    )
    manager = ApiGatewayManager.for_targets(targets, BULK_CREATE_SESSION_NAME)
    asyncio.run(_bulk_create_async(manager, plan, name, description, parallel, overrides, json_output))


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
    return asyncio.run(discovered_targets(console, pattern, external_id, probe=True))


def _print_plan(
    base_name: str,
    plan: list[CreateTarget],
    targets: list[TargetAccount],
    regions: list[str],
    parallel: bool,
) -> None:
    console.print("\n[bold blue]Bulk Creation Plan[/bold blue]")
    console.print(f"  [cyan]Accounts:[/cyan] {len(targets)}")
    console.print(f"  [cyan]Regions:[/cyan] {', '.join(regions)}")
    console.print(f"  [cyan]Gateways:[/cyan] {len(plan)}")
    console.print(f"  [cyan]Mode:[/cyan] {'parallel' if parallel else 'sequential'}")
    if plan:
        console.print(f"  [dim]First: {gateway_name(base_name, plan[0])}[/dim]")
        console.print(f"  [dim]Last:  {gateway_name(base_name, plan[-1])}[/dim]")


async def _bulk_create_async(
    manager: ApiGatewayManager,
    plan: list[CreateTarget],
    base_name: str,
    description: str | None,
    parallel: bool,
    overrides: RetryOverrides,
    json_output: bool,
) -> None:
    with BulkProgressReporter(console, "Creating API Gateways", len(plan), "Created") as reporter:
        runner = BulkRunner(
            manager,
            AdaptiveRateLimiter(),
            parallel=parallel,
            overrides=overrides,
            on_event=reporter,
        )
        summary = await runner.create_all(plan, base_name, description or None)

    if json_output:
        output_json(summary)
    else:
        render_bulk_summary(summary, console)

    if summary.failed:
        raise typer.Exit(code=1)
