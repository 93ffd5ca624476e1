"""api-spawner list -- list API Gateways across configured accounts."""

from __future__ import annotations

import asyncio
from typing import Optional

import typer
from rich.markup import escape

from api_spawner.aws.gateway import ApiGatewayManager
from api_spawner.cli.output import console, output_json, render_api_groups
from api_spawner.cli.targets import load_config_or_exit, require_accounts
from api_spawner.errors import ApiSpawnerError
from api_spawner.execution.rate_limiter import AdaptiveRateLimiter
from api_spawner.execution.retry import RetryManager
from api_spawner.planning import parse_csv


def list_apis(
    account: Optional[str] = typer.Option(None, "-a", "--account", help="Only this account alias"),
    region: Optional[str] = typer.Option(None, "-r", "--region", help="Comma-separated regions to scan"),
    json_output: bool = typer.Option(False, "--json", help="Output pure JSON to stdout"),
) -> None:
    """List API Gateways across configured accounts and regions."""
    config = load_config_or_exit(console)
    require_accounts(config, console)
    if account and account not in config.accounts:
        console.print(f'[bold red]Error:[/bold red] Account "{account}" not found in configuration')
        raise typer.Exit(code=1)

    manager = ApiGatewayManager(
        config,
        retry_manager=RetryManager(),
        rate_limiter=AdaptiveRateLimiter(),
    )
    try:
        asyncio.run(_list_async(manager, account, parse_csv(region) or None, json_output))
    except ApiSpawnerError as exc:
        console.print(f"[bold red]Error:[/bold red] {escape(str(exc))}")
        raise typer.Exit(code=1) from None


async def _list_async(
    manager: ApiGatewayManager,
    account: str | None,
    regions: list[str] | None,
    json_output: bool,
) -> None:
    with console.status("Fetching API Gateways..."):
        apis = await manager.list_api_gateways(account, regions)

    if json_output:
        output_json(apis)
        return

    if not apis:
        console.print("[yellow]No API Gateways found.[/yellow]")
        return

    console.print(f"[bold blue]Found {len(apis)} API Gateway(s)[/bold blue]")
    render_api_groups(apis, console)
