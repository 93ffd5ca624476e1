"""api-spawner delete -- delete a single API Gateway by ID."""

from __future__ import annotations

import asyncio
from typing import Optional

import click
import typer
from botocore.exceptions import BotoCoreError, ClientError
from rich.markup import escape

from api_spawner.aws.gateway import ApiGatewayManager
from api_spawner.cli.output import console
from api_spawner.cli.targets import load_config_or_exit, require_accounts
from api_spawner.errors import ApiSpawnerError
from api_spawner.execution.rate_limiter import AdaptiveRateLimiter
from api_spawner.execution.retry import RetryManager
from api_spawner.models.gateway import ApiGatewayInfo


def delete(
    api_id: Optional[str] = typer.Option(None, "-i", "--id", help="API Gateway ID to delete"),
    force: bool = typer.Option(False, "-f", "--force", help="Skip the confirmation prompt"),
) -> None:
    """Delete an API Gateway."""
    config = load_config_or_exit(console)
    require_accounts(config, console)

    manager = ApiGatewayManager(config)
    try:
        asyncio.run(_delete_async(manager, api_id, force))
    except (ApiSpawnerError, ClientError, BotoCoreError) as exc:
        console.print(f"[bold red]Error deleting API Gateway:[/bold red] {escape(str(exc))}")
        raise typer.Exit(code=1) from None


def _choose_api(apis: list[ApiGatewayInfo]) -> ApiGatewayInfo:
    console.print("[bold]Select API Gateway to delete:[/bold]")
    for i, api in enumerate(apis, 1):
        console.print(f"  {i}. {api.name} ({api.id}) - {api.account}/{api.region}")
    choice = typer.prompt("Number", type=click.IntRange(1, len(apis)))
    return apis[choice - 1]


async def _delete_async(manager: ApiGatewayManager, api_id: str | None, force: bool) -> None:
    with console.status("Fetching API Gateways..."):
        apis = await manager.list_api_gateways()

    if api_id:
        target = next((a for a in apis if a.id == api_id), None)
        if target is None:
            console.print(f'[bold red]API Gateway with ID "{api_id}" not found[/bold red]')
            raise typer.Exit(code=1)
    else:
        if not apis:
            console.print("[yellow]No API Gateways found.[/yellow]")
            return
        target = _choose_api(apis)

    if not force and not typer.confirm(
        f'Are you sure you want to delete API Gateway "{target.name}" ({target.id})?',
        default=False,
    ):
        console.print("[yellow]Deletion cancelled.[/yellow]")
        return

    options = AdaptiveRateLimiter().get_delete_retry_options(target.account, target.region)
    with console.status("Deleting API Gateway..."):
        result = await RetryManager().retry(lambda: manager.delete_api_gateway_direct(target), options)

    if not result.success:
        assert result.error is not None
        raise result.error

    console.print(f'[bold green]API Gateway "{target.name}" deleted successfully![/bold green]')
    console.print(f"  [cyan]ID:[/cyan] {target.id}")
    console.print(f"  [cyan]Region:[/cyan] {target.region}")
    console.print(f"  [cyan]Account:[/cyan] {target.account}")
