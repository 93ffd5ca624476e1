"""api-spawner create -- create a single API Gateway in a configured account."""

from __future__ import annotations

import asyncio
from typing import Optional

import typer
from botocore.exceptions import BotoCoreError, ClientError
from rich.markup import escape

from api_spawner.aws.gateway import ApiGatewayManager
from api_spawner.cli.output import console
from api_spawner.cli.targets import load_config_or_exit, require_accounts
from api_spawner.errors import ApiSpawnerError
from api_spawner.execution.rate_limiter import AdaptiveRateLimiter, OperationKind
from api_spawner.execution.retry import RetryManager
from api_spawner.models.gateway import CreateApiRequest
from api_spawner.planning import DEFAULT_REGION_CODES

MIN_NAME_LENGTH = 3


def create(
    name: Optional[str] = typer.Option(None, "-n", "--name", help="API Gateway name"),
    region: Optional[str] = typer.Option(None, "-r", "--region", help="AWS region"),
    account: Optional[str] = typer.Option(None, "-a", "--account", help="AWS account alias"),
    description: Optional[str] = typer.Option(None, "-d", "--description", help="API Gateway description"),
) -> None:
    """Create a new API Gateway."""
    config = load_config_or_exit(console)
    require_accounts(config, console)

    account = account or typer.prompt(
        f"AWS account ({', '.join(config.accounts)})",
        default=config.default_account or next(iter(config.accounts)),
    )
    region = region or typer.prompt(
        f"AWS region ({', '.join(DEFAULT_REGION_CODES)})",
        default=config.default_region or DEFAULT_REGION_CODES[0],
    )
    while not name or len(name.strip()) < MIN_NAME_LENGTH:
        if name is not None:
            console.print(f"[red]Name must be at least {MIN_NAME_LENGTH} characters[/red]")
        name = typer.prompt("API Gateway name")
    if description is None:
        description = typer.prompt("API Gateway description (optional)", default="", show_default=False)

    request = CreateApiRequest(
        name=name.strip(),
        region=region,
        account=account,
        description=description or None,
    )
    asyncio.run(_create_async(request, ApiGatewayManager(config)))


async def _create_async(request: CreateApiRequest, manager: ApiGatewayManager) -> None:
    """Create with adaptive retries and print the resulting API details."""
    limiter = AdaptiveRateLimiter()
    options = limiter.get_retry_options(request.account, request.region, OperationKind.create)

    with console.status("Creating API Gateway..."):
        result = await RetryManager().retry(lambda: manager.create_api_gateway(request), options)

    if not result.success:
        error = result.error
        if isinstance(error, (ApiSpawnerError, ClientError, BotoCoreError)):
            console.print(f"[bold red]Error creating API Gateway:[/bold red] {escape(str(error))}")
            raise typer.Exit(code=1)
        assert error is not None
        raise error

    api = result.result
    assert api is not None
    console.print(f'[bold green]API Gateway "{api.name}" created successfully![/bold green]')
    console.print("\n[green]API Gateway Details:[/green]")
    console.print(f"  [cyan]Name:[/cyan] {api.name}")
    console.print(f"  [cyan]ID:[/cyan] {api.id}")
    console.print(f"  [cyan]Region:[/cyan] {api.region}")
    console.print(f"  [cyan]Account:[/cyan] {api.account}")
    console.print(f"  [cyan]URL:[/cyan] {api.url}")
