"""Shared helpers for commands that reach several AWS accounts.

Resolves which accounts a bulk command works on, either from the
configuration file (configured mode) or by discovering assumable roles
in the caller's account (discovery mode).
"""

from __future__ import annotations

from enum import Enum

import click
import typer
from rich.console import Console
from rich.markup import escape

from api_spawner.aws.roles import RoleDiscoveryService
from api_spawner.errors import AccountNotFoundError, ConfigError
from api_spawner.models.config import AppConfig
from api_spawner.models.gateway import TargetAccount
from api_spawner.planning import DEFAULT_REGIONS, parse_csv, unique_accounts
from api_spawner.storage.config_store import ConfigStore

DEFAULT_ROLE_PATTERN = "ApiGatewayRole"
MAX_DISCOVERED_ROLES = 50


class AccessMode(str, Enum):
    """How a bulk command reaches AWS accounts."""

    discovery = "discovery"
    configured = "configured"


def load_config_or_exit(console: Console, store: ConfigStore | None = None) -> AppConfig:
    """Load the configuration, printing the error and exiting 1 on failure."""
    try:
        return (store or ConfigStore()).load()
    except ConfigError as exc:
        console.print(f"[bold red]Configuration error:[/bold red] {escape(str(exc))}")
        raise typer.Exit(code=1) from None


def require_accounts(config: AppConfig, console: Console) -> None:
    if not config.accounts:
        console.print('[yellow]No accounts configured. Please run "api-spawner configure" first.[/yellow]')
        raise typer.Exit(code=0)


def configured_targets(
    config: AppConfig,
    aliases: list[str],
    external_id: str | None = None,
) -> list[TargetAccount]:
    """Targets for the given configured aliases.

    Raises:
        AccountNotFoundError: For the first alias missing from the config.
    """
    targets: list[TargetAccount] = []
    for alias in aliases:
        account = config.accounts.get(alias)
        if account is None:
            raise AccountNotFoundError(alias)
        targets.append(
            TargetAccount(
                account_id=account.account_id,
                role_arn=account.role_arn,
                external_id=external_id or account.external_id,
            )
        )
    return unique_accounts(targets)


async def discovered_targets(
    console: Console,
    role_pattern: str | None,
    external_id: str | None,
    *,
    probe: bool,
    discovery: RoleDiscoveryService | None = None,
) -> list[TargetAccount]:
    """Targets from assumable roles in the caller's account.

    With ``probe`` set, roles the current credentials cannot actually
    assume are dropped.
    """
    service = discovery or RoleDiscoveryService()
    with console.status("Discovering assumable roles..."):
        roles = await service.discover_roles(role_pattern, max_roles=MAX_DISCOVERED_ROLES)

    if not roles:
        console.print("[yellow]No assumable roles found matching the pattern[/yellow]")
        console.print("[dim]Try a different role pattern or ensure your credentials have IAM read permissions[/dim]")
        return []
    console.print(f"[green]Found {len(roles)} assumable role(s)[/green]")

    if probe:
        with console.status("Testing role assumptions..."):
            roles = [r for r in roles if await service.can_assume_role(r.role_arn, external_id)]
        console.print(f"[green]Found {len(roles)} testable role(s)[/green]")

    return unique_accounts(
        TargetAccount(account_id=r.account_id, role_arn=r.role_arn, external_id=external_id)
        for r in roles
    )


def prompt_mode(mode: AccessMode | None) -> AccessMode:
    if mode is not None:
        return mode
    value = typer.prompt(
        "Access mode (discovery = find roles by pattern, configured = use configured accounts)",
        default=AccessMode.discovery.value,
        type=click.Choice([m.value for m in AccessMode]),
    )
    return AccessMode(value)


def prompt_regions(regions: str | None, default: tuple[str, ...] = ("us-east-1", "us-west-2")) -> list[str]:
    parsed = parse_csv(regions)
    if parsed:
        return parsed
    available = ", ".join(DEFAULT_REGIONS)
    answer = typer.prompt(f"AWS regions (comma-separated; available: {available})", default=",".join(default))
    return parse_csv(answer)


def prompt_aliases(config: AppConfig, aliases: str | None) -> list[str]:
    parsed = parse_csv(aliases)
    if parsed:
        return parsed
    choices = ", ".join(f"{a} ({c.account_id})" for a, c in config.accounts.items())
    answer = typer.prompt(f"Configured accounts to use (comma-separated; {choices})", default=",".join(config.accounts))
    return parse_csv(answer)
