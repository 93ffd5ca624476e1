"""api-spawner configure / list-accounts -- manage configured AWS accounts."""

from __future__ import annotations

from typing import Optional

import typer
from pydantic import ValidationError

from api_spawner.cli.output import console, render_accounts
from api_spawner.cli.targets import load_config_or_exit
from api_spawner.models.config import DEFAULT_SESSION_NAME, AccountConfig
from api_spawner.storage.config_store import ConfigStore


def _prompt_account(
    alias: str | None,
    account_id: str | None,
    role_arn: str | None,
    external_id: str | None,
    session_name: str | None,
) -> tuple[str, AccountConfig]:
    """Collect account fields, prompting for anything missing, until valid."""
    while True:
        alias = alias or typer.prompt("Account alias (e.g., prod, staging, dev)")
        if len(alias.strip()) < 2:
            console.print("[red]Alias must be at least 2 characters[/red]")
            alias = None
            continue

        account_id = account_id or typer.prompt("AWS Account ID")
        role_arn = role_arn or typer.prompt("IAM Role ARN for AssumeRole")
        if external_id is None:
            external_id = typer.prompt("External ID (optional)", default="", show_default=False)
        session_name = session_name or typer.prompt("Session name", default=DEFAULT_SESSION_NAME)

        try:
            return alias.strip(), AccountConfig(
                account_id=account_id,
                role_arn=role_arn,
                external_id=external_id or None,
                session_name=session_name,
            )
        except ValidationError as exc:
            for err in exc.errors():
                field = err["loc"][0] if err["loc"] else "account"
                console.print(f"[red]{field}: {err['msg']}[/red]")
                if field == "account_id":
                    account_id = None
                elif field == "role_arn":
                    role_arn = None


def configure(
    alias: Optional[str] = typer.Option(None, "--alias", help="Account alias"),
    account_id: Optional[str] = typer.Option(None, "--account-id", help="12-digit AWS account ID"),
    role_arn: Optional[str] = typer.Option(None, "--role-arn", help="IAM role ARN to assume"),
    external_id: Optional[str] = typer.Option(None, "--external-id", help="External ID for AssumeRole"),
    session_name: Optional[str] = typer.Option(None, "--session-name", help="STS session name"),
    remove: Optional[str] = typer.Option(None, "--remove", help="Remove the account with this alias"),
) -> None:
    """Configure AWS accounts for API Gateway management."""
    store = ConfigStore()
    load_config_or_exit(console, store)

    if remove:
        if store.remove_account(remove):
            console.print(f'[green]Account "{remove}" removed.[/green]')
        else:
            console.print(f'[yellow]Account "{remove}" is not configured.[/yellow]')
        return

    interactive = not (alias and account_id and role_arn)

    while True:
        name, account = _prompt_account(alias, account_id, role_arn, external_id, session_name)
        store.upsert_account(name, account)

        console.print(f'\n[bold green]Account "{name}" configured successfully![/bold green]')
        console.print(f"  [cyan]Account ID:[/cyan] {account.account_id}")
        console.print(f"  [cyan]Role ARN:[/cyan] {account.role_arn}")
        if account.external_id:
            console.print(f"  [cyan]External ID:[/cyan] {account.external_id}")
        console.print(f"  [cyan]Session Name:[/cyan] {account.session_name}")

        if not interactive or not typer.confirm("Would you like to add another account?", default=False):
            break
        alias = account_id = role_arn = external_id = session_name = None


def list_accounts() -> None:
    """List configured AWS accounts."""
    config = load_config_or_exit(console)
    if not config.accounts:
        console.print("[yellow]No configured accounts found.[/yellow]")
        console.print('[cyan]Run "api-spawner configure" to add accounts.[/cyan]')
        return

    console.print("[bold blue]Configured AWS Accounts[/bold blue]")
    render_accounts(config, console)
    console.print(f"[blue]Total: {len(config.accounts)} account(s) configured[/blue]")
    console.print("[dim]Use these aliases with the --account-aliases option in bulk commands[/dim]")
