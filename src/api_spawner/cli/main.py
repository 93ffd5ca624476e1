"""api-spawner CLI entry point."""

from typing import Optional

import typer

from api_spawner import __version__
from api_spawner.cli.bulk_create_cmd import bulk_create
from api_spawner.cli.bulk_delete_cmd import bulk_delete
from api_spawner.cli.configure_cmd import configure, list_accounts
from api_spawner.cli.create_cmd import create
from api_spawner.cli.delete_cmd import delete
from api_spawner.cli.list_cmd import list_apis
from api_spawner.cli.version_cmd import version as version_cmd
from api_spawner.log import LOG_LEVEL_ENV, configure_logging

app = typer.Typer(
    name="api-spawner",
    help="Manage AWS API Gateways across multiple accounts and regions",
    no_args_is_help=True,
)

# Register subcommands
app.command()(configure)
app.command(name="list-accounts")(list_accounts)
app.command()(create)
app.command(name="list")(list_apis)
app.command()(delete)
app.command(name="bulk-create")(bulk_create)
app.command(name="bulk-delete")(bulk_delete)
app.command(name="version")(version_cmd)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"api-spawner {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        envvar=LOG_LEVEL_ENV,
        help="Log level (DEBUG, INFO, WARNING, ERROR).",
    ),
) -> None:
    """Manage AWS API Gateways across multiple accounts and regions."""
    configure_logging(log_level)
