"""CLI entry point for the Application Lifecycle Service."""

import os
from typing import Annotated, Optional

import typer
from rich.console import Console

from app_lifecycle.cli.commands import applications, config, health, notifications, withdrawals
from app_lifecycle.cli.config import ENV_PREFIX, reset_config

__version__ = "1.0.0"

app = typer.Typer(
    name="app-lifecycle",
    help="Application Lifecycle Service CLI - review withdrawals and decide applications",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

app.add_typer(health.app, name="health", help="Health check commands")
app.add_typer(withdrawals.app, name="withdrawals", help="Withdrawal requests")
app.add_typer(applications.app, name="applications", help="Application decisions")
app.add_typer(notifications.app, name="notifications", help="Admin notifications")
app.add_typer(config.app, name="config", help="CLI configuration")

console = Console()


def version_callback(value: bool) -> None:
    if value:
        console.print(f"app-lifecycle version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-v",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit",
        ),
    ] = False,
    api_url: Annotated[
        Optional[str],
        typer.Option("--api-url", "-u", envvar=f"{ENV_PREFIX}API_URL", help="API URL"),
    ] = None,
    token: Annotated[
        Optional[str],
        typer.Option("--token", "-t", envvar=f"{ENV_PREFIX}API_TOKEN", help="Admin JWT"),
    ] = None,
    output_format: Annotated[
        Optional[str],
        typer.Option("--output", "-o", help="Output format (table, json)"),
    ] = None,
) -> None:
    """
    Application Lifecycle Service CLI.

    [bold]Quick Start:[/bold]

        app-lifecycle health
        app-lifecycle withdrawals list
        app-lifecycle withdrawals approve <application_id>
        app-lifecycle withdrawals decline <application_id> --note "Course already started"
        app-lifecycle applications set-status <application_id> approved
        app-lifecycle applications for-post P-010125-00
        app-lifecycle notifications list --status pending --unread

    [bold]Environment Variables:[/bold]

        APP_LIFECYCLE_API_URL      - API URL
        APP_LIFECYCLE_API_TOKEN    - Admin JWT
        APP_LIFECYCLE_API_TIMEOUT  - Request timeout (seconds)
    """
    if api_url:
        os.environ[f"{ENV_PREFIX}API_URL"] = api_url
    if token:
        os.environ[f"{ENV_PREFIX}API_TOKEN"] = token
    if output_format:
        os.environ[f"{ENV_PREFIX}OUTPUT_FORMAT"] = output_format

    from app_lifecycle.cli.client import reset_client

    reset_config()
    reset_client()


if __name__ == "__main__":
    app()
