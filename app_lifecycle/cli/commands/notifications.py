"""Admin notification commands."""

from typing import Annotated, Optional

import typer

from app_lifecycle.cli.client import APIError, get_client
from app_lifecycle.cli.output import print_error, print_json, print_notifications, wants_json

app = typer.Typer(help="Admin notifications")


@app.command("list")
def list_notifications(
    status: Annotated[
        Optional[str],
        typer.Option("--status", "-s", help="Filter by status (pending, approved, declined)"),
    ] = None,
    unread: Annotated[
        bool,
        typer.Option("--unread", "-u", help="Only unread notifications"),
    ] = False,
) -> None:
    """
    List admin notifications, newest first.
    """
    client = get_client()

    try:
        data = client.list_notifications(status=status, unread=True if unread else None)
    except APIError as e:
        print_error(f"Failed to list notifications: {e.message}", e.details)
        raise typer.Exit(1)

    if wants_json():
        print_json(data)
    else:
        print_notifications(data.get("notifications", []))
