"""Withdrawal request commands."""

from typing import Annotated, Optional

import typer

from app_lifecycle.cli.client import APIError, get_client
from app_lifecycle.cli.output import (
    print_application_summary,
    print_error,
    print_json,
    print_success,
    print_withdrawal_requests,
    wants_json,
)

app = typer.Typer(help="Review and decide withdrawal requests")


@app.command("list")
def list_requests() -> None:
    """
    List pending withdrawal requests, most recent first.
    """
    client = get_client()

    try:
        data = client.list_withdrawal_requests()
    except APIError as e:
        print_error(f"Failed to list withdrawal requests: {e.message}", e.details)
        raise typer.Exit(1)

    if wants_json():
        print_json(data)
    else:
        print_withdrawal_requests(data.get("requests", []))


@app.command("approve")
def approve(
    application_id: Annotated[str, typer.Argument(help="Application with a pending request")],
) -> None:
    """
    Approve a withdrawal: the application becomes withdrawn and the candidate
    leaves the post's applicants.
    """
    client = get_client()

    try:
        data = client.approve_withdrawal(application_id)
    except APIError as e:
        print_error(f"Failed to approve withdrawal: {e.message}", e.details)
        raise typer.Exit(1)

    if wants_json():
        print_json(data)
        return
    print_success(data.get("message", "Withdrawal approved"))
    print_application_summary(data.get("application", {}))


@app.command("decline")
def decline(
    application_id: Annotated[str, typer.Argument(help="Application with a pending request")],
    note: Annotated[
        Optional[str],
        typer.Option("--note", "-n", help="Note stored on the admin notification"),
    ] = None,
) -> None:
    """
    Decline a withdrawal: the application returns to its previous status.
    """
    client = get_client()

    try:
        data = client.decline_withdrawal(application_id, note)
    except APIError as e:
        print_error(f"Failed to decline withdrawal: {e.message}", e.details)
        raise typer.Exit(1)

    if wants_json():
        print_json(data)
        return
    print_success(data.get("message", "Withdrawal declined"))
    print_application_summary(data.get("application", {}))
