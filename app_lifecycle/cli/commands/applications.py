"""Application decision commands."""

from typing import Annotated

import typer

from app_lifecycle.cli.client import APIError, get_client
from app_lifecycle.cli.output import (
    print_application_summary,
    print_applications_table,
    print_error,
    print_info,
    print_json,
    print_success,
    wants_json,
)

app = typer.Typer(help="Application decisions")

SETTABLE_STATUSES = ("pending", "approved", "declined", "accepted", "rejected")


@app.command("set-status")
def set_status(
    application_id: Annotated[str, typer.Argument(help="Application ID")],
    status: Annotated[str, typer.Argument(help=f"One of: {', '.join(SETTABLE_STATUSES)}")],
) -> None:
    """
    Set an application's status.

    Approving declines and archives every other pending application for the post.
    """
    if status not in SETTABLE_STATUSES:
        print_error(f"Invalid status: {status}")
        print_info(f"Valid statuses: {', '.join(SETTABLE_STATUSES)}")
        raise typer.Exit(1)

    client = get_client()

    try:
        data = client.set_status(application_id, status)
    except APIError as e:
        print_error(f"Failed to update status: {e.message}", e.details)
        raise typer.Exit(1)

    if wants_json():
        print_json(data)
        return

    print_success(f"Application {application_id} is now {data.get('status', status)}")
    if data.get("auto_declined_count"):
        print_info(f"{data['auto_declined_count']} other pending application(s) auto-declined")
    print_application_summary(data.get("application", {}))


@app.command("for-post")
def for_post(
    post_ref: Annotated[str, typer.Argument(help="Post ObjectId or code, e.g. P-010125-00")],
) -> None:
    """
    List the active applications for a post, earliest first.
    """
    client = get_client()

    try:
        data = client.post_applications(post_ref)
    except APIError as e:
        print_error(f"Failed to list applications: {e.message}", e.details)
        raise typer.Exit(1)

    if wants_json():
        print_json(data)
    else:
        print_applications_table(data.get("applications", []), title=f"Applications for {post_ref}")
