"""Output formatting utilities for CLI."""

import json
from datetime import datetime
from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from app_lifecycle.cli.config import get_config

console = Console()
error_console = Console(stderr=True)

STATUS_COLORS = {
    "pending": "yellow",
    "approved": "green",
    "accepted": "green",
    "declined": "red",
    "rejected": "red",
    "withdrawal-requested": "magenta",
    "withdrawn": "dim",
    "completed": "blue",
    "healthy": "green",
    "degraded": "yellow",
    "unhealthy": "red",
    "ready": "green",
    "not_ready": "red",
    "alive": "green",
}


def wants_json() -> bool:
    return get_config().output_format == "json"


def format_timestamp(ts: str | datetime | None) -> str:
    """Format a timestamp for display."""
    if ts is None:
        return "-"
    if isinstance(ts, str):
        try:
            ts = datetime.fromisoformat(ts.replace("Z", "+00:00"))
        except ValueError:
            return ts
    return ts.strftime("%Y-%m-%d %H:%M:%S")


def format_status(status: str) -> Text:
    return Text(status, style=STATUS_COLORS.get(status.lower(), "white"))


def print_json(data: Any) -> None:
    console.print_json(json.dumps(data, default=str, indent=2))


def print_error(message: str, details: dict | None = None) -> None:
    error_console.print(f"[red]Error:[/red] {message}")
    if details:
        for key, value in details.items():
            error_console.print(f"  [dim]{key}:[/dim] {value}")


def print_success(message: str) -> None:
    console.print(f"[green]✓[/green] {message}")


def print_warning(message: str) -> None:
    console.print(f"[yellow]![/yellow] {message}")


def print_info(message: str) -> None:
    console.print(f"[blue]ℹ[/blue] {message}")


def print_health_status(data: dict, title: str = "Health Status") -> None:
    """Print health status in a formatted panel."""
    if wants_json():
        print_json(data)
        return

    status = data.get("status", "unknown")

    panel_content = Text()
    panel_content.append("Status: ")
    panel_content.append(format_status(status))
    if "timestamp" in data:
        panel_content.append(f"\nTimestamp: {format_timestamp(data['timestamp'])}")
    if "environment" in data:
        panel_content.append(f"\nEnvironment: {data['environment']}")

    border = "green" if status in ("healthy", "ready", "alive") else "red"
    console.print(Panel(panel_content, title=title, border_style=border))

    deps = data.get("dependencies") or data.get("checks")
    if deps:
        table = Table(title="Dependencies", show_header=True)
        table.add_column("Service", style="cyan")
        table.add_column("Status")
        table.add_column("Latency", justify="right")

        if isinstance(deps, dict):
            for name, dep_status in deps.items():
                table.add_row(name, format_status(str(dep_status)), "-")
        else:
            for dep in deps:
                latency = dep.get("latency_ms")
                table.add_row(
                    dep.get("name", "unknown"),
                    format_status(str(dep.get("status", "unknown"))),
                    f"{latency} ms" if latency is not None else "-",
                )
        console.print(table)


def print_applications_table(applications: list[dict], title: str = "Applications") -> None:
    if not applications:
        print_warning("No applications found")
        return

    table = Table(title=title, show_header=True)
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Candidate", max_width=30)
    table.add_column("Role")
    table.add_column("Status")
    table.add_column("Applied")

    for application in applications:
        table.add_row(
            str(application.get("id", "-")),
            str(application.get("candidate_name") or application.get("candidate_id", "-")),
            str(application.get("candidate_role", "-")),
            format_status(application.get("status", "unknown")),
            format_timestamp(application.get("applied_at")),
        )
    console.print(table)


def print_application_summary(application: dict, title: str = "Application") -> None:
    lines = [
        f"[bold]ID:[/bold] {application.get('id', '-')}",
        f"[bold]Post:[/bold] {application.get('post_id', '-')}",
        f"[bold]Candidate:[/bold] {application.get('candidate_name') or application.get('candidate_id', '-')}",
        f"[bold]Status:[/bold] {application.get('status', '-')}",
    ]
    if application.get("decline_reason"):
        lines.append(f"[bold]Decline reason:[/bold] {application['decline_reason']}")
    console.print(Panel("\n".join(lines), title=title, border_style="cyan"))


def print_withdrawal_requests(requests: list[dict]) -> None:
    if not requests:
        print_warning("No pending withdrawal requests")
        return

    table = Table(title="Pending Withdrawal Requests", show_header=True)
    table.add_column("Application", style="cyan", no_wrap=True)
    table.add_column("Candidate", max_width=30)
    table.add_column("Post")
    table.add_column("Status before")
    table.add_column("Requested")
    table.add_column("Note", max_width=40)

    for request in requests:
        application = request.get("application", {})
        post = request.get("post") or {}
        table.add_row(
            str(application.get("id", "-")),
            str(application.get("candidate_name") or application.get("candidate_id", "-")),
            str(post.get("post_id") or application.get("post_id", "-")),
            str(application.get("status_before_withdrawal", "-")),
            format_timestamp(application.get("withdrawal_requested_at")),
            str(application.get("withdrawal_note") or "-"),
        )
    console.print(table)


def print_notifications(notifications: list[dict]) -> None:
    if not notifications:
        print_warning("No notifications")
        return

    table = Table(title="Admin Notifications", show_header=True)
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Type")
    table.add_column("Candidate", max_width=30)
    table.add_column("Status")
    table.add_column("Read")
    table.add_column("Created")

    for notification in notifications:
        table.add_row(
            str(notification.get("id", "-")),
            str(notification.get("type", "-")),
            str(notification.get("candidate_name", "-")),
            format_status(str(notification.get("status", "unknown"))),
            "yes" if notification.get("read") else "no",
            format_timestamp(notification.get("created_at")),
        )
    console.print(table)
