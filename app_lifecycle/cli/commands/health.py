"""Service health commands."""

import httpx
import typer

from app_lifecycle.cli.client import APIError, get_client
from app_lifecycle.cli.output import print_error, print_health_status, print_warning

app = typer.Typer(help="Check the lifecycle service and its dependencies")

# status reported by each probe when everything is fine
PASSING = {"healthy", "ready", "alive"}


@app.callback(invoke_without_command=True)
def health(
    ctx: typer.Context,
    live: bool = typer.Option(False, "--live", "-l", help="Only check that the process answers"),
    ready: bool = typer.Option(False, "--ready", "-r", help="Only check that MongoDB is reachable"),
) -> None:
    """
    Report service health. Exits 1 when the service is unhealthy or unreachable
    and 2 when it runs degraded (Redis or RabbitMQ down).
    """
    if ctx.invoked_subcommand is not None:
        return

    client = get_client()
    if live:
        probe, title = client.health_live, "Liveness"
    elif ready:
        probe, title = client.health_ready, "Readiness"
    else:
        probe, title = client.health, "Health Status"

    try:
        data = probe()
    except APIError as e:
        print_error(f"{title} check failed: {e.message}", e.details)
        raise typer.Exit(1)
    except httpx.HTTPError as e:
        print_error(f"Cannot reach {client.base_url}: {e}")
        raise typer.Exit(1)

    print_health_status(data, title=title)

    status = str(data.get("status", "unknown")).lower()
    if status == "degraded":
        print_warning("Service is running with degraded dependencies")
        raise typer.Exit(2)
    if status not in PASSING:
        raise typer.Exit(1)
