"""Configuration commands for the CLI's own settings."""

from typing import Annotated

import typer

from app_lifecycle.cli.config import get_config, get_config_file, reset_config, save_config
from app_lifecycle.cli.output import console, print_error, print_info, print_success

app = typer.Typer(help="CLI configuration")

KEYS = {
    "url": "api_url",
    "token": "api_token",
    "timeout": "api_timeout",
    "output": "output_format",
}


@app.command("show")
def show_config() -> None:
    """
    Show the effective configuration.
    """
    config = get_config()
    config_file = get_config_file()

    console.print(f"[bold]Config file:[/bold] {config_file} ({'present' if config_file.exists() else 'absent'})")
    console.print(f"  API URL:  {config.api_url}")
    console.print(f"  Token:    {'[set]' if config.api_token else '[not set]'}")
    console.print(f"  Timeout:  {config.api_timeout}s")
    console.print(f"  Output:   {config.output_format}")


@app.command("set")
def set_config(
    key: Annotated[str, typer.Argument(help=f"One of: {', '.join(KEYS)}")],
    value: Annotated[str, typer.Argument(help="Value to store")],
) -> None:
    """
    Store a configuration value in the config file.
    """
    field = KEYS.get(key.lower())
    if field is None:
        print_error(f"Unknown configuration key: {key}")
        print_info(f"Valid keys: {', '.join(KEYS)}")
        raise typer.Exit(1)

    if field == "api_timeout" and not value.isdigit():
        print_error("Timeout must be a whole number of seconds")
        raise typer.Exit(1)
    if field == "output_format" and value not in ("table", "json"):
        print_error("Output format must be one of: table, json")
        raise typer.Exit(1)

    save_config(field, value)
    reset_config()
    print_success(f"Set {key} = {'[hidden]' if field == 'api_token' else value}")
