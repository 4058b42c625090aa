import typer
from rich.console import Console
from rich.table import Table

from ..config import (
    API_KEY,
    CONFIG_FILE,
    PROVIDER_TIMEOUT,
    get_config_value,
    get_provider_timeout,
    set_config_value,
)
from ..domain.errors import ConfigError

app = typer.Typer()
console = Console()


@app.command("set-api-key")
def set_api_key(key: str):
    """store the identity provider API key."""
    try:
        set_config_value(API_KEY, key.strip())
    except ConfigError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    console.print(f"[green]✓[/green] API key saved to {CONFIG_FILE}")


@app.command("set-timeout")
def set_timeout(seconds: float):
    """set the timeout for each identity provider request."""
    if seconds <= 0:
        console.print("[red]Error:[/red] timeout must be positive")
        raise typer.Exit(1)
    try:
        set_config_value(PROVIDER_TIMEOUT, str(seconds))
    except ConfigError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    console.print(f"[green]✓[/green] Provider timeout set to {seconds}s")


@app.command("show")
def show_config():
    """show the effective configuration."""
    api_key = get_config_value(API_KEY)
    try:
        timeout = f"{get_provider_timeout()}s"
    except ConfigError as e:
        timeout = f"[red]{e}[/red]"

    table = Table(title="Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="white")
    # only show the tail of the key
    table.add_row(API_KEY, f"...{api_key[-4:]}" if api_key else "[yellow]not set[/yellow]")
    table.add_row(PROVIDER_TIMEOUT, timeout)
    table.add_row("config file", str(CONFIG_FILE), style="dim")

    console.print(table)
