"""shared wiring for CLI commands: building the manager and showing statuses."""
import asyncio
import logging
import typer
from typing import Awaitable, Callable
from rich.console import Console
from rich.logging import RichHandler

from ..config import (
    API_KEY,
    CONFIG_DIR,
    SESSION_FILE,
    get_api_key,
    get_config_value,
    get_provider_timeout,
)
from ..domain.models import Status, StatusKind
from ..identity import FirebaseIdentityProvider
from ..profiles import ProfileStore
from ..session import SessionManager
from ..ui.progress import ProgressManager

console = Console()


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def get_profile_store() -> ProfileStore:
    """get profile store instance."""
    return ProfileStore.open(CONFIG_DIR)


def get_session_manager(require_api_key: bool = True) -> SessionManager:
    """
    get a session manager wired to the configured provider.

    args:
        require_api_key: False for commands that only read or drop the cached
            session (logout, whoami) and never reach the network

    raises:
        ConfigError: if the provider is not configured and a key is required
    """
    api_key = get_api_key() if require_api_key else (get_config_value(API_KEY) or "")
    provider = FirebaseIdentityProvider(api_key, SESSION_FILE)
    manager = SessionManager(provider, get_profile_store(), get_provider_timeout())
    manager.initialize()
    return manager


def run_operation(
    manager: SessionManager,
    operation: Callable[[], Awaitable[Status]],
    description: str,
) -> Status:
    """run one async manager operation to completion behind a spinner."""
    async def perform() -> Status:
        try:
            return await operation()
        finally:
            await manager.provider.aclose()

    with ProgressManager(console).spinner(description):
        return asyncio.run(perform())


def print_status(status: Status) -> None:
    """print a status and exit with code 1 if it is an error."""
    if status.kind == StatusKind.SUCCESS:
        console.print(f"[green]✓[/green] {status.message}")
    elif status.kind == StatusKind.INFO:
        console.print(f"[blue]{status.message}[/blue]")
    else:
        console.print(f"[red]Error:[/red] {status.message}")
        raise typer.Exit(1)
