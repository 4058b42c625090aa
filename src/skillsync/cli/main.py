import typer
from rich.console import Console
from rich.panel import Panel

from ..domain.errors import ConfigError
from ..session import SessionManager
from .runtime import (
    configure_logging,
    get_profile_store,
    get_session_manager,
    print_status,
    run_operation,
)
from .profile_commands import app as profile_app
from .config_commands import app as config_app

app = typer.Typer()
console = Console()

app.add_typer(profile_app, name="profile", help="View and edit local profile details")
app.add_typer(config_app, name="config", help="Manage SkillSync configuration")


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
):
    """SkillSync account and profile tools."""
    configure_logging(verbose)


def _manager(require_api_key: bool = True) -> SessionManager:
    try:
        return get_session_manager(require_api_key=require_api_key)
    except ConfigError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)


@app.command()
def register(
    email: str = typer.Option(..., prompt=True),
    password: str = typer.Option(..., prompt=True, hide_input=True, confirmation_prompt=True),
    name: str = typer.Option("", help="Display name for the local profile"),
    age: str = typer.Option("", help="Age for the local profile"),
    skills: str = typer.Option("", help="Skills for the local profile"),
):
    """create a new account."""
    manager = _manager()
    if manager.session.is_login_mode:
        manager.toggle_mode()
    manager.set_email_input(email)
    manager.set_password_input(password)

    status = run_operation(
        manager, lambda: manager.register(name=name, age=age, skills=skills), "Creating account"
    )
    print_status(status)


@app.command()
def login(
    email: str = typer.Option(..., prompt=True),
    password: str = typer.Option(..., prompt=True, hide_input=True),
):
    """sign in with email and password."""
    manager = _manager()
    manager.set_email_input(email)
    manager.set_password_input(password)

    status = run_operation(manager, manager.login, "Signing in")
    print_status(status)


@app.command()
def logout():
    """sign out of the current account."""
    manager = _manager(require_api_key=False)
    was_signed_in = manager.session.is_authenticated
    manager.sign_out()

    if was_signed_in:
        console.print("[green]✓[/green] Signed out")
    else:
        console.print("[yellow]Not signed in.[/yellow]")


@app.command("reset-password")
def reset_password(email: str = typer.Option(..., prompt=True)):
    """email a password reset link."""
    manager = _manager()
    manager.set_email_input(email)

    status = run_operation(manager, manager.send_password_reset, "Requesting password reset")
    print_status(status)


@app.command("update-email")
def update_email(new_email: str):
    """change the email address of the signed-in account."""
    manager = _manager()

    status = run_operation(
        manager, lambda: manager.update_identity_email(new_email), "Updating email"
    )
    print_status(status)


@app.command()
def whoami():
    """show the signed-in account and profile summary."""
    manager = _manager(require_api_key=False)
    session = manager.session

    if not session.is_authenticated:
        console.print("[yellow]Not signed in.[/yellow]")
        console.print("\nSign in with: [cyan]skillsync login[/cyan]")
        return

    details = get_profile_store().details
    console.print(Panel(
        f"[bold]Email:[/bold]    [cyan]{session.identity_email}[/cyan]\n"
        f"[bold]Name:[/bold]     {details.name or '-'}\n"
        f"[bold]Skills:[/bold]   {details.skills or '-'}",
        title="Signed in",
        expand=False,
    ))


if __name__ == "__main__":
    app()
