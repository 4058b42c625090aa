import typer
from pathlib import Path
from typing import Optional
from rich.console import Console
from rich.table import Table

from ..domain.errors import ConfigError, ProfileImageError, ValidationError
from ..profiles import ProfileField, validate_age
from .runtime import get_profile_store, get_session_manager, print_status, run_operation

app = typer.Typer()
console = Console()

TEXT_FIELDS = [ProfileField.NAME, ProfileField.AGE, ProfileField.SKILLS, ProfileField.LOCATION]


@app.command("show")
def show_profile():
    """show the locally stored profile."""
    store = get_profile_store()

    if not store.has_profile():
        console.print("[yellow]No local profile yet.[/yellow]")
        console.print("\nCreate one with: [cyan]skillsync profile update --name <name>[/cyan]")
        return

    table = Table(title="Profile")
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="white")

    for field in TEXT_FIELDS:
        table.add_row(field.value, store.get(field) or "")
    table.add_row("image", store.profile_image_ref, style="dim")

    console.print(table)


@app.command("set")
def set_field(field: ProfileField, value: str):
    """set a single profile field."""
    if field == ProfileField.PROFILE_IMAGE:
        console.print("[red]Error:[/red] use [cyan]skillsync profile image <path>[/cyan] to change the image")
        raise typer.Exit(1)

    store = get_profile_store()
    try:
        if field == ProfileField.AGE:
            validate_age(value)
        store.set_field(field, value)
    except ValidationError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    console.print(f"[green]✓[/green] Updated {field.value}")


@app.command("update")
def update_profile(
    name: Optional[str] = typer.Option(None, help="Display name"),
    age: Optional[str] = typer.Option(None, help="Age in years"),
    skills: Optional[str] = typer.Option(None, help="Comma separated skills"),
    location: Optional[str] = typer.Option(None, help="Where you are based"),
    email: Optional[str] = typer.Option(None, help="Also change the account email"),
):
    """
    update several profile fields at once.

    fields that are not given keep their current value. changing the email
    needs a signed-in account and a recent login.
    """
    store = get_profile_store()
    current = store.details
    values = {
        "name": name if name is not None else current.name or "",
        "age": age if age is not None else current.age or "",
        "skills": skills if skills is not None else current.skills or "",
        "location": location if location is not None else current.location or "",
    }

    if email is None:
        try:
            store.update_details(**values)
        except ValidationError as e:
            console.print(f"[red]Error:[/red] {e}")
            raise typer.Exit(1)
        console.print("[green]✓[/green] User details updated successfully.")
        return

    try:
        manager = get_session_manager()
    except ConfigError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    status = run_operation(
        manager, lambda: manager.save_profile_details(email=email, **values), "Saving profile"
    )
    print_status(status)


@app.command("image")
def set_image(path: Path):
    """copy an image file into local storage and use it as the profile picture."""
    store = get_profile_store()
    try:
        ref = store.save_profile_image(path)
    except ProfileImageError as e:
        console.print(f"[red]Error:[/red] Failed to save image: {e}")
        raise typer.Exit(1)

    console.print("[green]✓[/green] Profile image updated successfully.")
    console.print(f"[dim]{ref}[/dim]")
