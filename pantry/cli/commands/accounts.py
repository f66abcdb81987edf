"""``pantry add-user``, ``add-category`` and ``add-collaborator``."""

from __future__ import annotations

import typer
from rich.console import Console

from pantry.auth.keys import is_valid_public_key
from pantry.cli.session import open_registry
from pantry.core.store import RecordExistsError

console = Console()


def add_user_cmd(
    username: str = typer.Argument(..., help="Username to register."),
    public_key: str = typer.Option(
        None, "--public-key", "-k", help="Hex Ed25519 public key to link."
    ),
) -> None:
    """Register a user, optionally linking a public key."""
    if public_key is not None and not is_valid_public_key(public_key):
        console.print("[bold red]Not a valid Ed25519 public key.[/bold red]")
        raise typer.Exit(code=1)

    with open_registry() as registry:
        existing = registry.store.find_identity(username)
        if existing is None:
            registry.store.add_user(username, public_key)
            console.print(f"[green]Added user[/green] {username}")
        elif public_key is not None:
            registry.store.set_public_key(username, public_key)
            console.print(f"[green]Linked new public key for[/green] {username}")
        else:
            console.print(f"[yellow]User {username} already exists.[/yellow]")


def add_category_cmd(
    name: str = typer.Argument(..., help="Category name."),
) -> None:
    """Create a category cookbooks can be published into."""
    with open_registry() as registry:
        try:
            registry.store.add_category(name)
        except RecordExistsError:
            console.print(f"[yellow]Category {name} already exists.[/yellow]")
            return
    console.print(f"[green]Added category[/green] {name}")


def add_collaborator_cmd(
    cookbook: str = typer.Argument(..., help="Cookbook name."),
    username: str = typer.Argument(..., help="User to add as collaborator."),
) -> None:
    """Allow another user to publish and retract a cookbook."""
    with open_registry() as registry:
        if registry.store.find_identity(username) is None:
            console.print(f"[bold red]No user named[/bold red] {username}")
            raise typer.Exit(code=1)
        try:
            registry.store.add_collaborator(cookbook, username)
        except KeyError:
            console.print(f"[bold red]No cookbook named[/bold red] {cookbook}")
            raise typer.Exit(code=1)
    console.print(f"[green]{username} now collaborates on[/green] {cookbook}")
