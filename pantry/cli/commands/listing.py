"""``pantry list``: show every cookbook and its versions."""

from __future__ import annotations

import typer
from rich.console import Console
from rich.table import Table

from pantry.cli.session import open_registry
from pantry.models.cookbooks import version_sort_key

console = Console()


def list_cmd(
    show_urls: bool = typer.Option(False, "--urls", help="Show download URLs."),
) -> None:
    """List published cookbooks from the universe listing."""
    with open_registry() as registry:
        universe = registry.universe()

    if not universe:
        console.print("[dim]No cookbooks published.[/dim]")
        return

    table = Table(title="Cookbooks")
    table.add_column("Name", style="cyan")
    table.add_column("Versions", style="green")
    if show_urls:
        table.add_column("Latest download")

    for name in sorted(universe):
        versions = sorted(universe[name], key=version_sort_key)
        row = [name, ", ".join(versions)]
        if show_urls:
            row.append(universe[name][versions[-1]]["download_url"])
        table.add_row(*row)

    console.print(table)
