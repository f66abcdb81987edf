"""Main Typer application: imports and registers all CLI commands.

Entry point: ``pantry`` (configured via pyproject.toml project.scripts).
"""

from __future__ import annotations

import logging

import typer
from rich.console import Console
from rich.logging import RichHandler

from pantry.cli.commands.accounts import add_category_cmd, add_collaborator_cmd, add_user_cmd
from pantry.cli.commands.keygen import keygen_cmd
from pantry.cli.commands.listing import list_cmd
from pantry.cli.commands.package import package_cmd
from pantry.cli.commands.publish import publish_cmd, retract_cmd
from pantry.config import RegistryConfig

app = typer.Typer(
    name="pantry",
    help="Pantry: a signed cookbook registry.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)

# Register subcommands
app.command(name="keygen", help="Generate a signing key-pair.")(keygen_cmd)
app.command(name="add-user", help="Register a user.")(add_user_cmd)
app.command(name="add-category", help="Create a category.")(add_category_cmd)
app.command(name="add-collaborator", help="Add a cookbook collaborator.")(add_collaborator_cmd)
app.command(name="package", help="Build a cookbook tarball.")(package_cmd)
app.command(name="publish", help="Publish a cookbook version.")(publish_cmd)
app.command(name="retract", help="Delete a cookbook.")(retract_cmd)
app.command(name="list", help="List published cookbooks.")(list_cmd)


def configure_logging(level: str | None = None) -> None:
    """Route ``logging`` through Rich at the configured level."""
    logging.basicConfig(
        level=(level or RegistryConfig().log_level).upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[
            RichHandler(console=Console(stderr=True), rich_tracebacks=True, show_path=False)
        ],
        force=True,
    )


@app.callback()
def _root(
    log_level: str = typer.Option(None, "--log-level", help="Override PANTRY_LOG_LEVEL."),
) -> None:
    configure_logging(log_level)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
