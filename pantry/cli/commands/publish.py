"""``pantry publish`` and ``pantry retract``: signed requests run in-process.

The request is signed client-side exactly as a remote client would sign
it, then handed to the uploads controller, so the full intake gate runs.
A publish signs the digests of its category and tarball parts.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel

from pantry.api.uploads import ApiResponse
from pantry.auth.signature import sign_request
from pantry.cli.session import load_private_key, open_registry
from pantry.intake.presence import CATEGORY_FIELD, TARBALL_FIELD
from pantry.models.requests import InboundRequest, UploadRequest

console = Console()

COOKBOOKS_PATH = "/api/v1/cookbooks"


def _signed(
    method: str, path: str, body: bytes, username: str, private_key: str, **fields: object
) -> dict[str, object]:
    headers = sign_request(
        method=method, path=path, body=body, username=username, private_key=private_key
    )
    return {"method": method, "path": path, "headers": headers, "body": body, **fields}


def _print_failure(response: ApiResponse) -> None:
    if response.body is None:
        console.print(f"[bold red]HTTP {response.status}[/bold red]")
    else:
        console.print(
            f"[bold red]HTTP {response.status} {response.body.get('error_code', '')}[/bold red]"
        )
        for message in response.body.get("error_messages", []):
            console.print(f"  [red]- {message}[/red]")
    raise typer.Exit(code=1)


def publish_cmd(
    tarball: Path = typer.Argument(..., exists=True, dir_okay=False, help="Cookbook tarball."),
    category: str = typer.Option(..., "--category", "-c", help="Category name."),
    user: str = typer.Option(..., "--user", "-u", help="Publishing username."),
    key: Path = typer.Option(Path("pantry.key"), "--key", "-k", help="Private key file."),
) -> None:
    """Publish a cookbook version."""
    private_key = load_private_key(key)
    upload = UploadRequest(category_name=category.strip(), tarball=tarball.read_bytes())

    with open_registry() as registry:
        request = InboundRequest(
            **_signed(
                "POST",
                COOKBOOKS_PATH,
                upload.canonical_body(),
                user,
                private_key,
                form={CATEGORY_FIELD: upload.category_name, TARBALL_FIELD: upload.tarball},
                base_url=registry.config.base_url,
            )
        )
        response = registry.controller.create(request)

    if not response.ok:
        _print_failure(response)

    body = response.body or {}
    console.print(
        Panel(
            "\n".join([
                f"[bold green]Published {body.get('version')}[/bold green]",
                "",
                f"[bold]Cookbook:[/bold] {body.get('cookbook')}",
                f"[bold]File:[/bold]     {body.get('file')}",
            ]),
            title="[bold]Publish[/bold]",
            border_style="green",
        )
    )


def retract_cmd(
    name: str = typer.Argument(..., help="Cookbook to delete."),
    user: str = typer.Option(..., "--user", "-u", help="Requesting username."),
    key: Path = typer.Option(Path("pantry.key"), "--key", "-k", help="Private key file."),
) -> None:
    """Delete a cookbook and every version of it."""
    private_key = load_private_key(key)
    path = f"{COOKBOOKS_PATH}/{name}"

    with open_registry() as registry:
        request = InboundRequest(
            **_signed("DELETE", path, b"", user, private_key, base_url=registry.config.base_url)
        )
        response = registry.controller.destroy(request, name)

    if not response.ok:
        _print_failure(response)
    console.print(f"[bold green]Deleted[/bold green] {name}")
