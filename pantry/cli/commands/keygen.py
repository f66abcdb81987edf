"""``pantry keygen``: create an Ed25519 signing key-pair."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel

from pantry.auth.keys import generate_keypair, key_fingerprint

console = Console()


def keygen_cmd(
    out: Path = typer.Option(
        Path("pantry.key"),
        "--out",
        "-o",
        help="Where to write the private key.",
    ),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing key file."),
) -> None:
    """Generate a key-pair, write the private key and print the public key."""
    if out.exists() and not force:
        console.print(f"[bold red]Refusing to overwrite[/bold red] {out} (use --force).")
        raise typer.Exit(code=1)

    private_key, public_key = generate_keypair()
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(private_key + "\n", encoding="utf-8")
    out.chmod(0o600)

    console.print(
        Panel(
            "\n".join([
                f"[bold]Private key:[/bold] {out}",
                f"[bold]Public key:[/bold]  {public_key}",
                f"[bold]Fingerprint:[/bold] {key_fingerprint(public_key)}",
            ]),
            title="[bold]New signing key[/bold]",
            border_style="green",
        )
    )
