"""Helpers shared by CLI commands."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from pantry.auth.keys import public_key_for
from pantry.config import RegistryConfig
from pantry.registry import Registry

console = Console()


def open_registry() -> Registry:
    """Wire a registry from the current environment.

    Effects run inline so queued jobs and analytics are written before the
    command exits.
    """
    return Registry(RegistryConfig(), synchronous_effects=True)


def load_private_key(key_path: Path) -> str:
    """Read a hex Ed25519 private key written by ``pantry keygen``."""
    if not key_path.exists():
        console.print(f"[bold red]Key file not found:[/bold red] {key_path}")
        raise typer.Exit(code=1)
    private_key = key_path.read_text(encoding="utf-8").strip()
    try:
        public_key_for(private_key)
    except ValueError:
        console.print(f"[bold red]Not a valid private key:[/bold red] {key_path}")
        raise typer.Exit(code=1)
    return private_key
