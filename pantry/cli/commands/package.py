"""``pantry package DIRECTORY``: build an uploadable cookbook tarball."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from pantry.intake.tarball import build_tarball

console = Console()


def package_cmd(
    directory: Path = typer.Argument(
        ..., exists=True, file_okay=False, help="Cookbook directory containing metadata.json."
    ),
    out: Path = typer.Option(
        None, "--out", "-o", help="Output file (default: <name>.tgz)."
    ),
) -> None:
    """Pack DIRECTORY into a gzipped tarball rooted at the directory name."""
    if not (directory / "metadata.json").is_file():
        console.print(f"[bold red]No metadata.json in[/bold red] {directory}")
        raise typer.Exit(code=1)

    root = directory.resolve().name
    files = {
        f"{root}/{path.relative_to(directory).as_posix()}": path.read_bytes()
        for path in sorted(directory.rglob("*"))
        if path.is_file()
    }
    target = out or Path(f"{root}.tgz")
    data = build_tarball(files)
    target.write_bytes(data)
    console.print(f"[green]Packaged[/green] {len(files)} file(s) into {target} ({len(data)} bytes)")
