"""Scan command -- walk a repository and store its commits."""

import typer

from ..scan import ScanMode
from . import app
from ._common import console, get_service, run


@app.command()
def scan(
    ctx: typer.Context,
    repository_id: int = typer.Argument(..., metavar="ID", help="Repository id (see `repos`)"),
    full: bool = typer.Option(
        False,
        "--full",
        help="Re-analyze the entire history without moving the checkpoint",
    ),
    last_24h: bool = typer.Option(
        False,
        "--last-24h",
        help="Analyze only the last 24 hours without moving the checkpoint",
    ),
):
    """
    Scan a repository for new commits.

    By default only commits since the previous incremental scan are
    analyzed.

    [bold cyan]Examples:[/bold cyan]

      commit-insight scan 1

      commit-insight scan 1 --full
    """
    if full and last_24h:
        console.print("[red]Error:[/red] --full and --last-24h are mutually exclusive")
        raise typer.Exit(2)

    mode = ScanMode.FULL if full else ScanMode.LAST_24_HOURS if last_24h else ScanMode.INCREMENTAL
    with console.status(f"Scanning repository {repository_id}..."):
        count = run("scan", get_service(ctx).scan(repository_id, mode))
    console.print(f"[green]Scanned[/green] {count} commit{'s' if count != 1 else ''} ({mode.value})")
