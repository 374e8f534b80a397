"""Repository registration commands: add, remove, repos."""

import json
from dataclasses import asdict
from pathlib import Path

import typer

from ..models import Repository
from . import app
from ._common import JSON_OPTION, console, format_time, get_service, run


@app.command()
def add(
    ctx: typer.Context,
    path: Path = typer.Argument(..., help="Repository root (a directory with git metadata)"),
):
    """
    Register a local git repository for scanning.

    [bold cyan]Examples:[/bold cyan]

      commit-insight add .

      commit-insight add ~/src/project
    """
    repository = run("add repository", get_service(ctx).add_repository(path))
    console.print(
        f"[green]Added[/green] [bold]{repository.name}[/bold] "
        f"(id {repository.id}) at {repository.path}"
    )
    console.print(f"Run [bold]commit-insight scan {repository.id}[/bold] to collect its history.")


@app.command()
def remove(
    ctx: typer.Context,
    repository_id: int = typer.Argument(..., metavar="ID", help="Repository id (see `repos`)"),
):
    """
    Remove a repository and all of its stored commits.
    """
    run("remove repository", get_service(ctx).remove_repository(repository_id))
    console.print(f"[green]Removed[/green] repository {repository_id}")


@app.command()
def repos(
    ctx: typer.Context,
    json_output: bool = JSON_OPTION,
):
    """
    List registered repositories.
    """
    repositories = run("list repositories", get_service(ctx).list_repositories())

    if json_output:
        print(json.dumps([_repository_dict(r) for r in repositories], indent=2))
        return

    if not repositories:
        console.print(
            "[yellow]No repositories registered.[/yellow] "
            "Run [bold]commit-insight add PATH[/bold] first."
        )
        return

    from rich.table import Table

    table = Table(title="Repositories", show_lines=False, pad_edge=True)
    table.add_column("ID", style="bold", justify="right")
    table.add_column("Name", style="cyan")
    table.add_column("Path")
    table.add_column("Last scanned", style="green")
    for r in repositories:
        table.add_row(str(r.id), r.name, r.path, format_time(r.last_scanned))

    console.print()
    console.print(table)
    console.print()


def _repository_dict(repository: Repository) -> dict:
    data = asdict(repository)
    if repository.last_scanned is not None:
        data["last_scanned"] = repository.last_scanned.isoformat()
    return data
