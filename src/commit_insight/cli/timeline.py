"""Timeline command -- list stored commits, newest first."""

import json
from typing import List, Optional

import typer
from rich.markup import escape

from . import app
from ._common import (
    AUTHOR_OPTION,
    EXCLUDE_AUTHOR_OPTION,
    JSON_OPTION,
    REPO_OPTION,
    SINCE_OPTION,
    UNTIL_OPTION,
    build_filter,
    console,
    format_time,
    get_service,
    run,
)


@app.command()
def timeline(
    ctx: typer.Context,
    since: Optional[str] = SINCE_OPTION,
    until: Optional[str] = UNTIL_OPTION,
    author: Optional[str] = AUTHOR_OPTION,
    exclude_author: Optional[List[str]] = EXCLUDE_AUTHOR_OPTION,
    repo: Optional[int] = REPO_OPTION,
    limit: int = typer.Option(
        50,
        "--limit",
        "-n",
        help="Maximum number of commits to list",
        min=1,
        max=1000,
    ),
    json_output: bool = JSON_OPTION,
):
    """
    List stored commits, newest first.

    [bold cyan]Examples:[/bold cyan]

      commit-insight timeline

      commit-insight timeline --author Alice --limit 20
    """
    time_filter = build_filter(since, until, author, exclude_author, repo)
    commits = run("timeline", get_service(ctx).get_commit_timeline(time_filter, limit=limit))

    if json_output:
        print(
            json.dumps(
                [
                    {
                        "id": c.id,
                        "repository_id": c.repository_id,
                        "repository": c.repository_name,
                        "author": c.author_name,
                        "email": c.author_email,
                        "message": c.message,
                        "timestamp": c.timestamp.isoformat(),
                        "additions": c.additions,
                        "deletions": c.deletions,
                        "files_changed": c.files_changed,
                        "branch": c.branch,
                    }
                    for c in commits
                ],
                indent=2,
            )
        )
        return

    if not commits:
        console.print("[yellow]No commits match.[/yellow]")
        return

    from rich.table import Table

    table = Table(title="Timeline", show_lines=False, pad_edge=True)
    table.add_column("Commit", style="cyan")
    table.add_column("Date", style="green")
    table.add_column("Repository")
    table.add_column("Branch", style="magenta")
    table.add_column("Author")
    table.add_column("+/-", justify="right")
    table.add_column("Message")
    for c in commits:
        table.add_row(
            c.short_id,
            format_time(c.timestamp),
            c.repository_name,
            c.branch or "-",
            escape(c.author_name),
            f"[green]+{c.additions}[/green]/[red]-{c.deletions}[/red]",
            escape(c.summary),
        )

    console.print()
    console.print(table)
    console.print()
