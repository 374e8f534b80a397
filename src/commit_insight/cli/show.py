"""Show command -- one commit read live from its repository."""

import json

import typer
from rich.markup import escape

from . import app
from ._common import JSON_OPTION, console, format_time, get_service, run


@app.command()
def show(
    ctx: typer.Context,
    repository_id: int = typer.Argument(..., metavar="REPO_ID", help="Repository id (see `repos`)"),
    commit_id: str = typer.Argument(..., metavar="COMMIT", help="Full or abbreviated commit id"),
    diff: bool = typer.Option(False, "--diff", "-d", help="Print each file's diff"),
    json_output: bool = JSON_OPTION,
):
    """
    Show a commit with its per-file changes.

    [bold cyan]Examples:[/bold cyan]

      commit-insight show 1 3f2a9c1

      commit-insight show 1 3f2a9c1 --diff
    """
    detail = run("commit detail", get_service(ctx).get_commit_detail(repository_id, commit_id))
    commit = detail.commit

    if json_output:
        data = {
            "id": commit.id,
            "repository": commit.repository_name,
            "author": commit.author_name,
            "email": commit.author_email,
            "message": commit.message,
            "timestamp": commit.timestamp.isoformat(),
            "additions": commit.additions,
            "deletions": commit.deletions,
            "files_changed": commit.files_changed,
            "branch": commit.branch,
            "remote_url": detail.remote_url,
            "web_url": detail.web_url,
            "live": detail.live,
            "files": [
                {
                    "path": f.path,
                    "additions": f.additions,
                    "deletions": f.deletions,
                    **({"diff": f.diff} if diff else {}),
                }
                for f in detail.file_changes
            ],
        }
        print(json.dumps(data, indent=2))
        return

    console.print()
    console.print(f"[bold cyan]commit {commit.id}[/bold cyan]")
    console.print(f"Author: {escape(commit.author_name)} <{escape(commit.author_email)}>")
    console.print(f"Date:   {format_time(commit.timestamp)}")
    if commit.branch:
        console.print(f"Branch: [magenta]{escape(commit.branch)}[/magenta]")
    if detail.web_url:
        console.print(f"Link:   {detail.web_url}")
    if not detail.live:
        console.print("[yellow]Repository unavailable; showing stored counts without diffs[/yellow]")
    console.print()
    console.print(escape(commit.message.rstrip()))
    console.print()

    for f in detail.file_changes:
        console.print(f"[green]+{f.additions}[/green] [red]-{f.deletions}[/red]  {escape(f.path)}")
        if diff and f.diff:
            console.print(f.diff.rstrip("\n"), markup=False, highlight=False)
    console.print()
