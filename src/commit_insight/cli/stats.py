"""Stats command -- aggregate views over stored commits."""

import json
from typing import List, Optional

import typer
from rich.markup import escape

from ..stats import Statistics
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

_WEEKDAYS = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")


@app.command()
def stats(
    ctx: typer.Context,
    since: Optional[str] = SINCE_OPTION,
    until: Optional[str] = UNTIL_OPTION,
    author: Optional[str] = AUTHOR_OPTION,
    exclude_author: Optional[List[str]] = EXCLUDE_AUTHOR_OPTION,
    repo: Optional[int] = REPO_OPTION,
    json_output: bool = JSON_OPTION,
):
    """
    Show commit statistics for the stored history.

    [bold cyan]Examples:[/bold cyan]

      commit-insight stats

      commit-insight stats --since 2024-01-01 --until 2024-03-31

      commit-insight stats --repo 1 --exclude-author dependabot --json
    """
    time_filter = build_filter(since, until, author, exclude_author, repo)
    result = run("statistics", get_service(ctx).get_statistics(time_filter))

    if json_output:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        _output_rich(result)


def _output_rich(result: Statistics) -> None:
    """Human-readable Rich output."""
    from rich.table import Table

    totals = result.totals
    console.print()
    if totals.commits == 0:
        console.print("[yellow]No commits match.[/yellow]")
        console.print()
        return

    console.print(
        f"[bold]{totals.commits}[/bold] commits  "
        f"[green]+{totals.additions}[/green]  [red]-{totals.deletions}[/red]"
    )
    console.print()

    authors = Table(title="Authors", pad_edge=True)
    authors.add_column("Author", style="cyan")
    authors.add_column("Commits", justify="right")
    authors.add_column("Added", justify="right", style="green")
    authors.add_column("Deleted", justify="right", style="red")
    for name, s in list(result.authors.items())[:15]:
        authors.add_row(escape(name), str(s.commits), str(s.additions), str(s.deletions))
    console.print(authors)

    if len(result.repositories) > 1:
        repositories = Table(title="Repositories", pad_edge=True)
        repositories.add_column("Repository", style="cyan")
        repositories.add_column("Commits", justify="right")
        repositories.add_column("Added", justify="right", style="green")
        repositories.add_column("Deleted", justify="right", style="red")
        for name, s in result.repositories.items():
            repositories.add_row(escape(name), str(s.commits), str(s.additions), str(s.deletions))
        console.print(repositories)

    busiest_hour = max(result.hourly, key=lambda h: h.commits)
    busiest_day = max(result.weekly, key=lambda w: w.commits)
    console.print(
        f"Busiest hour: [bold]{busiest_hour.hour:02d}:00[/bold] ({busiest_hour.commits} commits)  "
        f"Busiest weekday: [bold]{_WEEKDAYS[busiest_day.weekday]}[/bold] ({busiest_day.commits} commits)"
    )

    sizes = result.size_counts()
    console.print("Commit sizes: " + "  ".join(f"{name} {count}" for name, count in sizes.items()))
    console.print()

    if result.hot_files:
        hot = Table(title="Hot files", pad_edge=True)
        hot.add_column("File", style="cyan")
        hot.add_column("Changes", justify="right")
        hot.add_column("+/-", justify="right")
        hot.add_column("Last modified", style="green")
        for f in result.hot_files:
            hot.add_row(
                escape(f.file_path),
                str(f.change_count),
                f"+{f.total_additions}/-{f.total_deletions}",
                format_time(f.last_modified),
            )
        console.print(hot)

    if result.message_words:
        words = ", ".join(f"{escape(w.word)} ({w.count})" for w in result.message_words[:15])
        console.print(f"[bold]Common words:[/bold] {words}")
    console.print()
