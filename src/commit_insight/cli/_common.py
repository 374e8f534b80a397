"""Shared CLI helpers."""

import asyncio
from datetime import datetime, time, timezone
from typing import Awaitable, Optional, TypeVar

import typer
from rich.console import Console
from rich.markup import escape

from ..api import CommitInsight
from ..config import InsightConfig
from ..exceptions import CommitInsightError, OperationError
from ..stats import TimeFilter

console = Console()

T = TypeVar("T")

# ── shared filter options ─────────────────────────────────────────

SINCE_OPTION = typer.Option(None, "--since", help="Only commits on or after this ISO date/time")
UNTIL_OPTION = typer.Option(None, "--until", help="Only commits on or before this ISO date/time")
AUTHOR_OPTION = typer.Option(None, "--author", "-a", help="Only commits by this author")
EXCLUDE_AUTHOR_OPTION = typer.Option(
    None, "--exclude-author", "-x", help="Skip commits by this author (repeatable)"
)
REPO_OPTION = typer.Option(None, "--repo", "-r", help="Only commits from this repository id")
JSON_OPTION = typer.Option(False, "--json", help="Output in machine-readable JSON format")


def get_config(ctx: typer.Context) -> InsightConfig:
    return ctx.obj["config"]


def get_service(ctx: typer.Context) -> CommitInsight:
    return CommitInsight(get_config(ctx))


def parse_date(value: Optional[str], end_of_day: bool = False) -> Optional[datetime]:
    """Parse an ISO date or date-time given on the command line.

    Naive values are local time. A bare date used as an upper bound
    covers the whole day.
    """
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        raise typer.BadParameter(f"not an ISO date: {value!r}")
    if end_of_day and len(value) == 10:
        parsed = datetime.combine(parsed.date(), time(23, 59, 59))
    return parsed.astimezone(timezone.utc)


def build_filter(
    since: Optional[str],
    until: Optional[str],
    author: Optional[str],
    exclude_authors: Optional[list[str]],
    repo: Optional[int],
) -> TimeFilter:
    return TimeFilter(
        start_date=parse_date(since),
        end_date=parse_date(until, end_of_day=True),
        author=author,
        exclude_authors=frozenset(exclude_authors or ()),
        repository_id=repo,
    )


def run(operation: str, awaitable: Awaitable[T]) -> T:
    """Run one service call, reducing failures to a single error line."""
    try:
        return asyncio.run(awaitable)
    except CommitInsightError as e:
        console.print(f"[red]Error:[/red] {operation} failed: {escape(describe_error(e))}")
        raise typer.Exit(1)
    except KeyboardInterrupt:
        console.print(f"\n[yellow]{operation} interrupted[/yellow]")
        raise typer.Exit(130)


def describe_error(error: CommitInsightError) -> str:
    """One-line description of an error without its operation prefix."""
    reason = getattr(error, "reason", None)
    if isinstance(error, OperationError):
        return reason or error.message
    if reason and reason not in error.message:
        return f"{error.message} ({reason})"
    return error.message


def format_time(value: Optional[datetime]) -> str:
    if value is None:
        return "-"
    return value.astimezone().strftime("%Y-%m-%d %H:%M")
