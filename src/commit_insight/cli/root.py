"""Global options shared by every subcommand."""

from pathlib import Path
from typing import Optional

import typer
from rich.markup import escape

from ..config import load_config
from ..exceptions import CommitInsightError
from ..logging_config import setup_logging
from . import app
from ._common import console


@app.callback(invoke_without_command=True, no_args_is_help=True)
def callback(
    ctx: typer.Context,
    db: Optional[Path] = typer.Option(
        None,
        "--db",
        help="Statistics database file (default: ~/.commit-insight/commit_insight.db)",
        dir_okay=False,
    ),
    config: Optional[Path] = typer.Option(
        None,
        "-c",
        "--config",
        help="Configuration file (TOML)",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only log errors"),
    log_file: Optional[Path] = typer.Option(
        None,
        "--log-file",
        help="Also append logs, including scan progress, to this file",
        dir_okay=False,
    ),
    version: bool = typer.Option(False, "--version", help="Show version and exit", is_eager=True),
):
    """
    Commit history analytics for local git repositories.

    [bold cyan]Examples:[/bold cyan]

      commit-insight add ~/src/project

      commit-insight scan 1

      commit-insight stats --since 2024-01-01 --author Alice
    """
    if version:
        from .. import __version__

        console.print(f"[bold cyan]Commit Insight[/bold cyan] version [green]{__version__}[/green]")
        raise typer.Exit(0)

    try:
        settings = load_config(
            config_file=config,
            db_path=str(db) if db is not None else None,
            log_file=str(log_file) if log_file is not None else None,
            verbose=verbose,
            quiet=quiet,
        )
    except CommitInsightError as e:
        console.print(f"[red]Error:[/red] configuration failed: {escape(str(e))}")
        raise typer.Exit(1)

    setup_logging(verbosity=settings.verbosity, log_file=settings.log_file)

    ctx.ensure_object(dict)
    ctx.obj["config"] = settings

    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit(0)
