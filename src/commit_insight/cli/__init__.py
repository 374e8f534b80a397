"""CLI entry point; registers all subcommands."""

import typer

app = typer.Typer(
    name="commit-insight",
    help="Commit Insight - commit history analytics for local git repositories",
    add_completion=False,
    rich_markup_mode="rich",
)


# Import subcommands to register them
from .root import callback as _callback  # noqa: F401, E402
from .repos import add as _add, remove as _remove, repos as _repos  # noqa: F401, E402
from .scan import scan as _scan  # noqa: F401, E402
from .stats import stats as _stats  # noqa: F401, E402
from .timeline import timeline as _timeline  # noqa: F401, E402
from .show import show as _show  # noqa: F401, E402


def main() -> None:
    """Console-script entry point."""
    app()
