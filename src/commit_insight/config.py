"""Configuration loading and management for Commit Insight.

Configuration sources are merged in priority order:
    1. Defaults (defined in InsightConfig)
    2. Global config (~/.commit-insight.toml)
    3. Project config (./commit-insight.toml)
    4. Explicit config file
    5. Environment variables (COMMIT_INSIGHT_* prefix)
    6. CLI overrides (passed as kwargs)

Example:
    >>> config = load_config(verbose=True, branch_strategy="bounded")
    >>> config.verbosity
    'verbose'
    >>> config.branch_strategy
    'bounded'
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal, Optional, Union, get_type_hints

from .exceptions import CommitInsightError, InvalidConfigError

Verbosity = Literal["quiet", "normal", "verbose"]
BranchStrategy = Literal["index", "bounded"]

_ENV_PREFIX = "COMMIT_INSIGHT_"
_VERBOSITIES = ("quiet", "normal", "verbose")
_STRATEGIES = ("index", "bounded")


@dataclass(frozen=True)
class InsightConfig:
    """Configuration for scanning and statistics.

    Attributes:
        Storage:
            db_path: SQLite database file (``~`` is expanded)

        Diff collection:
            ignore_whitespace: Ignore whitespace-only and blank-line changes
            collect_file_changes: Record per-file rows during scans
            git_timeout_seconds: Timeout for short git queries

        Branch attribution:
            branch_strategy: "index" (full commit->branch index) or "bounded"
            branch_index_max_entries: Index size that triggers the bounded fallback
            head_search_depth: Ancestry depth searched from HEAD (bounded)
            branch_search_depth: Ancestry depth searched from other branches (bounded)

        Statistics:
            use_localtime: Group hours/weekdays in local time instead of UTC
            timeline_limit: Maximum commits returned by the timeline

        Output control:
            verbosity: Logging verbosity level
            log_file: Also append log records (INFO and up) to this file
    """

    db_path: str = "~/.commit-insight/commit_insight.db"

    ignore_whitespace: bool = True
    collect_file_changes: bool = True
    git_timeout_seconds: int = 120

    branch_strategy: BranchStrategy = "index"
    branch_index_max_entries: int = 2_000_000
    head_search_depth: int = 1000
    branch_search_depth: int = 100

    use_localtime: bool = True
    timeline_limit: int = 1000

    verbosity: Verbosity = "normal"
    log_file: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if self.branch_strategy not in _STRATEGIES:
            raise InvalidConfigError(
                "branch_strategy", self.branch_strategy, f"must be one of {', '.join(_STRATEGIES)}"
            )
        if self.verbosity not in _VERBOSITIES:
            raise InvalidConfigError(
                "verbosity", self.verbosity, f"must be one of {', '.join(_VERBOSITIES)}"
            )
        if self.git_timeout_seconds < 1:
            raise InvalidConfigError("git_timeout_seconds", self.git_timeout_seconds, "must be at least 1")
        if self.branch_index_max_entries < 1:
            raise InvalidConfigError(
                "branch_index_max_entries", self.branch_index_max_entries, "must be at least 1"
            )
        if self.head_search_depth < 1:
            raise InvalidConfigError("head_search_depth", self.head_search_depth, "must be at least 1")
        if self.branch_search_depth < 1:
            raise InvalidConfigError(
                "branch_search_depth", self.branch_search_depth, "must be at least 1"
            )
        if self.timeline_limit < 1:
            raise InvalidConfigError("timeline_limit", self.timeline_limit, "must be at least 1")
        if not self.db_path:
            raise InvalidConfigError("db_path", self.db_path, "must not be empty")

    @property
    def database_file(self) -> Path:
        """Resolved database path."""
        return Path(self.db_path).expanduser()


def load_config(config_file: Optional[Path] = None, **overrides) -> InsightConfig:
    """Load configuration with auto-discovery and merging.

    Args:
        config_file: Optional explicit config file path
        **overrides: Direct overrides (typically from CLI flags). ``None``
            values are ignored so unset CLI options keep lower-priority values.

    Returns:
        Validated InsightConfig instance

    Raises:
        CommitInsightError: If a config file is invalid or missing
        InvalidConfigError: If a value fails validation
    """
    merged: dict = {}

    global_config = Path.home() / ".commit-insight.toml"
    if global_config.exists():
        try:
            merged.update(_load_toml_file(global_config))
        except Exception as e:
            raise CommitInsightError(f"Invalid global config '{global_config}': {e}")

    project_config = Path.cwd() / "commit-insight.toml"
    if project_config.exists():
        try:
            merged.update(_load_toml_file(project_config))
        except Exception as e:
            raise CommitInsightError(f"Invalid project config '{project_config}': {e}")

    if config_file is not None:
        if not config_file.exists():
            raise CommitInsightError(f"Config file not found: {config_file}")
        try:
            merged.update(_load_toml_file(config_file))
        except Exception as e:
            raise CommitInsightError(f"Invalid config file '{config_file}': {e}")

    merged.update(_load_env_vars())

    # Convert verbosity boolean flags to string
    if "verbose" in overrides:
        if overrides["verbose"]:
            overrides["verbosity"] = "verbose"
        del overrides["verbose"]
    if "quiet" in overrides:
        if overrides["quiet"]:
            overrides["verbosity"] = "quiet"
        del overrides["quiet"]

    merged.update({k: v for k, v in overrides.items() if v is not None})

    try:
        return InsightConfig(**merged)
    except TypeError as e:
        # Unknown field in config
        raise CommitInsightError(f"Invalid configuration: {e}")


def _load_env_vars() -> dict[str, Any]:
    """Load configuration from COMMIT_INSIGHT_* environment variables.

    Every InsightConfig field can be set, e.g. COMMIT_INSIGHT_DB_PATH,
    COMMIT_INSIGHT_BRANCH_STRATEGY, COMMIT_INSIGHT_IGNORE_WHITESPACE.
    """
    type_hints = get_type_hints(InsightConfig)

    result: dict[str, Any] = {}

    for field_name in InsightConfig.__dataclass_fields__:
        env_key = f"{_ENV_PREFIX}{field_name.upper()}"
        env_value = os.environ.get(env_key)

        if env_value is None:
            continue

        type_hint = type_hints.get(field_name)
        if type_hint is None:
            continue

        try:
            parsed = _parse_env_value(env_value, type_hint)
            if parsed is not None:
                result[field_name] = parsed
        except ValueError as e:
            raise CommitInsightError(f"Invalid {env_key}: {e}")

    return result


def _parse_env_value(value: str, type_hint: Any) -> Any:
    """Parse environment variable string to the field's type."""
    origin = getattr(type_hint, "__origin__", None)

    if origin is Union:
        inner = [arg for arg in type_hint.__args__ if arg is not type(None)]
        if len(inner) == 1:
            return _parse_env_value(value, inner[0])
        return None

    if type_hint is bool:
        lower = value.lower()
        if lower in ("true", "1", "yes", "on"):
            return True
        elif lower in ("false", "0", "no", "off"):
            return False
        else:
            raise ValueError(f"expected true/false, got '{value}'")

    if type_hint is int:
        return int(value)

    if type_hint is float:
        return float(value)

    # String (including Literal types like Verbosity)
    if type_hint is str or origin is Literal:
        return value

    return None


def _load_toml_file(path: Path) -> dict:
    """Load TOML file and return parsed dict."""
    try:
        # Python 3.11+ has tomllib in stdlib
        import tomllib
    except ModuleNotFoundError:
        import tomli as tomllib  # type: ignore

    with open(path, "rb") as f:
        return tomllib.load(f)
