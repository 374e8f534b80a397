"""SQLite persistence for repositories, commits and file changes."""

from .database import StatsDB
from .reader import CommitStore
from .writer import add_repository, remove_repository, save_scan

__all__ = [
    "CommitStore",
    "StatsDB",
    "add_repository",
    "remove_repository",
    "save_scan",
]
