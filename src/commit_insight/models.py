"""Shared data model: repositories, commits and per-file changes."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


@dataclass
class Repository:
    """A registered local repository. Identity is its unique ``path``."""

    id: int
    path: str
    name: str
    last_scanned: Optional[datetime] = None  # UTC, owned by incremental scans


@dataclass
class FileChange:
    """Line counts for one file in one commit.

    ``diff`` holds the accumulated patch text; it is only populated when
    per-file detail is collected and is never persisted.
    """

    path: str
    additions: int = 0
    deletions: int = 0
    diff: str = ""


@dataclass
class Commit:
    """A non-merge commit as stored. Identity is ``(id, repository_id)``."""

    id: str
    repository_id: int
    repository_name: str
    author_name: str
    author_email: str
    message: str
    timestamp: datetime  # UTC
    additions: int = 0
    deletions: int = 0
    files_changed: int = 0
    branch: Optional[str] = None

    @property
    def short_id(self) -> str:
        return self.id[:8]

    @property
    def summary(self) -> str:
        """First line of the commit message."""
        return self.message.strip().splitlines()[0] if self.message.strip() else ""


@dataclass
class AnalyzedCommit:
    """A walked commit together with its per-file breakdown."""

    commit: Commit
    file_changes: list[FileChange] = field(default_factory=list)


@dataclass
class CommitDetail:
    """A commit read live from its repository, including diff text.

    ``live`` is False when the repository could not be read and the stored
    counts were used instead; file changes then carry no diff text.
    """

    commit: Commit
    file_changes: list[FileChange]
    remote_url: Optional[str] = None
    web_url: Optional[str] = None
    live: bool = True
