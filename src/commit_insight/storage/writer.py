"""Write repositories and scanned commits into the statistics database."""

import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional

from ..exceptions import DuplicateRepositoryError, RepositoryNotFoundError
from ..models import AnalyzedCommit, Repository
from ..timestamps import format_timestamp

_UPSERT_COMMIT = """
    INSERT INTO commits (
        id, repository_id, repository_name, author, email, message,
        timestamp, additions, deletions, files_changed, branch
    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
    ON CONFLICT (id, repository_id) DO UPDATE SET
        repository_name = excluded.repository_name,
        author          = excluded.author,
        email           = excluded.email,
        message         = excluded.message,
        timestamp       = excluded.timestamp,
        additions       = excluded.additions,
        deletions       = excluded.deletions,
        files_changed   = excluded.files_changed,
        branch          = excluded.branch
"""


def add_repository(conn: sqlite3.Connection, path: str, name: Optional[str] = None) -> Repository:
    """Register a repository by path. Raises DuplicateRepositoryError if already known."""
    name = name or Path(path).name or path
    try:
        cur = conn.execute(
            "INSERT INTO repositories (path, name) VALUES (?, ?)",
            (path, name),
        )
        conn.commit()
    except sqlite3.IntegrityError as e:
        conn.rollback()
        raise DuplicateRepositoryError(path) from e
    repository_id = cur.lastrowid
    assert repository_id is not None
    return Repository(id=repository_id, path=path, name=name)


def remove_repository(conn: sqlite3.Connection, repository_id: int) -> None:
    """Delete a repository; its commits and file changes go with it."""
    cur = conn.execute("DELETE FROM repositories WHERE id = ?", (repository_id,))
    conn.commit()
    if cur.rowcount == 0:
        raise RepositoryNotFoundError(repository_id)


def _commit_row(analyzed: AnalyzedCommit) -> tuple:
    c = analyzed.commit
    return (
        c.id,
        c.repository_id,
        c.repository_name,
        c.author_name,
        c.author_email,
        c.message,
        format_timestamp(c.timestamp),
        c.additions,
        c.deletions,
        c.files_changed,
        c.branch or None,
    )


def save_scan(
    conn: sqlite3.Connection,
    repository_id: int,
    analyzed_commits: Iterable[AnalyzedCommit],
    checkpoint: Optional[datetime] = None,
) -> int:
    """Persist one scan's commits and file changes.

    All writes happen inside a single transaction: either every commit,
    every file change and the new checkpoint land, or none of them do.
    Re-saving a commit overwrites it in place and replaces its file changes.

    Parameters
    ----------
    conn:
        An open ``sqlite3.Connection`` (from ``StatsDB.connect()``).
    repository_id:
        The repository being scanned.
    analyzed_commits:
        Commits produced by ``CommitWalker.walk``.
    checkpoint:
        New ``last_scanned`` value, or None to leave it untouched. The stored
        checkpoint never moves backwards.

    Returns
    -------
    int
        Number of commits written.
    """
    analyzed = list(analyzed_commits)
    commit_rows = [_commit_row(a) for a in analyzed]
    file_rows = [
        (a.commit.id, repository_id, fc.path, fc.additions, fc.deletions)
        for a in analyzed
        for fc in a.file_changes
    ]

    cur = conn.cursor()
    try:
        cur.execute("BEGIN")

        # ── commits (upsert) ─────────────────────────────────────
        if commit_rows:
            cur.executemany(_UPSERT_COMMIT, commit_rows)

        # ── file_changes (replace per commit) ────────────────────
        if analyzed:
            cur.executemany(
                "DELETE FROM file_changes WHERE commit_id = ? AND repository_id = ?",
                [(a.commit.id, repository_id) for a in analyzed],
            )
        if file_rows:
            cur.executemany(
                """
                INSERT INTO file_changes (commit_id, repository_id, file_path, additions, deletions)
                VALUES (?, ?, ?, ?, ?)
                """,
                file_rows,
            )

        # ── checkpoint ───────────────────────────────────────────
        if checkpoint is not None:
            stamp = format_timestamp(checkpoint)
            cur.execute(
                """
                UPDATE repositories SET last_scanned = ?
                WHERE id = ? AND (last_scanned IS NULL OR last_scanned < ?)
                """,
                (stamp, repository_id, stamp),
            )

        conn.commit()
    except Exception:
        conn.rollback()
        raise

    return len(commit_rows)
