"""Read-only queries for repositories and stored commits."""

import re
import sqlite3
from typing import Optional

from ..exceptions import CommitNotFoundError, RepositoryNotFoundError
from ..models import Commit, FileChange, Repository
from ..stats.filters import TimeFilter, build_predicate
from ..timestamps import parse_timestamp

_COMMIT_PREFIX_RE = re.compile(r"^[0-9a-f]{1,40}$")

_COMMIT_COLUMNS = """
    id, repository_id, repository_name, author, email, message,
    timestamp, additions, deletions, files_changed, branch
"""


def _repository(row: sqlite3.Row) -> Repository:
    return Repository(
        id=row["id"],
        path=row["path"],
        name=row["name"],
        last_scanned=parse_timestamp(row["last_scanned"]),
    )


def _commit(row: sqlite3.Row) -> Commit:
    return Commit(
        id=row["id"],
        repository_id=row["repository_id"],
        repository_name=row["repository_name"],
        author_name=row["author"],
        author_email=row["email"],
        message=row["message"],
        timestamp=parse_timestamp(row["timestamp"]),
        additions=row["additions"],
        deletions=row["deletions"],
        files_changed=row["files_changed"],
        branch=row["branch"],
    )


class CommitStore:
    """Read-only queries against the statistics database.

    Parameters
    ----------
    conn:
        An open ``sqlite3.Connection`` with ``row_factory = sqlite3.Row``
        (as returned by ``StatsDB.connect()``).
    """

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    # ── repositories ──────────────────────────────────────────────

    def list_repositories(self) -> list[Repository]:
        """All registered repositories, ordered by name."""
        rows = self.conn.execute(
            "SELECT id, path, name, last_scanned FROM repositories ORDER BY name, id"
        ).fetchall()
        return [_repository(r) for r in rows]

    def get_repository(self, repository_id: int) -> Repository:
        row = self.conn.execute(
            "SELECT id, path, name, last_scanned FROM repositories WHERE id = ?",
            (repository_id,),
        ).fetchone()
        if row is None:
            raise RepositoryNotFoundError(repository_id)
        return _repository(row)

    # ── commits ───────────────────────────────────────────────────

    def commit_timeline(self, time_filter: Optional[TimeFilter] = None, limit: int = 1000) -> list[Commit]:
        """Matching commits, newest first, at most ``limit`` of them."""
        predicate = build_predicate(time_filter)
        rows = self.conn.execute(
            f"""
            SELECT {_COMMIT_COLUMNS}
            FROM commits
            {predicate.where}
            ORDER BY timestamp DESC, id
            LIMIT ?
            """,
            (*predicate.params, limit),
        ).fetchall()
        return [_commit(r) for r in rows]

    def get_commit(self, repository_id: int, commit_id: str) -> Commit:
        """A stored commit by full or abbreviated id. Raises CommitNotFoundError."""
        prefix = (commit_id or "").lower()
        if not _COMMIT_PREFIX_RE.match(prefix):
            raise CommitNotFoundError(commit_id, repository=str(repository_id), reason="malformed commit identifier")
        rows = self.conn.execute(
            f"""
            SELECT {_COMMIT_COLUMNS} FROM commits
            WHERE repository_id = ? AND id >= ? AND id <= ?
            ORDER BY id
            LIMIT 2
            """,
            (repository_id, prefix, prefix + "g"),
        ).fetchall()
        if not rows:
            raise CommitNotFoundError(commit_id, repository=str(repository_id))
        if len(rows) > 1:
            raise CommitNotFoundError(commit_id, repository=str(repository_id), reason="ambiguous commit prefix")
        return _commit(rows[0])

    def file_changes(self, repository_id: int, commit_id: str) -> list[FileChange]:
        """Stored per-file counts for one commit, in insertion order."""
        rows = self.conn.execute(
            """
            SELECT file_path, additions, deletions
            FROM file_changes
            WHERE repository_id = ? AND commit_id = ?
            ORDER BY id
            """,
            (repository_id, commit_id),
        ).fetchall()
        return [FileChange(path=r["file_path"], additions=r["additions"], deletions=r["deletions"]) for r in rows]

    def count_commits(self, repository_id: int) -> int:
        row = self.conn.execute(
            "SELECT COUNT(*) FROM commits WHERE repository_id = ?", (repository_id,)
        ).fetchone()
        return row[0]
