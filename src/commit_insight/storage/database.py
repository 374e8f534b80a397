"""SQLite database holding repositories, commits and file changes."""

import sqlite3
from pathlib import Path
from typing import Optional, Union

from ..logging_config import get_logger

logger = get_logger(__name__)

# Current schema version (bump when tables change).
_SCHEMA_VERSION = 1

MEMORY = ":memory:"


class StatsDB:
    """Manages the commit statistics SQLite database.

    One instance (and connection) per operation; connections are not shared
    across threads.

    Usage::

        with StatsDB("~/.commit-insight/commit_insight.db") as db:
            save_scan(db.conn, repository.id, analyzed)
    """

    def __init__(self, db_path: Union[str, Path]) -> None:
        self.db_path: str = MEMORY if str(db_path) == MEMORY else str(Path(db_path).expanduser())
        self._conn: Optional[sqlite3.Connection] = None

    @property
    def conn(self) -> sqlite3.Connection:
        """Return the active connection. Raises if not connected."""
        if self._conn is None:
            raise RuntimeError("StatsDB is not connected. Use as context manager or call connect().")
        return self._conn

    # ── lifecycle ─────────────────────────────────────────────────

    def connect(self) -> sqlite3.Connection:
        """Open (or create) the database and run migrations."""
        if self.db_path != MEMORY:
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self.db_path, timeout=30)
        if self.db_path != MEMORY:
            conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA foreign_keys=ON")
        conn.row_factory = sqlite3.Row
        self._conn = conn
        self._migrate()
        logger.debug("Stats DB connected at %s", self.db_path)
        return conn

    def close(self) -> None:
        """Close the connection if open."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> "StatsDB":
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # ── migration ─────────────────────────────────────────────────

    def _migrate(self) -> None:
        """Idempotently create all tables and indexes."""
        c = self.conn

        c.execute(
            """
            CREATE TABLE IF NOT EXISTS schema_version (
                version INTEGER NOT NULL
            )
            """
        )
        row = c.execute("SELECT version FROM schema_version").fetchone()
        if row is None:
            c.execute(
                "INSERT INTO schema_version (version) VALUES (?)",
                (_SCHEMA_VERSION,),
            )

        # ── repositories ─────────────────────────────────────────
        c.execute(
            """
            CREATE TABLE IF NOT EXISTS repositories (
                id           INTEGER PRIMARY KEY AUTOINCREMENT,
                path         TEXT    NOT NULL UNIQUE,
                name         TEXT    NOT NULL,
                last_scanned TEXT
            )
            """
        )

        # ── commits ──────────────────────────────────────────────
        c.execute(
            """
            CREATE TABLE IF NOT EXISTS commits (
                id              TEXT    NOT NULL,
                repository_id   INTEGER NOT NULL,
                repository_name TEXT    NOT NULL,
                author          TEXT    NOT NULL,
                email           TEXT    NOT NULL,
                message         TEXT    NOT NULL,
                timestamp       TEXT    NOT NULL,
                additions       INTEGER NOT NULL DEFAULT 0,
                deletions       INTEGER NOT NULL DEFAULT 0,
                files_changed   INTEGER NOT NULL DEFAULT 0,
                branch          TEXT,
                PRIMARY KEY (id, repository_id),
                FOREIGN KEY (repository_id) REFERENCES repositories (id) ON DELETE CASCADE
            )
            """
        )

        # ── file_changes ─────────────────────────────────────────
        c.execute(
            """
            CREATE TABLE IF NOT EXISTS file_changes (
                id            INTEGER PRIMARY KEY AUTOINCREMENT,
                commit_id     TEXT    NOT NULL,
                repository_id INTEGER NOT NULL,
                file_path     TEXT    NOT NULL,
                additions     INTEGER NOT NULL DEFAULT 0,
                deletions     INTEGER NOT NULL DEFAULT 0,
                FOREIGN KEY (commit_id, repository_id)
                    REFERENCES commits (id, repository_id) ON DELETE CASCADE
            )
            """
        )

        # ── indexes ──────────────────────────────────────────────
        c.execute("CREATE INDEX IF NOT EXISTS idx_commits_timestamp ON commits(timestamp)")
        c.execute("CREATE INDEX IF NOT EXISTS idx_commits_author ON commits(author)")
        c.execute("CREATE INDEX IF NOT EXISTS idx_commits_repository ON commits(repository_id)")
        c.execute("CREATE INDEX IF NOT EXISTS idx_file_changes_path ON file_changes(file_path)")
        c.execute("CREATE INDEX IF NOT EXISTS idx_file_changes_commit ON file_changes(commit_id)")

        c.commit()
