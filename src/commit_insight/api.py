"""Async service facade over scanning, statistics and commit lookups.

Every operation runs its blocking work (git subprocesses, SQLite) on a
worker thread with its own database connection, so concurrent calls do not
block the event loop or share connections.

Example:
    >>> insight = CommitInsight(load_config())
    >>> repo = await insight.add_repository("~/src/project")
    >>> await insight.scan(repo.id)
    >>> stats = await insight.get_statistics(TimeFilter(author="Alice"))
"""

from __future__ import annotations

import asyncio
import sqlite3
from pathlib import Path
from typing import Callable, Optional, TypeVar, Union

from .config import InsightConfig, load_config
from .exceptions import CommitInsightError, InvalidRepositoryError, OperationError, StoreError
from .git import commit_web_url, is_repository
from .logging_config import get_logger
from .models import Commit, CommitDetail, Repository
from .scan import ScanCoordinator, ScanMode, ScanOrchestrator
from .scan.orchestrator import Clock, SourceFactory
from .stats import Statistics, StatisticsAggregator, TimeFilter
from .storage import CommitStore, StatsDB, add_repository, remove_repository

logger = get_logger(__name__)

T = TypeVar("T")


class CommitInsight:
    """The operations exposed to command layers (CLI, UI)."""

    def __init__(
        self,
        config: Optional[InsightConfig] = None,
        coordinator: Optional[ScanCoordinator] = None,
        source_factory: Optional[SourceFactory] = None,
        clock: Optional[Clock] = None,
    ):
        self.config = config or load_config()
        self.orchestrator = ScanOrchestrator(
            self.config,
            coordinator=coordinator,
            source_factory=source_factory,
            clock=clock,
        )

    @property
    def coordinator(self) -> ScanCoordinator:
        return self.orchestrator.coordinator

    def _db(self) -> StatsDB:
        return StatsDB(self.config.database_file)

    async def _call(self, operation: str, func: Callable[..., T], *args, repository_id: Optional[int] = None) -> T:
        """Run ``func`` on a worker thread, wrapping and logging failures."""
        context = f"{operation} (repository {repository_id})" if repository_id is not None else operation
        try:
            return await asyncio.to_thread(func, *args)
        except CommitInsightError as e:
            logger.error("%s failed: %s", context, e)
            raise
        except sqlite3.Error as e:
            logger.exception("%s failed in the store", context)
            raise StoreError(operation, str(e)) from e
        except Exception as e:
            logger.exception("%s failed unexpectedly", context)
            raise OperationError(operation, str(e)) from e

    # ── repositories ──────────────────────────────────────────────

    async def add_repository(self, path: Union[str, Path]) -> Repository:
        """Register a repository root. Fails if invalid or already registered."""
        return await self._call("add repository", self._add_repository, path)

    def _add_repository(self, path: Union[str, Path]) -> Repository:
        resolved = Path(path).expanduser().resolve()
        if not resolved.is_dir():
            raise InvalidRepositoryError(path, "not a directory")
        if not is_repository(resolved):
            raise InvalidRepositoryError(path, "no git metadata found")
        with self._db() as db:
            repository = add_repository(db.conn, str(resolved), resolved.name)
        logger.info("Added repository %s (id=%d)", repository.path, repository.id)
        return repository

    async def remove_repository(self, repository_id: int) -> None:
        """Remove a repository and all of its stored commits."""
        await self._call("remove repository", self._remove_repository, repository_id, repository_id=repository_id)

    def _remove_repository(self, repository_id: int) -> None:
        with self._db() as db:
            remove_repository(db.conn, repository_id)
        logger.info("Removed repository %d", repository_id)

    async def list_repositories(self) -> list[Repository]:
        return await self._call("list repositories", self._list_repositories)

    def _list_repositories(self) -> list[Repository]:
        with self._db() as db:
            return CommitStore(db.conn).list_repositories()

    # ── scanning ──────────────────────────────────────────────────

    async def scan(self, repository_id: int, mode: ScanMode = ScanMode.INCREMENTAL) -> int:
        """Scan a repository and return the number of commits analyzed."""
        result = await self._call("scan", self.orchestrator.scan, repository_id, mode, repository_id=repository_id)
        return result.commits

    # ── queries ───────────────────────────────────────────────────

    async def get_statistics(self, time_filter: Optional[TimeFilter] = None) -> Statistics:
        return await self._call("statistics", self._get_statistics, time_filter)

    def _get_statistics(self, time_filter: Optional[TimeFilter]) -> Statistics:
        with self._db() as db:
            aggregator = StatisticsAggregator(db.conn, use_localtime=self.config.use_localtime)
            return aggregator.aggregate(time_filter)

    async def get_commit_timeline(self, time_filter: Optional[TimeFilter] = None, limit: Optional[int] = None) -> list[Commit]:
        """Matching stored commits, newest first."""
        return await self._call("timeline", self._get_commit_timeline, time_filter, limit)

    def _get_commit_timeline(self, time_filter: Optional[TimeFilter], limit: Optional[int]) -> list[Commit]:
        limit = self.config.timeline_limit if limit is None else min(limit, self.config.timeline_limit)
        with self._db() as db:
            return CommitStore(db.conn).commit_timeline(time_filter, limit=limit)

    async def get_commit_detail(self, repository_id: int, commit_id: str) -> CommitDetail:
        """Read one commit live from its repository, with per-file diff text."""
        return await self._call(
            "commit detail",
            self._get_commit_detail,
            repository_id,
            commit_id,
            repository_id=repository_id,
        )

    def _get_commit_detail(self, repository_id: int, commit_id: str) -> CommitDetail:
        with self._db() as db:
            repository = CommitStore(db.conn).get_repository(repository_id)

        try:
            source = self.orchestrator.source_factory(repository.path)
        except InvalidRepositoryError as e:
            logger.warning("%s is no longer readable (%s); using stored commit", repository.path, e.reason)
            return self._stored_commit_detail(repository_id, commit_id)
        raw = source.read_commit(commit_id)
        analyzed = self.orchestrator.walker(source, repository).analyze(raw, detail=True)
        remote_url = source.remote_url()
        return CommitDetail(
            commit=analyzed.commit,
            file_changes=analyzed.file_changes,
            remote_url=remote_url,
            web_url=commit_web_url(remote_url, raw.id) if remote_url else None,
        )

    def _stored_commit_detail(self, repository_id: int, commit_id: str) -> CommitDetail:
        """Stored counts for a commit whose repository can no longer be read; no diff text."""
        with self._db() as db:
            store = CommitStore(db.conn)
            commit = store.get_commit(repository_id, commit_id)
            file_changes = store.file_changes(repository_id, commit.id)
        return CommitDetail(commit=commit, file_changes=file_changes, live=False)
