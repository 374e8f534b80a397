"""Run one scan: walk a repository and persist what was found."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, Optional

from ..config import InsightConfig
from ..git import BranchAttributor, CommitWalker, DiffCollector, GitRepositorySource, RepositorySource
from ..logging_config import get_logger
from ..models import Repository
from ..storage import CommitStore, StatsDB, save_scan
from ..timestamps import utc_now
from .coordinator import ScanCoordinator, default_coordinator

logger = get_logger(__name__)

SourceFactory = Callable[[str], RepositorySource]
Clock = Callable[[], datetime]


class ScanMode(str, Enum):
    """How far back a scan walks and whether it moves the checkpoint.

    - INCREMENTAL: since the stored checkpoint (everything if none); advances it.
    - FULL: entire history; checkpoint untouched.
    - LAST_24_HOURS: the last day regardless of checkpoint; checkpoint untouched.
    """

    INCREMENTAL = "incremental"
    FULL = "full"
    LAST_24_HOURS = "last-24h"


@dataclass
class ScanResult:
    repository: Repository
    mode: ScanMode
    commits: int
    file_changes: int
    since: Optional[datetime]
    checkpoint: Optional[datetime]  # set only when the scan advanced it
    stored: int = 0  # commits held for the repository afterwards


class ScanOrchestrator:
    """Walk, attribute, diff and persist one repository under the scan guard."""

    def __init__(
        self,
        config: InsightConfig,
        coordinator: Optional[ScanCoordinator] = None,
        source_factory: Optional[SourceFactory] = None,
        clock: Optional[Clock] = None,
    ):
        self.config = config
        self.coordinator = coordinator or default_coordinator()
        self.source_factory = source_factory or self._open_source
        self.clock = clock or utc_now

    def _open_source(self, path: str) -> RepositorySource:
        return GitRepositorySource(path, timeout=self.config.git_timeout_seconds)

    def walker(self, source: RepositorySource, repository: Repository) -> CommitWalker:
        attributor = BranchAttributor(
            source,
            strategy=self.config.branch_strategy,
            max_index_entries=self.config.branch_index_max_entries,
            head_depth=self.config.head_search_depth,
            branch_depth=self.config.branch_search_depth,
        )
        return CommitWalker(
            source,
            repository,
            attributor=attributor,
            collector=DiffCollector(source, ignore_whitespace=self.config.ignore_whitespace),
            collect_file_changes=self.config.collect_file_changes,
        )

    def since(self, repository: Repository, mode: ScanMode, now: datetime) -> Optional[datetime]:
        if mode is ScanMode.FULL:
            return None
        if mode is ScanMode.LAST_24_HOURS:
            return now - timedelta(hours=24)
        return repository.last_scanned

    def scan(self, repository_id: int, mode: ScanMode = ScanMode.INCREMENTAL) -> ScanResult:
        """Scan one repository. Raises ScanInProgressError if another scan runs."""
        mode = ScanMode(mode)
        with self.coordinator.claim():
            # The start time, not the finish time, becomes the checkpoint
            started = self.clock()
            with StatsDB(self.config.database_file) as db:
                repository = CommitStore(db.conn).get_repository(repository_id)
                since = self.since(repository, mode, started)
                logger.info(
                    "Scanning %s (id=%d, mode=%s, since=%s)",
                    repository.name,
                    repository.id,
                    mode.value,
                    since.isoformat() if since else "beginning",
                )

                source = self.source_factory(repository.path)
                analyzed = list(self.walker(source, repository).walk(since))

                checkpoint = started if mode is ScanMode.INCREMENTAL else None
                count = save_scan(db.conn, repository.id, analyzed, checkpoint)
                stored = CommitStore(db.conn).count_commits(repository.id)

        file_changes = sum(len(a.file_changes) for a in analyzed)
        logger.info(
            "Scanned %s: %d commits, %d file changes (%d stored)",
            repository.name,
            count,
            file_changes,
            stored,
        )
        if checkpoint is not None:
            logger.debug("Checkpoint for %s moved to %s", repository.name, checkpoint.isoformat())
        return ScanResult(repository, mode, count, file_changes, since, checkpoint, stored)
