"""Walk every branch of a repository and analyze each unique commit."""

from __future__ import annotations

from contextlib import closing
from datetime import datetime, timezone
from typing import Iterator, Optional

from ..logging_config import get_logger
from ..models import AnalyzedCommit, Commit, Repository
from .branches import BranchAttributor
from .diff import DiffCollector
from .source import RawCommit, RepositorySource

logger = get_logger(__name__)


class CommitWalker:
    """Enumerate unique non-merge commits reachable from all local and remote branches.

    Commits come out newest first. Each call to :meth:`walk` starts a fresh
    traversal; the returned iterator is lazy and single-use.
    """

    def __init__(
        self,
        source: RepositorySource,
        repository: Repository,
        attributor: Optional[BranchAttributor] = None,
        collector: Optional[DiffCollector] = None,
        collect_file_changes: bool = True,
    ):
        self.source = source
        self.repository = repository
        self.attributor = attributor or BranchAttributor(source)
        self.collector = collector or DiffCollector(source)
        self.collect_file_changes = collect_file_changes

    def walk(self, since: Optional[datetime] = None) -> Iterator[AnalyzedCommit]:
        """Yield analyzed commits, stopping at the first commit older than ``since``.

        Early exit relies on the traversal being sorted by commit time.
        """
        if since is not None and since.tzinfo is None:
            since = since.replace(tzinfo=timezone.utc)

        tips = [branch.tip for branch in self.source.branches()]
        if not tips:
            logger.info("No branches in %s, nothing to walk", self.repository.path)
            return

        seen: set[str] = set()
        skipped_merges = 0
        with closing(self.source.iter_commits(tips)) as commits:
            for raw in commits:
                if raw.id in seen:
                    continue
                seen.add(raw.id)

                if since is not None and raw.timestamp < since:
                    break

                # Merges are excluded from statistics
                if raw.is_merge:
                    skipped_merges += 1
                    continue

                yield self.analyze(raw)

        logger.debug(
            "Walked %d commits in %s (%d merges skipped)",
            len(seen),
            self.repository.name,
            skipped_merges,
        )

    def analyze(self, raw: RawCommit, detail: Optional[bool] = None) -> AnalyzedCommit:
        """Attribute and diff one commit against its first parent."""
        if detail is None:
            detail = self.collect_file_changes
        diff = self.collector.diff(raw.id, raw.first_parent, detail=detail)
        commit = Commit(
            id=raw.id,
            repository_id=self.repository.id,
            repository_name=self.repository.name,
            author_name=raw.author_name or "Unknown",
            author_email=raw.author_email or "",
            message=raw.message,
            timestamp=raw.timestamp.astimezone(timezone.utc),
            additions=diff.insertions,
            deletions=diff.deletions,
            files_changed=diff.files_changed,
            branch=self.attributor.attribute(raw.id),
        )
        return AnalyzedCommit(commit=commit, file_changes=diff.file_changes)
