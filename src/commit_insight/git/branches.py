"""Attribute commits to the most representative branch.

Two strategies trade accuracy against cost:

- ``index``: walk the full ancestry of every local and remote branch once and
  keep a commit -> branches map. Every reachable commit is attributed.
- ``bounded``: only look at HEAD and local branch tips plus a capped
  ancestry window below each (``head_depth`` from HEAD, ``branch_depth``
  from other branches). Commits deeper than the window stay unattributed.

The index strategy falls back to the bounded one when the index would grow
past ``max_index_entries``.
"""

from __future__ import annotations

from contextlib import closing
from dataclasses import dataclass
from typing import Optional

from ..logging_config import get_logger
from .source import BranchRef, RepositorySource

logger = get_logger(__name__)

DEFAULT_BRANCH_NAMES = frozenset({"main", "master", "develop", "dev"})

STRATEGY_INDEX = "index"
STRATEGY_BOUNDED = "bounded"


@dataclass(frozen=True)
class BranchClaim:
    """A branch whose history contains a commit."""

    name: str  # as recorded; remote names keep their prefix
    remote: bool

    @property
    def clean_name(self) -> str:
        if self.remote and "/" in self.name:
            return self.name.split("/", 1)[1]
        return self.name

    @property
    def is_default(self) -> bool:
        return self.clean_name in DEFAULT_BRANCH_NAMES


class _IndexTooLarge(Exception):
    pass


class BranchAttributor:
    """Map commit ids to a branch name, deterministically for a fixed ref set."""

    def __init__(
        self,
        source: RepositorySource,
        strategy: str = STRATEGY_INDEX,
        max_index_entries: int = 2_000_000,
        head_depth: int = 1000,
        branch_depth: int = 100,
    ):
        if strategy not in (STRATEGY_INDEX, STRATEGY_BOUNDED):
            raise ValueError(f"Unknown branch attribution strategy: {strategy}")
        self.source = source
        self.strategy = strategy
        self.max_index_entries = max_index_entries
        self.head_depth = head_depth
        self.branch_depth = branch_depth

        self._branches: Optional[list[BranchRef]] = None
        self._head_loaded = False
        self._head_branch: Optional[str] = None
        self._head_commit: Optional[str] = None
        self._index: Optional[dict[str, list[BranchClaim]]] = None
        self._windows: dict[tuple[str, int], frozenset[str]] = {}

    # ── shared state ──────────────────────────────────────────────

    @property
    def branches(self) -> list[BranchRef]:
        if self._branches is None:
            self._branches = self.source.branches()
        return self._branches

    def _load_head(self) -> None:
        if not self._head_loaded:
            self._head_branch = self.source.head_branch()
            self._head_commit = self.source.head_commit()
            self._head_loaded = True

    @property
    def head_branch(self) -> Optional[str]:
        self._load_head()
        return self._head_branch

    # ── public API ────────────────────────────────────────────────

    def attribute(self, commit_id: str) -> str:
        """Return the branch name for ``commit_id``, or ``""`` when none is found."""
        if self.strategy == STRATEGY_INDEX:
            index = self.build()
            # build() may have switched to the bounded strategy
            if self.strategy == STRATEGY_INDEX:
                return self.pick(index.get(commit_id, []))
        return self._bounded_search(commit_id)

    def build(self) -> dict[str, list[BranchClaim]]:
        """Build the commit -> branches index once; no-op for the bounded strategy."""
        if self.strategy != STRATEGY_INDEX:
            return {}
        if self._index is None:
            try:
                self._index = self._build_index()
            except _IndexTooLarge:
                logger.warning(
                    "Branch index for %s exceeds %d entries; using bounded search "
                    "(commits deeper than %d/%d below branch tips stay unattributed)",
                    self.source.name,
                    self.max_index_entries,
                    self.head_depth,
                    self.branch_depth,
                )
                self.strategy = STRATEGY_BOUNDED
                return {}
        return self._index

    def pick(self, claims: list[BranchClaim]) -> str:
        """Choose among the branches claiming a commit.

        Priority: current HEAD branch, local non-default, remote non-default,
        local default, remote default, then the first recorded branch.
        Remote names are reported without their remote prefix.
        """
        if not claims:
            return ""
        head = self.head_branch
        if head and any(not c.remote and c.name == head for c in claims):
            return head
        for remote, default in ((False, False), (True, False), (False, True), (True, True)):
            for claim in claims:
                if claim.remote == remote and claim.is_default == default:
                    return claim.clean_name
        return claims[0].clean_name

    # ── index strategy ────────────────────────────────────────────

    def _build_index(self) -> dict[str, list[BranchClaim]]:
        index: dict[str, list[BranchClaim]] = {}
        entries = 0

        for branch in (b for b in self.branches if not b.remote):
            claim = BranchClaim(branch.name, remote=False)
            with closing(self.source.ancestry(branch.tip)) as ids:
                for commit_id in ids:
                    index.setdefault(commit_id, []).append(claim)
                    entries += 1
                    if entries > self.max_index_entries:
                        raise _IndexTooLarge()

        for branch in (b for b in self.branches if b.remote):
            claim = BranchClaim(branch.name, remote=True)
            clean = claim.clean_name
            with closing(self.source.ancestry(branch.tip)) as ids:
                for commit_id in ids:
                    claims = index.setdefault(commit_id, [])
                    # A local branch of the same name already speaks for it
                    if any(not c.remote and c.name == clean for c in claims):
                        continue
                    claims.append(claim)
                    entries += 1
                    if entries > self.max_index_entries:
                        raise _IndexTooLarge()

        logger.debug(
            "Built branch index for %s: %d commits, %d entries, %d branches",
            self.source.name,
            len(index),
            entries,
            len(self.branches),
        )
        return index

    # ── bounded strategy ──────────────────────────────────────────

    def _window(self, tip: str, depth: int) -> frozenset[str]:
        key = (tip, depth)
        if key not in self._windows:
            with closing(self.source.ancestry(tip, limit=depth)) as ids:
                self._windows[key] = frozenset(ids)
        return self._windows[key]

    def _bounded_search(self, commit_id: str) -> str:
        self._load_head()
        head = self._head_branch
        if head and self._head_commit:
            if self._head_commit == commit_id or commit_id in self._window(
                self._head_commit, self.head_depth
            ):
                return head

        for branch in self.branches:
            if branch.remote or branch.name == head:
                continue
            if branch.tip == commit_id or commit_id in self._window(branch.tip, self.branch_depth):
                return branch.name
        return ""
