"""Commit analysis pipeline: repository access, diffs, branch attribution, walking."""

from .branches import BranchAttributor, BranchClaim
from .diff import DiffCollector, DiffResult, fold_patch
from .source import (
    BranchRef,
    GitRepositorySource,
    NumstatEntry,
    RawCommit,
    RepositorySource,
    is_repository,
)
from .urls import commit_web_url
from .walker import CommitWalker

__all__ = [
    "RepositorySource",
    "GitRepositorySource",
    "BranchRef",
    "RawCommit",
    "NumstatEntry",
    "is_repository",
    "DiffCollector",
    "DiffResult",
    "fold_patch",
    "BranchAttributor",
    "BranchClaim",
    "CommitWalker",
    "commit_web_url",
]
