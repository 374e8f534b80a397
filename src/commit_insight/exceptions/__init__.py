"""Exception hierarchy for Commit Insight."""

from .base import CommitInsightError
from .config import ConfigurationError, InvalidConfigError
from .operations import OperationError, ScanInProgressError, StoreError
from .repository import (
    CommitNotFoundError,
    DuplicateRepositoryError,
    InvalidRepositoryError,
    RepositoryError,
    RepositoryNotFoundError,
    TraversalError,
)

__all__ = [
    "CommitInsightError",
    "RepositoryError",
    "InvalidRepositoryError",
    "DuplicateRepositoryError",
    "RepositoryNotFoundError",
    "CommitNotFoundError",
    "TraversalError",
    "ScanInProgressError",
    "StoreError",
    "OperationError",
    "ConfigurationError",
    "InvalidConfigError",
]
