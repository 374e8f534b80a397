"""Repository-related exceptions: registration, lookup, traversal."""

from pathlib import Path
from typing import Optional, Union

from .base import CommitInsightError


class RepositoryError(CommitInsightError):
    """Base class for repository-related errors."""

    pass


class InvalidRepositoryError(RepositoryError):
    """Raised when a path is not a git repository root or cannot be opened."""

    def __init__(self, path: Union[str, Path], reason: str):
        super().__init__(
            f"Not a valid git repository: {path}",
            details={"path": str(path), "reason": reason},
        )
        self.path = str(path)
        self.reason = reason


class DuplicateRepositoryError(RepositoryError):
    """Raised when registering a path that is already registered."""

    def __init__(self, path: Union[str, Path]):
        super().__init__(f"Repository already registered: {path}", details={"path": str(path)})
        self.path = str(path)


class RepositoryNotFoundError(RepositoryError):
    """Raised when a repository id is not registered."""

    def __init__(self, repository_id: int):
        super().__init__(
            f"Repository not found: {repository_id}",
            details={"repository_id": str(repository_id)},
        )
        self.repository_id = repository_id


class CommitNotFoundError(RepositoryError):
    """Raised when a commit id is unknown or malformed."""

    def __init__(self, commit_id: str, repository: Optional[str] = None, reason: str = "unknown commit"):
        details = {"commit_id": commit_id, "reason": reason}
        if repository:
            details["repository"] = repository
        super().__init__(f"Commit not found: {commit_id}", details=details)
        self.commit_id = commit_id
        self.repository = repository
        self.reason = reason


class TraversalError(RepositoryError):
    """Raised when reading the repository fails during a walk or diff."""

    def __init__(self, operation: str, reason: str, repository: Optional[str] = None):
        details = {"operation": operation, "reason": reason}
        if repository:
            details["repository"] = repository
        super().__init__(f"Repository read failed during {operation}", details=details)
        self.operation = operation
        self.reason = reason
        self.repository = repository
