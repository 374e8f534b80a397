"""Operation-level exceptions: scan guard, persistence, wrapped failures."""

from .base import CommitInsightError


class ScanInProgressError(CommitInsightError):
    """Raised when a scan is requested while another scan is running."""

    def __init__(self) -> None:
        super().__init__("A scan is already in progress, try again when it finishes")


class StoreError(CommitInsightError):
    """Raised when a persistence operation fails."""

    def __init__(self, operation: str, reason: str):
        super().__init__(
            f"Store failure during {operation}",
            details={"operation": operation, "reason": reason},
        )
        self.operation = operation
        self.reason = reason


class OperationError(CommitInsightError):
    """Raised when an operation fails for a reason with no narrower type."""

    def __init__(self, operation: str, reason: str):
        super().__init__(
            f"{operation} failed",
            details={"operation": operation, "reason": reason},
        )
        self.operation = operation
        self.reason = reason
