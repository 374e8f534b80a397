"""Scan orchestration and the single-scan guard."""

from .coordinator import ScanCoordinator, default_coordinator
from .orchestrator import ScanMode, ScanOrchestrator, ScanResult

__all__ = [
    "ScanCoordinator",
    "ScanMode",
    "ScanOrchestrator",
    "ScanResult",
    "default_coordinator",
]
