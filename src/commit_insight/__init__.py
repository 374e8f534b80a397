"""
Commit Insight - commit history analytics for local git repositories.

Walks every branch of the registered repositories, records per-commit
change metrics in SQLite, and aggregates them into time-series, author,
repository, file-hotness and commit-message views.
"""

__version__ = "0.3.0"
__author__ = "Naman Agarwal"

from .api import CommitInsight
from .config import InsightConfig, load_config
from .models import Commit, CommitDetail, FileChange, Repository
from .scan import ScanMode
from .stats import Statistics, TimeFilter

__all__ = [
    "CommitInsight",  # Main entry point
    "InsightConfig",
    "load_config",
    "Repository",
    "Commit",
    "CommitDetail",
    "FileChange",
    "ScanMode",
    "Statistics",
    "TimeFilter",
]
