"""Result types for the statistics views."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Optional

SIZE_BUCKETS = ("small", "medium", "large", "huge")


@dataclass
class ChangeStats:
    """Summed line changes and commit count for one group."""

    additions: int = 0
    deletions: int = 0
    commits: int = 0

    @property
    def lines_changed(self) -> int:
        return self.additions + self.deletions


@dataclass
class HourlyStats(ChangeStats):
    hour: int = 0  # 0-23


@dataclass
class DailyStats(ChangeStats):
    date: str = ""  # YYYY-MM-DD


@dataclass
class WeeklyStats(ChangeStats):
    weekday: int = 0  # 0=Sunday .. 6=Saturday


@dataclass
class CommitDensity:
    """Commit count for one (hour, weekday) cell."""

    hour: int
    weekday: int
    commits: int


@dataclass
class AuthorActivity:
    author: str
    date: str
    commits: int
    additions: int
    deletions: int


@dataclass
class CommitFrequency:
    date: str
    commits: int


@dataclass
class CommitSizeBucket:
    """Commits whose additions+deletions fall in ``[min_lines, max_lines]``."""

    size_range: str
    commits: int
    min_lines: int
    max_lines: Optional[int]  # None means unbounded


@dataclass
class EfficiencyPoint:
    """Share of added lines among all touched lines on one date."""

    date: str
    efficiency_ratio: float
    total_changes: int


@dataclass
class HotFile:
    file_path: str
    change_count: int
    total_additions: int
    total_deletions: int
    last_modified: Optional[datetime]


@dataclass
class MessageWord:
    word: str
    count: int
    weight: float


@dataclass
class Statistics:
    """Every aggregate view computed for one filter."""

    totals: ChangeStats = field(default_factory=ChangeStats)
    hourly: list[HourlyStats] = field(default_factory=list)
    daily: list[DailyStats] = field(default_factory=list)
    weekly: list[WeeklyStats] = field(default_factory=list)
    authors: dict[str, ChangeStats] = field(default_factory=dict)
    repositories: dict[str, ChangeStats] = field(default_factory=dict)
    commit_density: list[CommitDensity] = field(default_factory=list)
    author_activity: list[AuthorActivity] = field(default_factory=list)
    commit_frequency: list[CommitFrequency] = field(default_factory=list)
    commit_sizes: list[CommitSizeBucket] = field(default_factory=list)
    efficiency: list[EfficiencyPoint] = field(default_factory=list)
    hot_files: list[HotFile] = field(default_factory=list)
    message_words: list[MessageWord] = field(default_factory=list)

    def size_counts(self) -> dict[str, int]:
        """Commit count per size bucket, with absent buckets as zero."""
        counts = {name: 0 for name in SIZE_BUCKETS}
        for bucket in self.commit_sizes:
            counts[bucket.size_range] = bucket.commits
        return counts

    def to_dict(self) -> dict[str, Any]:
        """JSON-serializable representation."""
        data = asdict(self)
        for hot_file in data["hot_files"]:
            if hot_file["last_modified"] is not None:
                hot_file["last_modified"] = hot_file["last_modified"].isoformat()
        return data
