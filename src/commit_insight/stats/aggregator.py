"""Compute every statistics view from the stored commits.

Each view is one SQL query sharing the same filter predicate. The views are
read without a surrounding transaction: a scan committing between two
queries may show up in some views and not others.
"""

from __future__ import annotations

import sqlite3
from typing import Optional

from ..logging_config import get_logger
from ..timestamps import parse_timestamp
from .filters import Predicate, TimeFilter, build_predicate
from .models import (
    AuthorActivity,
    ChangeStats,
    CommitDensity,
    CommitFrequency,
    CommitSizeBucket,
    DailyStats,
    EfficiencyPoint,
    HotFile,
    HourlyStats,
    MessageWord,
    Statistics,
    WeeklyStats,
)
from .words import message_words

logger = get_logger(__name__)

DAILY_LIMIT = 30
HOT_FILE_LIMIT = 20
MESSAGE_SAMPLE = 1000

# (name, min_lines, max_lines) in display order
_SIZE_BUCKETS = (
    ("small", 0, 10),
    ("medium", 11, 100),
    ("large", 101, 500),
    ("huge", 501, None),
)


class StatisticsAggregator:
    """Read-only aggregate queries over the ``commits`` and ``file_changes`` tables.

    Parameters
    ----------
    conn:
        An open ``sqlite3.Connection`` with ``row_factory = sqlite3.Row``.
    use_localtime:
        Group hour-of-day and weekday in the local time zone rather than UTC.
        Calendar dates are always UTC.
    """

    def __init__(self, conn: sqlite3.Connection, use_localtime: bool = True):
        self.conn = conn
        self._tz = ", 'localtime'" if use_localtime else ""

    def aggregate(self, time_filter: Optional[TimeFilter] = None) -> Statistics:
        p = build_predicate(time_filter)
        stats = Statistics(
            totals=self.totals(p),
            hourly=self.hourly(p),
            daily=self.daily(p),
            weekly=self.weekly(p),
            authors=self.by_author(p),
            repositories=self.by_repository(p),
            commit_density=self.commit_density(p),
            author_activity=self.author_activity(p),
            commit_frequency=self.commit_frequency(p),
            commit_sizes=self.commit_sizes(p),
            efficiency=self.efficiency(p),
            hot_files=self.hot_files(time_filter),
            message_words=self.message_words(p),
        )
        logger.debug("Aggregated statistics over %d commits", stats.totals.commits)
        return stats

    def _hour(self) -> str:
        return f"CAST(strftime('%H', timestamp{self._tz}) AS INTEGER)"

    def _weekday(self) -> str:
        return f"CAST(strftime('%w', timestamp{self._tz}) AS INTEGER)"

    # ── change sums ───────────────────────────────────────────────

    def totals(self, p: Predicate) -> ChangeStats:
        row = self.conn.execute(
            f"""
            SELECT COALESCE(SUM(additions), 0) AS additions,
                   COALESCE(SUM(deletions), 0) AS deletions,
                   COUNT(*) AS commits
            FROM commits {p.where}
            """,
            p.params,
        ).fetchone()
        return ChangeStats(row["additions"], row["deletions"], row["commits"])

    def hourly(self, p: Predicate) -> list[HourlyStats]:
        rows = self.conn.execute(
            f"""
            SELECT {self._hour()} AS hour,
                   SUM(additions) AS additions, SUM(deletions) AS deletions,
                   COUNT(*) AS commits
            FROM commits {p.where}
            GROUP BY hour ORDER BY hour
            """,
            p.params,
        ).fetchall()
        return [HourlyStats(r["additions"], r["deletions"], r["commits"], hour=r["hour"]) for r in rows]

    def daily(self, p: Predicate) -> list[DailyStats]:
        """The most recent dates, newest first."""
        rows = self.conn.execute(
            f"""
            SELECT DATE(timestamp) AS date,
                   SUM(additions) AS additions, SUM(deletions) AS deletions,
                   COUNT(*) AS commits
            FROM commits {p.where}
            GROUP BY date ORDER BY date DESC
            LIMIT ?
            """,
            (*p.params, DAILY_LIMIT),
        ).fetchall()
        return [DailyStats(r["additions"], r["deletions"], r["commits"], date=r["date"]) for r in rows]

    def weekly(self, p: Predicate) -> list[WeeklyStats]:
        rows = self.conn.execute(
            f"""
            SELECT {self._weekday()} AS weekday,
                   SUM(additions) AS additions, SUM(deletions) AS deletions,
                   COUNT(*) AS commits
            FROM commits {p.where}
            GROUP BY weekday ORDER BY weekday
            """,
            p.params,
        ).fetchall()
        return [WeeklyStats(r["additions"], r["deletions"], r["commits"], weekday=r["weekday"]) for r in rows]

    def _grouped(self, column: str, p: Predicate) -> dict[str, ChangeStats]:
        rows = self.conn.execute(
            f"""
            SELECT {column} AS name,
                   SUM(additions) AS additions, SUM(deletions) AS deletions,
                   COUNT(*) AS commits
            FROM commits {p.where}
            GROUP BY {column}
            ORDER BY SUM(additions) + SUM(deletions) DESC, {column}
            """,
            p.params,
        ).fetchall()
        return {r["name"]: ChangeStats(r["additions"], r["deletions"], r["commits"]) for r in rows}

    def by_author(self, p: Predicate) -> dict[str, ChangeStats]:
        return self._grouped("author", p)

    def by_repository(self, p: Predicate) -> dict[str, ChangeStats]:
        return self._grouped("repository_name", p)

    # ── activity shape ────────────────────────────────────────────

    def commit_density(self, p: Predicate) -> list[CommitDensity]:
        rows = self.conn.execute(
            f"""
            SELECT {self._hour()} AS hour, {self._weekday()} AS weekday,
                   COUNT(*) AS commits
            FROM commits {p.where}
            GROUP BY hour, weekday ORDER BY weekday, hour
            """,
            p.params,
        ).fetchall()
        return [CommitDensity(r["hour"], r["weekday"], r["commits"]) for r in rows]

    def author_activity(self, p: Predicate) -> list[AuthorActivity]:
        rows = self.conn.execute(
            f"""
            SELECT author, DATE(timestamp) AS date, COUNT(*) AS commits,
                   SUM(additions) AS additions, SUM(deletions) AS deletions
            FROM commits {p.where}
            GROUP BY author, date
            ORDER BY date, commits DESC, author
            """,
            p.params,
        ).fetchall()
        return [
            AuthorActivity(r["author"], r["date"], r["commits"], r["additions"], r["deletions"])
            for r in rows
        ]

    def commit_frequency(self, p: Predicate) -> list[CommitFrequency]:
        rows = self.conn.execute(
            f"""
            SELECT DATE(timestamp) AS date, COUNT(*) AS commits
            FROM commits {p.where}
            GROUP BY date ORDER BY date
            """,
            p.params,
        ).fetchall()
        return [CommitFrequency(r["date"], r["commits"]) for r in rows]

    def commit_sizes(self, p: Predicate) -> list[CommitSizeBucket]:
        """Observed size buckets in small/medium/large/huge order."""
        cases = " ".join(
            f"WHEN additions + deletions <= {high} THEN '{name}'"
            for name, _, high in _SIZE_BUCKETS
            if high is not None
        )
        rows = self.conn.execute(
            f"""
            SELECT CASE {cases} ELSE 'huge' END AS size_range, COUNT(*) AS commits
            FROM commits {p.where}
            GROUP BY size_range
            """,
            p.params,
        ).fetchall()
        counts = {r["size_range"]: r["commits"] for r in rows}
        return [
            CommitSizeBucket(name, counts[name], low, high)
            for name, low, high in _SIZE_BUCKETS
            if name in counts
        ]

    def efficiency(self, p: Predicate) -> list[EfficiencyPoint]:
        rows = self.conn.execute(
            f"""
            SELECT DATE(timestamp) AS date,
                   SUM(additions) AS additions, SUM(deletions) AS deletions
            FROM commits {p.where}
            GROUP BY date ORDER BY date
            """,
            p.params,
        ).fetchall()
        points = []
        for r in rows:
            total = r["additions"] + r["deletions"]
            ratio = r["additions"] / total if total else 0.5
            points.append(EfficiencyPoint(r["date"], ratio, total))
        return points

    # ── content ───────────────────────────────────────────────────

    def hot_files(self, time_filter: Optional[TimeFilter]) -> list[HotFile]:
        """Most frequently changed files; the filter applies through the commit join."""
        p = build_predicate(time_filter, alias="c")
        rows = self.conn.execute(
            f"""
            SELECT fc.file_path AS file_path,
                   COUNT(*) AS change_count,
                   SUM(fc.additions) AS total_additions,
                   SUM(fc.deletions) AS total_deletions,
                   MAX(c.timestamp) AS last_modified
            FROM file_changes fc
            JOIN commits c
              ON c.id = fc.commit_id AND c.repository_id = fc.repository_id
            {p.where}
            GROUP BY fc.file_path
            ORDER BY change_count DESC, fc.file_path
            LIMIT ?
            """,
            (*p.params, HOT_FILE_LIMIT),
        ).fetchall()
        return [
            HotFile(
                r["file_path"],
                r["change_count"],
                r["total_additions"],
                r["total_deletions"],
                parse_timestamp(r["last_modified"]),
            )
            for r in rows
        ]

    def message_words(self, p: Predicate) -> list[MessageWord]:
        rows = self.conn.execute(
            f"""
            SELECT message FROM commits {p.where}
            ORDER BY timestamp DESC
            LIMIT ?
            """,
            (*p.params, MESSAGE_SAMPLE),
        ).fetchall()
        return message_words(r["message"] for r in rows)
