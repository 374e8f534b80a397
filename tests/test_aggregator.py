"""Tests for the statistics aggregator."""

from datetime import datetime, timedelta, timezone

import pytest

from commit_insight.stats import StatisticsAggregator, TimeFilter
from commit_insight.storage import StatsDB, add_repository, save_scan
from fakes import make_commit

# 2024-03-04 is a Monday
MONDAY = datetime(2024, 3, 4, 9, 15, tzinfo=timezone.utc)


def _at(days=0, hours=0):
    return MONDAY + timedelta(days=days, hours=hours)


@pytest.fixture
def seeded(db_path):
    """Two repositories, three authors, commits over three days."""
    with StatsDB(db_path) as db:
        add_repository(db.conn, "/src/web", "web")
        add_repository(db.conn, "/src/api", "api")
        save_scan(
            db.conn,
            1,
            [
                make_commit("w1", 1, "web", "Alice", _at(0), 8, 0, "fix login bug", {"app.py": (8, 0)}),
                make_commit("w2", 1, "web", "Alice", _at(0, 2), 6, 5, "fix logout bug", {"app.py": (6, 5)}),
                make_commit("w3", 1, "web", "Bob", _at(1), 90, 11, "add search page", {"search.py": (90, 11)}),
                make_commit("w4", 1, "web", "bot", _at(1, 1), 0, 0, "bump deps", {}),
            ],
        )
        save_scan(
            db.conn,
            2,
            [
                make_commit("a1", 2, "api", "Alice", _at(2), 400, 100, "rewrite handlers", {"app.py": (400, 100)}),
                make_commit("a2", 2, "api", "Bob", _at(2, 1), 501, 0, "vendor client", {"client.py": (501, 0)}),
            ],
        )
        yield db


def _aggregate(db, time_filter=None):
    return StatisticsAggregator(db.conn, use_localtime=False).aggregate(time_filter or TimeFilter())


class TestTotals:
    def test_totals(self, seeded):
        """Totals sum additions, deletions and commits over everything stored."""
        stats = _aggregate(seeded)
        assert (stats.totals.additions, stats.totals.deletions, stats.totals.commits) == (1005, 116, 6)

    def test_empty_store(self, db_path):
        """An empty store yields zero totals and empty views."""
        with StatsDB(db_path) as db:
            stats = _aggregate(db)
        assert (stats.totals.additions, stats.totals.deletions, stats.totals.commits) == (0, 0, 0)
        assert stats.hourly == []
        assert stats.authors == {}
        assert stats.size_counts() == {"small": 0, "medium": 0, "large": 0, "huge": 0}

    def test_views_agree_with_totals(self, seeded):
        """Hourly, weekly and daily sums each equal the totals."""
        stats = _aggregate(seeded)
        for view in (stats.hourly, stats.weekly, stats.daily):
            assert sum(v.commits for v in view) == stats.totals.commits
            assert sum(v.additions for v in view) == stats.totals.additions
            assert sum(v.deletions for v in view) == stats.totals.deletions
        assert sum(a.commits for a in stats.authors.values()) == stats.totals.commits
        assert sum(r.commits for r in stats.repositories.values()) == stats.totals.commits
        assert sum(d.commits for d in stats.commit_density) == stats.totals.commits
        assert sum(f.commits for f in stats.commit_frequency) == stats.totals.commits

    def test_localtime_grouping_keeps_totals(self, seeded):
        """Grouping in local time moves commits between buckets, never drops them."""
        stats = StatisticsAggregator(seeded.conn, use_localtime=True).aggregate(TimeFilter())
        assert sum(h.commits for h in stats.hourly) == 6
        assert sum(w.commits for w in stats.weekly) == 6


class TestTimeViews:
    def test_hourly(self, seeded):
        """Commits are grouped by hour of day."""
        hourly = {h.hour: h.commits for h in _aggregate(seeded).hourly}
        assert hourly == {9: 3, 10: 2, 11: 1}

    def test_weekly_sunday_is_zero(self, seeded):
        """Weekdays are numbered from Sunday as 0."""
        weekly = {w.weekday: w.commits for w in _aggregate(seeded).weekly}
        assert weekly == {1: 2, 2: 2, 3: 2}

    def test_daily_descending(self, seeded):
        """Daily stats list the newest date first."""
        assert [d.date for d in _aggregate(seeded).daily] == ["2024-03-06", "2024-03-05", "2024-03-04"]

    def test_daily_limited_to_30_dates(self, db_path):
        """Only the 30 most recent dates are kept."""
        with StatsDB(db_path) as db:
            add_repository(db.conn, "/src/web")
            save_scan(db.conn, 1, [make_commit(f"c{i}", 1, when=_at(i)) for i in range(35)])
            daily = _aggregate(db).daily
        assert len(daily) == 30
        assert daily[0].date == _at(34).strftime("%Y-%m-%d")

    def test_frequency_ascending(self, seeded):
        """Commit frequency runs oldest date first."""
        frequency = [(f.date, f.commits) for f in _aggregate(seeded).commit_frequency]
        assert frequency == [("2024-03-04", 2), ("2024-03-05", 2), ("2024-03-06", 2)]

    def test_density(self, seeded):
        """Density counts commits per hour and weekday cell."""
        cells = {(d.hour, d.weekday): d.commits for d in _aggregate(seeded).commit_density}
        assert cells[(9, 1)] == 1
        assert cells[(11, 1)] == 1
        assert cells[(9, 3)] == 1

    def test_author_activity_ordering(self, seeded):
        """Author activity is ordered by date, then author."""
        activity = _aggregate(seeded).author_activity
        assert [(a.date, a.author, a.commits) for a in activity] == [
            ("2024-03-04", "Alice", 2),
            ("2024-03-05", "Bob", 1),
            ("2024-03-05", "bot", 1),
            ("2024-03-06", "Alice", 1),
            ("2024-03-06", "Bob", 1),
        ]


class TestGroupedViews:
    def test_authors_ordered_by_lines_touched(self, seeded):
        """Authors are ordered by lines added plus deleted."""
        authors = _aggregate(seeded).authors
        assert list(authors) == ["Bob", "Alice", "bot"]
        assert (authors["Alice"].additions, authors["Alice"].deletions, authors["Alice"].commits) == (414, 105, 3)

    def test_repositories_keyed_by_name(self, seeded):
        """Repository stats are keyed by repository name."""
        repositories = _aggregate(seeded).repositories
        assert list(repositories) == ["api", "web"]
        assert repositories["web"].commits == 4


class TestCommitSizes:
    def test_bucket_boundaries(self, seeded):
        """8 is small, 11 medium, 101 large, 500 large, 501 huge."""
        stats = _aggregate(seeded)
        assert stats.size_counts() == {"small": 2, "medium": 1, "large": 2, "huge": 1}
        assert [b.size_range for b in stats.commit_sizes] == ["small", "medium", "large", "huge"]

    def test_bucket_ranges(self, seeded):
        """Each bucket reports its line range; huge is open-ended."""
        ranges = {b.size_range: (b.min_lines, b.max_lines) for b in _aggregate(seeded).commit_sizes}
        assert ranges == {"small": (0, 10), "medium": (11, 100), "large": (101, 500), "huge": (501, None)}

    def test_missing_buckets_omitted(self, seeded):
        """Empty buckets are left out but still count as zero."""
        stats = _aggregate(seeded, TimeFilter(author="Alice"))
        assert [b.size_range for b in stats.commit_sizes] == ["small", "medium", "large"]
        assert stats.size_counts()["huge"] == 0


class TestEfficiency:
    def test_ratio_per_date(self, seeded):
        """Efficiency is additions over total changes per date."""
        efficiency = {e.date: (e.efficiency_ratio, e.total_changes) for e in _aggregate(seeded).efficiency}
        assert efficiency["2024-03-06"] == (901 / 1001, 1001)

    def test_zero_change_date_is_neutral(self, seeded):
        """A date whose commits touch no lines reports 0.5."""
        (point,) = _aggregate(seeded, TimeFilter(author="bot")).efficiency
        assert point.efficiency_ratio == 0.5
        assert point.total_changes == 0


class TestHotFiles:
    def test_ranked_by_change_count(self, seeded):
        """The most frequently changed file comes first, with its totals."""
        hot = _aggregate(seeded).hot_files
        assert hot[0].file_path == "app.py"
        assert hot[0].change_count == 3
        assert (hot[0].total_additions, hot[0].total_deletions) == (414, 105)
        assert hot[0].last_modified == _at(2)

    def test_filter_applies_through_join(self, seeded):
        """The commit filter also restricts hot files."""
        hot = _aggregate(seeded, TimeFilter(repository_id=1)).hot_files
        assert {f.file_path: f.change_count for f in hot} == {"app.py": 2, "search.py": 1}

    def test_capped_at_20(self, db_path):
        """At most twenty hot files are reported."""
        with StatsDB(db_path) as db:
            add_repository(db.conn, "/src/web")
            files = {f"f{i:02d}.py": (1, 0) for i in range(25)}
            save_scan(db.conn, 1, [make_commit("c1", 1, files=files)])
            assert len(_aggregate(db).hot_files) == 20


class TestMessageWordsView:
    def test_words_from_matching_commits(self, seeded):
        """Words repeated across matching messages are counted."""
        words = {w.word: w.count for w in _aggregate(seeded).message_words}
        assert words == {"fix": 2, "bug": 2}

    def test_filter_applies(self, seeded):
        """The commit filter also restricts message words."""
        assert _aggregate(seeded, TimeFilter(author="Bob")).message_words == []


class TestSerialization:
    def test_to_dict(self, seeded):
        """Statistics serialize to plain JSON-ready data."""
        data = _aggregate(seeded).to_dict()
        assert data["totals"]["commits"] == 6
        assert data["authors"]["Bob"]["additions"] == 591
        assert isinstance(data["hot_files"][0]["last_modified"], str)
