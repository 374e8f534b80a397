"""Tests for scan orchestration and the single-scan guard."""

import threading
from datetime import timedelta

import pytest

from commit_insight.config import InsightConfig
from commit_insight.exceptions import RepositoryNotFoundError, ScanInProgressError, TraversalError
from commit_insight.scan import ScanCoordinator, ScanMode, ScanOrchestrator, default_coordinator
from commit_insight.storage import CommitStore, StatsDB, add_repository
from fakes import BASE_TIME, FakeSource, linear_history


def _idle(coordinator):
    """True when no scan holds the coordinator."""
    if not coordinator.try_acquire():
        return False
    coordinator.release()
    return True


class TestScanCoordinator:
    def test_acquire_release(self):
        """The flag can be taken once until it is released."""
        coordinator = ScanCoordinator()
        assert coordinator.try_acquire() is True
        assert coordinator.try_acquire() is False
        coordinator.release()
        assert coordinator.try_acquire() is True

    def test_claim_rejects_second_scan(self):
        """A nested claim fails instead of waiting."""
        coordinator = ScanCoordinator()
        with coordinator.claim():
            with pytest.raises(ScanInProgressError):
                with coordinator.claim():
                    pass

    def test_claim_released_on_failure(self):
        """The flag is cleared even when the scan body raises."""
        coordinator = ScanCoordinator()
        with pytest.raises(ValueError):
            with coordinator.claim():
                raise ValueError("boom")
        assert _idle(coordinator)

    def test_default_is_process_wide(self):
        """Every caller gets the same default coordinator."""
        assert default_coordinator() is default_coordinator()


class _Clock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def setup(db_path):
    """A registered repository backed by a FakeSource, plus an orchestrator."""
    source = FakeSource(path="/repos/project")
    with StatsDB(db_path) as db:
        repo = add_repository(db.conn, source.path, "project")
    clock = _Clock(BASE_TIME + timedelta(hours=10))
    orchestrator = ScanOrchestrator(
        InsightConfig(db_path=str(db_path)),
        coordinator=ScanCoordinator(),
        source_factory=lambda path: source,
        clock=clock,
    )
    return source, repo, clock, orchestrator


def _stored(db_path, repo_id):
    with StatsDB(db_path) as db:
        store = CommitStore(db.conn)
        return store.get_repository(repo_id), store.count_commits(repo_id)


class TestScanModes:
    def test_first_incremental_scan_walks_everything(self, setup, db_path):
        """Without a checkpoint an incremental scan takes the whole history and sets one."""
        source, repo, clock, orchestrator = setup
        linear_history(source, 3)

        result = orchestrator.scan(repo.id)

        assert result.commits == 3
        assert result.file_changes == 3
        assert result.stored == 3
        assert result.since is None
        repository, count = _stored(db_path, repo.id)
        assert count == 3
        assert repository.last_scanned == clock.now

    def test_incremental_scan_picks_up_new_commits_only(self, setup, db_path):
        """The next incremental scan starts at the checkpoint and moves it."""
        source, repo, clock, orchestrator = setup
        ids = linear_history(source, 3)
        orchestrator.scan(repo.id)

        source.add("f" * 40, parents=[ids[-1]], hours=12)
        source.set_branch("main", "f" * 40)
        clock.now = BASE_TIME + timedelta(hours=13)

        result = orchestrator.scan(repo.id, ScanMode.INCREMENTAL)

        assert result.commits == 1
        assert result.stored == 4
        assert result.since == BASE_TIME + timedelta(hours=10)
        repository, count = _stored(db_path, repo.id)
        assert count == 4
        assert repository.last_scanned == clock.now

    def test_full_scan_keeps_checkpoint(self, setup, db_path):
        """A full scan stores everything but leaves the checkpoint alone."""
        source, repo, clock, orchestrator = setup
        linear_history(source, 3)

        result = orchestrator.scan(repo.id, ScanMode.FULL)

        assert result.commits == 3
        assert result.checkpoint is None
        repository, _ = _stored(db_path, repo.id)
        assert repository.last_scanned is None

    def test_full_rescan_is_idempotent(self, setup, db_path):
        """Scanning twice overwrites rather than appends."""
        source, repo, _, orchestrator = setup
        linear_history(source, 3)
        orchestrator.scan(repo.id, ScanMode.FULL)
        result = orchestrator.scan(repo.id, ScanMode.FULL)
        _, count = _stored(db_path, repo.id)
        assert count == 3
        assert result.stored == 3

    def test_last_24_hours(self, setup, db_path):
        """Only the last day is walked, whatever the checkpoint, and the checkpoint stays put."""
        source, repo, clock, orchestrator = setup
        linear_history(source, 5)
        clock.now = BASE_TIME + timedelta(hours=25)

        result = orchestrator.scan(repo.id, ScanMode.LAST_24_HOURS)

        assert result.commits == 4
        repository, _ = _stored(db_path, repo.id)
        assert repository.last_scanned is None

    def test_mode_accepts_value_string(self, setup):
        """Modes can be given by their string value."""
        source, repo, _, orchestrator = setup
        linear_history(source, 2)
        assert orchestrator.scan(repo.id, "full").mode is ScanMode.FULL


class TestScanFailures:
    def test_unknown_repository(self, setup):
        """Scanning an unregistered id fails and releases the guard."""
        _, _, _, orchestrator = setup
        with pytest.raises(RepositoryNotFoundError):
            orchestrator.scan(999)
        assert _idle(orchestrator.coordinator)

    def test_traversal_failure_leaves_no_trace(self, setup, db_path, monkeypatch):
        """A failed walk persists nothing and does not move the checkpoint."""
        source, repo, _, orchestrator = setup
        linear_history(source, 3)

        def broken(tips):
            raise TraversalError("revision walk", "object file is corrupt")
            yield  # pragma: no cover

        monkeypatch.setattr(source, "iter_commits", broken)

        with pytest.raises(TraversalError):
            orchestrator.scan(repo.id)

        repository, count = _stored(db_path, repo.id)
        assert count == 0
        assert repository.last_scanned is None
        assert _idle(orchestrator.coordinator)

    def test_second_scan_rejected_while_first_runs(self, setup):
        """A concurrent scan fails immediately; once the first completes a new one succeeds."""
        source, repo, _, orchestrator = setup
        linear_history(source, 2)

        entered = threading.Event()
        proceed = threading.Event()
        branches = source.branches

        def blocking_branches():
            entered.set()
            proceed.wait(timeout=10)
            return branches()

        source.branches = blocking_branches
        errors = []

        def first():
            try:
                orchestrator.scan(repo.id)
            except Exception as e:  # pragma: no cover
                errors.append(e)

        worker = threading.Thread(target=first)
        worker.start()
        try:
            assert entered.wait(timeout=10)
            with pytest.raises(ScanInProgressError):
                orchestrator.scan(repo.id)
        finally:
            proceed.set()
            worker.join(timeout=10)

        assert errors == []
        assert orchestrator.scan(repo.id, ScanMode.FULL).commits == 2
