"""Shared test fixtures for Commit Insight."""

import logging
import os
import shutil
import subprocess
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import pytest

GIT = shutil.which("git")

requires_git = pytest.mark.skipif(GIT is None, reason="git not found")


def pytest_addoption(parser):
    """Add --run-slow option for slow tests."""
    parser.addoption(
        "--run-slow",
        action="store_true",
        default=False,
        help="run slow tests",
    )


def pytest_configure(config):
    """Configure slow marker."""
    config.addinivalue_line("markers", "slow: mark test as slow to run")


def pytest_collection_modifyitems(config, items):
    """Skip slow tests unless --run-slow is given."""
    if config.getoption("--run-slow"):
        return
    skip_slow = pytest.mark.skip(reason="need --run-slow option to run")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip_slow)


class RepoBuilder:
    """Build a throwaway git repository with controlled dates and authors."""

    def __init__(self, path: Path):
        self.path = path
        self.path.mkdir(parents=True, exist_ok=True)
        self.git("init", "-q")
        self.git("symbolic-ref", "HEAD", "refs/heads/main")
        self.git("config", "user.name", "Test")
        self.git("config", "user.email", "test@example.com")
        self.git("config", "commit.gpgsign", "false")

    def git(self, *args: str, env: Optional[dict] = None) -> str:
        full_env = dict(os.environ)
        full_env["GIT_CONFIG_NOSYSTEM"] = "1"
        if env:
            full_env.update(env)
        result = subprocess.run(
            ["git", "-C", str(self.path), *args],
            capture_output=True,
            text=True,
            env=full_env,
            check=True,
        )
        return result.stdout.strip()

    def write(self, name: str, content: str) -> None:
        target = self.path / name
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content)

    def delete(self, name: str) -> None:
        (self.path / name).unlink()

    def commit(
        self,
        message: str,
        files: Optional[dict] = None,
        when: Optional[datetime] = None,
        author: str = "Alice",
        email: str = "alice@example.com",
    ) -> str:
        """Write ``files``, stage everything and commit; returns the new id."""
        for name, content in (files or {}).items():
            self.write(name, content)
        when = when or datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)
        stamp = f"{int(when.timestamp())} +0000"
        env = {
            "GIT_AUTHOR_NAME": author,
            "GIT_AUTHOR_EMAIL": email,
            "GIT_AUTHOR_DATE": stamp,
            "GIT_COMMITTER_NAME": author,
            "GIT_COMMITTER_EMAIL": email,
            "GIT_COMMITTER_DATE": stamp,
        }
        self.git("add", "-A")
        self.git("commit", "-q", "--allow-empty", "-m", message, env=env)
        return self.rev("HEAD")

    def branch(self, name: str, start: str = "HEAD") -> None:
        self.git("branch", name, start)

    def checkout(self, name: str) -> None:
        self.git("checkout", "-q", name)

    def merge(self, name: str, when: Optional[datetime] = None) -> str:
        when = when or datetime(2024, 1, 20, 12, 0, tzinfo=timezone.utc)
        stamp = f"{int(when.timestamp())} +0000"
        env = {"GIT_AUTHOR_DATE": stamp, "GIT_COMMITTER_DATE": stamp}
        self.git("merge", "-q", "--no-ff", "--no-edit", name, env=env)
        return self.rev("HEAD")

    def rev(self, ref: str) -> str:
        return self.git("rev-parse", ref)


@pytest.fixture
def git_repo(tmp_path):
    """An empty git repository on branch ``main``."""
    if GIT is None:
        pytest.skip("git not found")
    return RepoBuilder(tmp_path / "project")


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "stats.db"


@pytest.fixture(autouse=True)
def reset_logging():
    """Undo handlers installed by setup_logging (CLI runs included)."""
    yield
    logger = logging.getLogger("commit_insight")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True
