"""Read access to a local git repository via the git CLI."""

from __future__ import annotations

import re
import subprocess
import tempfile
from abc import ABC, abstractmethod
from contextlib import suppress
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Iterator, Optional, Union

from ..exceptions import CommitNotFoundError, InvalidRepositoryError, TraversalError
from ..logging_config import get_logger

logger = get_logger(__name__)

# Separators for `git log --format`; neither can appear in a ref name or id
_RECORD_SEP = "\x1e"
_FIELD_SEP = "\x1f"
_LOG_FORMAT = "%x1e%H%x1f%P%x1f%an%x1f%ae%x1f%ct%x1f%B"

_COMMIT_ID_RE = re.compile(r"^[0-9a-fA-F]{4,64}$")

# Escapes git uses when quoting paths (octal for raw bytes)
_ESCAPE_RE = re.compile(r"\\([0-7]{3}|.)")
_ESCAPES = {"a": 7, "b": 8, "t": 9, "n": 10, "v": 11, "f": 12, "r": 13, '"': 34, "\\": 92}

# Pinned so user config cannot change the output we parse
_GIT_CONFIG = [
    "-c", "core.quotePath=false",
    "-c", "color.ui=never",
    "-c", "log.showSignature=false",
]

_DIFF_BASE_OPTS = ["--no-renames", "--no-color", "--no-ext-diff", "--no-textconv"]
_IGNORE_WHITESPACE_OPTS = ["-w", "--ignore-blank-lines"]


@dataclass(frozen=True)
class BranchRef:
    """A branch tip. Remote names keep their remote prefix (``origin/main``)."""

    name: str
    tip: str
    remote: bool = False

    @property
    def clean_name(self) -> str:
        """Name without the remote prefix."""
        if self.remote and "/" in self.name:
            return self.name.split("/", 1)[1]
        return self.name


@dataclass
class RawCommit:
    """Commit metadata as read from the repository."""

    id: str
    parents: list[str] = field(default_factory=list)
    author_name: str = "Unknown"
    author_email: str = ""
    message: str = ""
    timestamp: datetime = field(default_factory=lambda: datetime.fromtimestamp(0, tz=timezone.utc))

    @property
    def is_merge(self) -> bool:
        return len(self.parents) > 1

    @property
    def first_parent(self) -> Optional[str]:
        return self.parents[0] if self.parents else None


@dataclass
class NumstatEntry:
    path: str
    additions: int
    deletions: int


class RepositorySource(ABC):
    """Everything the analysis pipeline reads from a repository."""

    path: str

    @property
    def name(self) -> str:
        return Path(self.path).name

    @abstractmethod
    def branches(self) -> list[BranchRef]:
        """Local and remote-tracking branches, ordered by ref name."""

    @abstractmethod
    def head_branch(self) -> Optional[str]:
        """Short name of the checked-out branch, None when detached."""

    @abstractmethod
    def head_commit(self) -> Optional[str]:
        """Commit id HEAD points at, None for an unborn branch."""

    @abstractmethod
    def iter_commits(self, tips: Iterable[str]) -> Iterator[RawCommit]:
        """Commits reachable from ``tips``, newest commit time first."""

    @abstractmethod
    def ancestry(self, tip: str, limit: Optional[int] = None) -> Iterator[str]:
        """Commit ids reachable from ``tip``; the first ``limit`` in topological order."""

    @abstractmethod
    def read_commit(self, commit_id: str) -> RawCommit:
        """Read one commit. Raises CommitNotFoundError."""

    @abstractmethod
    def numstat(
        self, commit_id: str, parent_id: Optional[str], ignore_whitespace: bool = True
    ) -> list[NumstatEntry]:
        """Per-file line counts between the parent tree (or empty tree) and the commit tree."""

    @abstractmethod
    def patch_lines(
        self, commit_id: str, parent_id: Optional[str], ignore_whitespace: bool = True
    ) -> Iterator[str]:
        """Unified diff between the parent tree (or empty tree) and the commit tree."""

    @abstractmethod
    def remote_url(self) -> Optional[str]:
        """URL of ``origin``, else of the first remote that has one."""


def unquote_path(path: str) -> str:
    """Undo git's C-style quoting of paths with control characters or quotes."""
    if len(path) < 2 or not (path.startswith('"') and path.endswith('"')):
        return path
    inner = path[1:-1]
    raw = bytearray()
    pos = 0
    for match in _ESCAPE_RE.finditer(inner):
        raw += inner[pos : match.start()].encode("utf-8")
        escape = match.group(1)
        if len(escape) == 3:
            raw.append(int(escape, 8))
        elif escape in _ESCAPES:
            raw.append(_ESCAPES[escape])
        else:
            raw += escape.encode("utf-8")
        pos = match.end()
    raw += inner[pos:].encode("utf-8")
    return raw.decode("utf-8", errors="replace")


def is_repository(path: Union[str, Path]) -> bool:
    """True when ``path`` is a working-tree root with ``.git`` or a bare repository root."""
    p = Path(path)
    if not p.is_dir():
        return False
    if (p / ".git").exists():
        return True
    try:
        result = subprocess.run(
            ["git", "-C", str(p), "rev-parse", "--is-bare-repository", "--git-dir"],
            capture_output=True,
            text=True,
            timeout=10,
        )
    except (FileNotFoundError, subprocess.TimeoutExpired):
        return False
    if result.returncode != 0:
        return False
    lines = result.stdout.split()
    return len(lines) == 2 and lines[0] == "true" and lines[1] == "."


class GitRepositorySource(RepositorySource):
    """RepositorySource backed by ``git`` subprocesses.

    Short queries go through :func:`subprocess.run` with a timeout; walks and
    patches are streamed through ``Popen`` so large histories are never held
    in memory at once.
    """

    def __init__(self, path: Union[str, Path], timeout: int = 120):
        resolved = Path(path).expanduser().resolve()
        if not is_repository(resolved):
            raise InvalidRepositoryError(path, "no git metadata found at this path")
        self.path = str(resolved)
        self.timeout = timeout
        self._empty_tree: Optional[str] = None

    # ── process helpers ───────────────────────────────────────────

    def _command(self, args: list[str]) -> list[str]:
        return ["git", "-C", self.path, *_GIT_CONFIG, *args]

    def _run(self, args: list[str], operation: str, input: Optional[str] = None) -> str:
        try:
            result = subprocess.run(
                self._command(args),
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=self.timeout,
                input=input,
            )
        except FileNotFoundError:
            raise TraversalError(operation, "git executable not found", self.name)
        except subprocess.TimeoutExpired:
            raise TraversalError(operation, f"git timed out after {self.timeout}s", self.name)
        if result.returncode != 0:
            reason = result.stderr.strip() or f"git exited with status {result.returncode}"
            logger.warning("git %s failed in %s: %s", args[0], self.path, reason)
            raise TraversalError(operation, reason, self.name)
        return result.stdout

    def _try(self, args: list[str]) -> Optional[str]:
        """Run a query whose non-zero exit means "no answer" rather than failure."""
        try:
            result = subprocess.run(
                self._command(args),
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=self.timeout,
            )
        except FileNotFoundError:
            raise TraversalError(args[0], "git executable not found", self.name)
        except subprocess.TimeoutExpired:
            raise TraversalError(args[0], f"git timed out after {self.timeout}s", self.name)
        if result.returncode != 0:
            return None
        return result.stdout.strip() or None

    def _stream(self, args: list[str], operation: str, input: Optional[str] = None) -> Iterator[str]:
        """Yield stdout lines; kills git if the consumer stops early.

        ``input`` is written to git's stdin before any output is read, which
        suits commands that consume all of stdin before writing, such as
        ``log --stdin``.
        """
        # stderr goes to a file so a chatty git cannot block on a full pipe
        with tempfile.TemporaryFile() as stderr_file:
            try:
                proc = subprocess.Popen(
                    self._command(args),
                    stdin=subprocess.PIPE if input is not None else None,
                    stdout=subprocess.PIPE,
                    stderr=stderr_file,
                    text=True,
                    encoding="utf-8",
                    errors="replace",
                )
            except FileNotFoundError:
                raise TraversalError(operation, "git executable not found", self.name)
            except OSError as e:
                raise TraversalError(operation, f"could not start git: {e}", self.name)

            if input is not None:
                assert proc.stdin is not None
                # A broken pipe means git exited early; its status is reported below
                with suppress(BrokenPipeError):
                    proc.stdin.write(input)
                with suppress(BrokenPipeError):
                    proc.stdin.close()

            finished = False
            try:
                assert proc.stdout is not None
                for line in proc.stdout:
                    yield line
                finished = True
            finally:
                if not finished:
                    proc.kill()
                if proc.stdout:
                    proc.stdout.close()
                proc.wait()

            if proc.returncode != 0:
                stderr_file.seek(0)
                reason = stderr_file.read().decode("utf-8", errors="replace").strip()
                reason = reason or f"git exited with status {proc.returncode}"
                logger.warning("git %s failed in %s: %s", args[0], self.path, reason)
                raise TraversalError(operation, reason, self.name)

    # ── refs ──────────────────────────────────────────────────────

    def branches(self) -> list[BranchRef]:
        out = self._run(
            [
                "for-each-ref",
                "--format=%(objectname)%09%(refname)%09%(symref)",
                "refs/heads",
                "refs/remotes",
            ],
            "list branches",
        )
        refs: list[BranchRef] = []
        for line in out.splitlines():
            parts = line.split("\t")
            if len(parts) < 2:
                continue
            tip, refname = parts[0], parts[1]
            symref = parts[2] if len(parts) > 2 else ""
            if refname.startswith("refs/heads/"):
                refs.append(BranchRef(refname[len("refs/heads/"):], tip, remote=False))
            elif refname.startswith("refs/remotes/"):
                # origin/HEAD is an alias for another remote branch
                if symref or refname.endswith("/HEAD"):
                    continue
                refs.append(BranchRef(refname[len("refs/remotes/"):], tip, remote=True))
        return refs

    def head_branch(self) -> Optional[str]:
        return self._try(["symbolic-ref", "--quiet", "--short", "HEAD"])

    def head_commit(self) -> Optional[str]:
        return self._try(["rev-parse", "--verify", "--quiet", "HEAD^{commit}"])

    def remote_url(self) -> Optional[str]:
        origin = self._try(["config", "--get", "remote.origin.url"])
        if origin:
            return origin
        remotes = self._try(["config", "--get-regexp", r"^remote\..*\.url$"])
        if not remotes:
            return None
        for line in remotes.splitlines():
            parts = line.split(None, 1)
            if len(parts) == 2 and parts[1].strip():
                return parts[1].strip()
        return None

    # ── commits ───────────────────────────────────────────────────

    def iter_commits(self, tips: Iterable[str]) -> Iterator[RawCommit]:
        roots = list(dict.fromkeys(tips))
        if not roots:
            return
        record: list[str] = []
        # Tips go through stdin; thousands of remote branches overflow argv
        lines = self._stream(
            ["log", f"--format={_LOG_FORMAT}", "--stdin", "--"],
            "revision walk",
            input="".join(f"{root}\n" for root in roots),
        )
        for line in lines:
            if line.startswith(_RECORD_SEP):
                if record:
                    yield self._parse_commit("".join(record))
                record = [line[1:]]
            else:
                record.append(line)
        if record:
            yield self._parse_commit("".join(record))

    def ancestry(self, tip: str, limit: Optional[int] = None) -> Iterator[str]:
        args = ["rev-list"]
        if limit is not None:
            args += ["--topo-order", f"--max-count={limit}"]
        args += [tip, "--"]
        for line in self._stream(args, "ancestry walk"):
            line = line.strip()
            if line:
                yield line

    def read_commit(self, commit_id: str) -> RawCommit:
        if not _COMMIT_ID_RE.match(commit_id or ""):
            raise CommitNotFoundError(commit_id, self.name, reason="malformed commit identifier")
        full_id = self._try(["rev-parse", "--verify", "--quiet", f"{commit_id}^{{commit}}"])
        if full_id is None:
            raise CommitNotFoundError(commit_id, self.name)
        out = self._run(["log", "-1", f"--format={_LOG_FORMAT}", full_id, "--"], "read commit")
        return self._parse_commit(out.lstrip(_RECORD_SEP))

    @staticmethod
    def _parse_commit(record: str) -> RawCommit:
        commit_id, parents, author_name, author_email, committed, message = record.split(_FIELD_SEP, 5)
        # tformat appends one newline after the raw body
        if message.endswith("\n"):
            message = message[:-1]
        return RawCommit(
            id=commit_id.strip(),
            parents=parents.split(),
            author_name=author_name or "Unknown",
            author_email=author_email,
            message=message,
            timestamp=datetime.fromtimestamp(int(committed), tz=timezone.utc),
        )

    # ── diffs ─────────────────────────────────────────────────────

    def _empty_tree_id(self) -> str:
        if self._empty_tree is None:
            self._empty_tree = self._run(
                ["hash-object", "-t", "tree", "--stdin"], "empty tree", input=""
            ).strip()
        return self._empty_tree

    def _diff_args(self, commit_id: str, parent_id: Optional[str], ignore_whitespace: bool) -> list[str]:
        opts = list(_DIFF_BASE_OPTS)
        if ignore_whitespace:
            opts += _IGNORE_WHITESPACE_OPTS
        base = parent_id or self._empty_tree_id()
        return [*opts, base, commit_id, "--"]

    def numstat(
        self, commit_id: str, parent_id: Optional[str], ignore_whitespace: bool = True
    ) -> list[NumstatEntry]:
        out = self._run(
            ["diff", "--numstat", *self._diff_args(commit_id, parent_id, ignore_whitespace)],
            "diff stats",
        )
        entries: list[NumstatEntry] = []
        for line in out.splitlines():
            parts = line.split("\t", 2)
            if len(parts) != 3:
                continue
            added, deleted, path = parts
            # Binary files report "-" for both counts
            entries.append(
                NumstatEntry(
                    path=unquote_path(path),
                    additions=int(added) if added.isdigit() else 0,
                    deletions=int(deleted) if deleted.isdigit() else 0,
                )
            )
        return entries

    def patch_lines(
        self, commit_id: str, parent_id: Optional[str], ignore_whitespace: bool = True
    ) -> Iterator[str]:
        args = [
            "diff",
            "--patch",
            "--unified=3",
            "--src-prefix=a/",
            "--dst-prefix=b/",
            *self._diff_args(commit_id, parent_id, ignore_whitespace),
        ]
        return self._stream(args, "diff patch")
