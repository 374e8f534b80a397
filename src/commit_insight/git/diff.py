"""Per-commit diff statistics and per-file breakdown."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional

from ..logging_config import get_logger
from ..models import FileChange
from .source import RepositorySource, unquote_path as _unquote

logger = get_logger(__name__)


@dataclass
class DiffResult:
    """Aggregate counts plus the optional per-file breakdown."""

    insertions: int = 0
    deletions: int = 0
    files_changed: int = 0
    file_changes: list[FileChange] = field(default_factory=list)


@dataclass
class _FileAccumulator:
    path: str
    additions: int = 0
    deletions: int = 0
    lines: list[str] = field(default_factory=list)

    def finalize(self) -> FileChange:
        return FileChange(
            path=self.path,
            additions=self.additions,
            deletions=self.deletions,
            diff="".join(self.lines),
        )


def _header_path(header: str) -> Optional[str]:
    """Path from ``diff --git a/P b/P``; both sides match because renames are off."""
    rest = header[len("diff --git "):].rstrip("\n")
    if rest.startswith('"'):
        end = rest.find('" ', 1)
        return _unquote(rest[: end + 1])[2:] if end > 0 else None
    if not rest.startswith("a/"):
        return None
    size = (len(rest) - len("a/ b/")) // 2
    return rest[2 : 2 + size]


def _side_path(line: str, prefix: str) -> Optional[str]:
    """Path from a ``--- a/P`` / ``+++ b/P`` line, None for /dev/null."""
    raw = _unquote(line[4:].rstrip("\n").split("\t", 1)[0])
    if raw == "/dev/null":
        return None
    return raw[len(prefix):] if raw.startswith(prefix) else raw


def fold_patch(lines: Iterable[str]) -> dict[str, _FileAccumulator]:
    """Fold a unified diff stream into one accumulator per file path.

    File identity is the new-file path, falling back to the old-file path
    for deletions. Hunk headers are kept in the text; added, removed and
    context lines keep their ``+``/``-``/space prefix.
    """
    files: dict[str, _FileAccumulator] = {}
    current: Optional[_FileAccumulator] = None
    old_path: Optional[str] = None
    in_hunk = False

    def open_file(path: str) -> _FileAccumulator:
        if path not in files:
            files[path] = _FileAccumulator(path)
        return files[path]

    for line in lines:
        if line.startswith("diff --git "):
            in_hunk = False
            old_path = None
            path = _header_path(line)
            current = open_file(path) if path is not None else None
            continue

        if not in_hunk:
            if line.startswith("--- "):
                old_path = _side_path(line, "a/")
            elif line.startswith("+++ ") and current is None:
                new_path = _side_path(line, "b/")
                path = new_path if new_path is not None else old_path
                if path is not None:
                    current = open_file(path)
            elif line.startswith("@@"):
                in_hunk = True
                if current is not None:
                    current.lines.append(line)
            continue

        if current is None:
            continue
        if line.startswith("@@"):
            current.lines.append(line)
        elif line.startswith("+"):
            current.additions += 1
            current.lines.append(line)
        elif line.startswith("-"):
            current.deletions += 1
            current.lines.append(line)
        elif line.startswith(" "):
            current.lines.append(line)
        elif line.startswith("\\"):
            # "\ No newline at end of file"
            continue
        else:
            in_hunk = False

    return files


class DiffCollector:
    """Compare a commit's tree against its first parent's (or the empty) tree."""

    def __init__(self, source: RepositorySource, ignore_whitespace: bool = True):
        self.source = source
        self.ignore_whitespace = ignore_whitespace

    def diff(self, commit_id: str, parent_id: Optional[str], detail: bool = True) -> DiffResult:
        """Return aggregate counts and, when ``detail`` is set, per-file changes.

        The aggregate counts always come from the diff summary; the per-file
        breakdown is folded from the patch stream and lists every file the
        summary lists, in the same order.
        """
        stats = self.source.numstat(commit_id, parent_id, self.ignore_whitespace)
        result = DiffResult(
            insertions=sum(e.additions for e in stats),
            deletions=sum(e.deletions for e in stats),
            files_changed=len(stats),
        )
        if not detail:
            return result

        folded = fold_patch(self.source.patch_lines(commit_id, parent_id, self.ignore_whitespace))
        changes: list[FileChange] = []
        for entry in stats:
            acc = folded.pop(entry.path, None)
            changes.append(acc.finalize() if acc is not None else FileChange(path=entry.path))
        if folded:
            logger.debug(
                "Patch for %s listed %d file(s) missing from its summary: %s",
                commit_id[:8],
                len(folded),
                ", ".join(sorted(folded)),
            )
        result.file_changes = changes
        return result
