"""The commit filter shared by every statistics view and the timeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional

from ..timestamps import format_timestamp


@dataclass
class TimeFilter:
    """Restrict commits by time range (inclusive), author and repository.

    All fields are optional; an empty filter matches every stored commit.
    """

    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    author: Optional[str] = None
    exclude_authors: frozenset[str] = field(default_factory=frozenset)
    repository_id: Optional[int] = None

    def __post_init__(self) -> None:
        self.exclude_authors = frozenset(self.exclude_authors or ())


@dataclass(frozen=True)
class Predicate:
    """A SQL boolean expression and its positional parameters."""

    clause: str
    params: tuple

    @property
    def where(self) -> str:
        return f"WHERE {self.clause}" if self.clause else ""

    @property
    def and_(self) -> str:
        return f"AND {self.clause}" if self.clause else ""


def build_predicate(time_filter: Optional[TimeFilter], alias: Optional[str] = None) -> Predicate:
    """Translate a filter into a predicate over the ``commits`` table.

    ``alias`` qualifies the column names when commits are joined under
    another name.
    """
    if time_filter is None:
        return Predicate("", ())

    def col(name: str) -> str:
        return f"{alias}.{name}" if alias else name

    clauses: list[str] = []
    params: list = []

    if time_filter.start_date is not None:
        start = time_filter.start_date
        # Stored timestamps have whole seconds; round a fractional start up
        if start.microsecond:
            start = start.replace(microsecond=0) + timedelta(seconds=1)
        clauses.append(f"{col('timestamp')} >= ?")
        params.append(format_timestamp(start))
    if time_filter.end_date is not None:
        clauses.append(f"{col('timestamp')} <= ?")
        params.append(format_timestamp(time_filter.end_date))
    if time_filter.author:
        clauses.append(f"{col('author')} = ?")
        params.append(time_filter.author)
    if time_filter.exclude_authors:
        excluded = sorted(time_filter.exclude_authors)
        placeholders = ", ".join("?" for _ in excluded)
        clauses.append(f"{col('author')} NOT IN ({placeholders})")
        params.extend(excluded)
    if time_filter.repository_id is not None:
        clauses.append(f"{col('repository_id')} = ?")
        params.append(time_filter.repository_id)

    return Predicate(" AND ".join(clauses), tuple(params))
