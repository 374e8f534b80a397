"""UTC timestamp conversions shared by the store and its queries.

Timestamps are stored as ``YYYY-MM-DD HH:MM:SS`` UTC text, which SQLite's
date functions understand and which sorts lexicographically in time order.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

DB_FORMAT = "%Y-%m-%d %H:%M:%S"


def to_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def format_timestamp(value: datetime) -> str:
    return to_utc(value).strftime(DB_FORMAT)


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.strptime(value[:19], DB_FORMAT)
    except ValueError:
        parsed = datetime.fromisoformat(value)
    return to_utc(parsed)


def utc_now() -> datetime:
    return datetime.now(timezone.utc).replace(microsecond=0)
