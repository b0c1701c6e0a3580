from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    # timezone-aware UTC everywhere in Python code
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    SQLite hands datetimes back naive even when they were stored aware.
    Every stored timestamp is UTC, so a naive value is tagged, never shifted.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def is_past(value: Optional[datetime], *, now: Optional[datetime] = None) -> bool:
    if value is None:
        return False
    return as_utc(value) <= (now or utcnow())
