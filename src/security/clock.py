"""Injectable clock for the deletion lifecycle.

Every "current time" read goes through a Clock so retention-window logic
can be tested with a frozen instant.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Default clock."""
    return datetime.now(UTC)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite returns them without tzinfo)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def frozen(at: datetime) -> Clock:
    """Clock that always returns `at`."""
    fixed = as_utc(at)
    return lambda: fixed
