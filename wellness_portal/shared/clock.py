"""Clock utilities shared by the scheduling rules"""

from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Current instant as an aware UTC datetime"""
    return datetime.now(timezone.utc)


def get_clock() -> Clock:
    """Dependency injection for the current-instant source"""
    return utc_now


def ensure_utc(value: datetime) -> datetime:
    """
    Normalize a stored datetime to aware UTC.

    SQLite drops tzinfo on DateTime(timezone=True) columns, so naive values
    read back from the database are taken to be UTC.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
