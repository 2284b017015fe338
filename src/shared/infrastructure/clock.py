"""
Clock
=====

Injectable time source. Services receive a ``Clock`` instead of calling
``datetime.now`` so SLA evaluation can be driven deterministically.
"""

from datetime import datetime, timezone
from typing import Callable, Optional

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    Normalise a datetime read back from storage.

    SQLite drops tzinfo on ``DateTime(timezone=True)`` columns, so naive
    values are taken to be UTC.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def get_clock() -> Clock:
    """FastAPI dependency returning the process clock."""
    return utc_now
