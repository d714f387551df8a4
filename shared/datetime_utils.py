"""
Date/time helpers — framework-agnostic.

MongoDB hands back naive datetimes unless the client is tz-aware; every
comparison in the service goes through ``ensure_utc`` so both cases behave.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional


def utcnow() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes and convert aware ones to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def expires_in(seconds: int, now: Optional[datetime] = None) -> datetime:
    """Return the instant *seconds* after *now* (defaults to the current time)."""
    return (now or utcnow()) + timedelta(seconds=seconds)


def is_expired(expires_at: Optional[datetime], now: Optional[datetime] = None) -> bool:
    """True when *expires_at* is missing or at/before *now*.

    An expiry instant is itself invalid: a code expiring at T is rejected at T.
    """
    expires_at = ensure_utc(expires_at)
    if expires_at is None:
        return True
    return expires_at <= (now or utcnow())

