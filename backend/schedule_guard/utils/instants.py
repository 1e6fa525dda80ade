"""
Instant helpers.

Every persisted timestamp is a naive datetime in UTC. Values arriving with a
tzinfo (API payloads, parsed import rows) are converted once at the boundary
so comparisons never mix aware and naive datetimes.
"""

from datetime import datetime, timezone
from typing import Optional


def to_utc_naive(value: Optional[datetime]) -> Optional[datetime]:
    """Normalize a datetime to naive UTC. Naive input is assumed to be UTC already."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def utc_now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)
