"""
Time helpers shared by the cache, reconciler and run audit.

Every timestamp in the system is a timezone-aware UTC ``datetime``. Components
that stamp times accept a ``Clock`` (zero-arg callable) so tests can pin "now".
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone
from typing import Optional

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Return the current UTC datetime with timezone info.

    Prefer this over ``datetime.utcnow()`` (which returns naive datetimes).
    """
    return datetime.now(tz=timezone.utc)


def to_iso(value: Optional[datetime]) -> Optional[str]:
    """Serialize a datetime as ISO-8601 UTC; ``None`` passes through.

    Normalizing to UTC keeps stored timestamps comparable as plain text.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def from_iso(value: Optional[str]) -> Optional[datetime]:
    """Parse a stored ISO-8601 string back into an aware UTC datetime.

    Naive values (e.g. SQLite ``strftime`` defaults) are assumed to be UTC.
    """
    if value is None:
        return None
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
