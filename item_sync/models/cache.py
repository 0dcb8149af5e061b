"""
Response cache models.

``CacheEntry`` is one stored API response. ``CacheLookup`` is the explicit
result of a cache read: callers branch on ``status`` (or ``hit``) rather than
testing a nullable payload, so "never cached" and "cached but expired" stay
distinguishable.
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, model_validator


class CacheEntry(BaseModel):
    """A cached external API response.

    Attributes:
        cache_id: Store-assigned primary key; ``None`` before insertion.
        endpoint: API endpoint path the payload came from, e.g. ``"/items"``.
        params_key: Canonical serialization of the request parameters.
        payload: Decoded JSON body.
        fetched_at: UTC time the payload was fetched.
        expires_at: UTC time after which the entry is no longer served.
    """

    model_config = ConfigDict(frozen=True)

    cache_id: Optional[int] = None
    endpoint: str
    params_key: str
    payload: Any
    fetched_at: datetime
    expires_at: datetime

    @model_validator(mode="after")
    def validate_window(self) -> "CacheEntry":
        if self.expires_at < self.fetched_at:
            raise ValueError(
                f"expires_at ({self.expires_at}) must not precede fetched_at ({self.fetched_at})."
            )
        return self

    def is_live(self, now: datetime) -> bool:
        """Return ``True`` while ``now`` is strictly before ``expires_at``."""
        return now < self.expires_at


class CacheStatus(StrEnum):
    """Outcome of a cache lookup."""

    HIT = "hit"
    MISS = "miss"
    EXPIRED = "expired"


class CacheLookup(BaseModel):
    """Result of ``ResponseCache.lookup()``.

    ``payload`` is only populated for ``HIT``; ``entry`` is populated for both
    ``HIT`` and ``EXPIRED``.
    """

    model_config = ConfigDict(frozen=True)

    status: CacheStatus
    entry: Optional[CacheEntry] = None

    @property
    def hit(self) -> bool:
        return self.status == CacheStatus.HIT

    @property
    def payload(self) -> Any:
        return self.entry.payload if self.hit and self.entry is not None else None

    @classmethod
    def miss(cls) -> "CacheLookup":
        return cls(status=CacheStatus.MISS)
