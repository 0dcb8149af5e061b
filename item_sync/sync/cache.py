"""
Response cache for external API calls.

Entries are keyed by ``(endpoint, canonical_params_key(params))``. The params
key is order-independent: two parameter sets with the same pairs produce the
same key no matter how the caller built them.

Expiry is checked on every read. Expired entries are never returned but are
also never deleted on read; the next ``store()`` for the same key replaces
them, and ``purge_expired()`` removes them on demand.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from datetime import timedelta
from typing import Any, Optional

from pydantic import BaseModel

from item_sync.db.repositories.cache_repo import ApiCacheRepository
from item_sync.models.cache import CacheEntry, CacheLookup, CacheStatus
from item_sync.utils.time_utils import Clock, utcnow

logger = logging.getLogger(__name__)

DEFAULT_TTL = timedelta(minutes=5)

Params = Mapping[str, Any] | BaseModel | None


def canonical_params_key(params: Params) -> str:
    """Serialize request parameters into a stable cache key.

    ``None`` and empty-string values are dropped (they are never sent to the
    API), keys are sorted, and the result is compact JSON.
    """
    if params is None:
        items: dict[str, Any] = {}
    elif isinstance(params, BaseModel):
        to_api = getattr(params, "to_api_params", None)
        items = to_api() if callable(to_api) else params.model_dump(exclude_none=True)
    else:
        items = dict(params)

    cleaned = {k: v for k, v in items.items() if v is not None and v != ""}
    return json.dumps(cleaned, sort_keys=True, separators=(",", ":"), default=str)


class ResponseCache:
    """Time-bounded cache of API payloads backed by the ``api_cache`` table.

    Args:
        repo: Repository bound to an open connection.
        default_ttl: TTL used when ``store()`` is called without one.
        clock: Returns "now" as an aware UTC datetime.
    """

    def __init__(
        self,
        repo: ApiCacheRepository,
        default_ttl: timedelta = DEFAULT_TTL,
        clock: Clock = utcnow,
    ) -> None:
        if default_ttl <= timedelta(0):
            raise ValueError(f"default_ttl must be positive, got {default_ttl}.")
        self.repo = repo
        self.default_ttl = default_ttl
        self.clock = clock

    def lookup(self, endpoint: str, params: Params = None) -> CacheLookup:
        """Return the live cached payload for a request, if any.

        Returns:
            ``CacheLookup`` with status ``HIT`` (payload available), ``EXPIRED``
            (an entry exists but ``now >= expires_at``), or ``MISS``.
        """
        params_key = canonical_params_key(params)
        entry = self.repo.get_latest(endpoint, params_key)
        if entry is None:
            logger.debug("Cache miss: %s %s", endpoint, params_key)
            return CacheLookup.miss()

        if entry.is_live(self.clock()):
            logger.debug("Cache hit: %s %s (expires %s)", endpoint, params_key, entry.expires_at)
            return CacheLookup(status=CacheStatus.HIT, entry=entry)

        logger.debug("Cache expired: %s %s (expired %s)", endpoint, params_key, entry.expires_at)
        return CacheLookup(status=CacheStatus.EXPIRED, entry=entry)

    def get(self, endpoint: str, params: Params = None) -> Optional[Any]:
        """Shorthand for ``lookup(...).payload``."""
        return self.lookup(endpoint, params).payload

    def store(
        self,
        endpoint: str,
        params: Params,
        payload: Any,
        ttl: Optional[timedelta] = None,
    ) -> CacheEntry:
        """Cache ``payload`` for a request, replacing any prior entries for its key.

        Commits the connection. Callers sharing the connection must not have
        other writes pending.

        Args:
            endpoint: API endpoint path.
            params: Request parameters (mapping or ``FetchParams``).
            payload: Decoded JSON body to cache.
            ttl: Time to live; defaults to ``default_ttl``.

        Returns:
            The stored ``CacheEntry`` (with ``cache_id`` set).
        """
        ttl = ttl if ttl is not None else self.default_ttl
        if ttl <= timedelta(0):
            raise ValueError(f"ttl must be positive, got {ttl}.")

        now = self.clock()
        entry = CacheEntry(
            endpoint=endpoint,
            params_key=canonical_params_key(params),
            payload=payload,
            fetched_at=now,
            expires_at=now + ttl,
        )
        try:
            cache_id = self.repo.replace(entry)
            self.repo.commit()
        except Exception:
            self.repo.rollback()
            raise
        logger.info(
            "Cached response for %s %s (ttl=%ss)",
            endpoint, entry.params_key, int(ttl.total_seconds()),
        )
        return entry.model_copy(update={"cache_id": cache_id})

    def purge_expired(self) -> int:
        """Delete every expired entry and commit. Returns rows removed."""
        removed = self.repo.delete_expired(self.clock())
        self.repo.commit()
        logger.info("Purged %d expired cache entr%s", removed, "y" if removed == 1 else "ies")
        return removed
