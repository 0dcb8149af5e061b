"""
Cache-aware fetch of the external item list.

Flow for one request:
  params → ResponseCache.lookup → hit: return cached payload
                                → miss/expired: API GET → ResponseCache.store
                                                        → return payload

A failed API call raises ``UpstreamFetchError`` before anything is written to
the cache, so a failure never leaves a partial or empty entry behind.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Optional

from item_sync.ingestion.api_client import ItemsApiClient
from item_sync.models.cache import CacheStatus
from item_sync.models.query import FetchParams
from item_sync.sync.cache import ResponseCache

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FetchResult:
    """A fetched payload and where it came from."""

    payload: Any
    from_cache: bool
    cache_status: CacheStatus
    fetched_at: datetime


class ItemFetcher:
    """Fetches item payloads through the response cache.

    Args:
        client: External API client.
        cache: Response cache bound to an open connection.
        ttl: Lifetime of newly cached payloads; ``None`` uses the cache default.
    """

    def __init__(
        self,
        client: ItemsApiClient,
        cache: ResponseCache,
        ttl: Optional[timedelta] = None,
    ) -> None:
        self.client = client
        self.cache = cache
        self.ttl = ttl

    def fetch(self, params: Optional[FetchParams] = None, use_cache: bool = True) -> FetchResult:
        """Return the payload for ``params``, from cache when a live entry exists.

        Args:
            params: API query parameters.
            use_cache: If ``False``, skip the lookup (the fresh payload is still
                stored).

        Raises:
            UpstreamFetchError: On any API failure (cache untouched).
        """
        params = params or FetchParams()
        endpoint = self.client.endpoint

        status = CacheStatus.MISS
        if use_cache:
            lookup = self.cache.lookup(endpoint, params)
            if lookup.hit and lookup.entry is not None:
                logger.info("Serving %s from cache (fetched %s)", endpoint, lookup.entry.fetched_at)
                return FetchResult(
                    payload=lookup.payload,
                    from_cache=True,
                    cache_status=CacheStatus.HIT,
                    fetched_at=lookup.entry.fetched_at,
                )
            status = lookup.status

        payload = self.client.fetch_items(params)
        entry = self.cache.store(endpoint, params, payload, ttl=self.ttl)
        return FetchResult(
            payload=payload,
            from_cache=False,
            cache_status=status,
            fetched_at=entry.fetched_at,
        )
