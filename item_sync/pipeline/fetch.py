"""
FetchItemsStage — pull items from the external API and reconcile them.

Steps:
  1. Look up the request in the response cache (unless ``use_cache=False``).
  2. On miss/expiry, GET the API and cache the payload (TTL from
     ``config.api.cache_ttl_seconds``).
  3. Extract valid raw items (malformed entries dropped).
  4. Reconcile them into ``items`` by ``external_id``.

Transactions: the cache write in step 2 commits on its own, before any item
write exists on the connection (step 1 only reads). Step 4 then commits once
per item, so a failing item never takes the cached payload down with it.

An ``UpstreamFetchError`` aborts the stage before anything is cached or
reconciled; the run is recorded as failed and the error re-raised.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Optional

from item_sync.config import AppConfig, api_key_from_env
from item_sync.db.repositories.cache_repo import ApiCacheRepository
from item_sync.db.repositories.item_repo import ItemRepository
from item_sync.ingestion.api_client import ItemsApiClient
from item_sync.models.meta import RunMetadata
from item_sync.models.query import FetchParams
from item_sync.pipeline.base import PipelineStage
from item_sync.sync.cache import ResponseCache
from item_sync.sync.fetcher import ItemFetcher
from item_sync.sync.normalizer import extract_items_from_response
from item_sync.sync.reconciler import SyncReconciler
from item_sync.utils.time_utils import Clock, utcnow

logger = logging.getLogger(__name__)


class FetchItemsStage(PipelineStage):
    """Cache-aware fetch + reconcile of one page of API results.

    Args:
        config: Application config.
        db_path: Optional database path override.
        client: Optional pre-built API client (tests inject one with a mock
            transport); defaults to one built from ``config.api``.
        clock: Source of "now".
    """

    stage_name = "fetch"

    def __init__(
        self,
        config: AppConfig,
        db_path: str | None = None,
        client: Optional[ItemsApiClient] = None,
        clock: Clock = utcnow,
    ) -> None:
        super().__init__(config, db_path=db_path, clock=clock)
        self.client = client or ItemsApiClient.from_config(config.api, api_key=api_key_from_env())

    def _describe_request(self, params: Optional[FetchParams] = None, **kwargs) -> dict:
        described = (params or FetchParams()).to_api_params()
        described.update(super()._describe_request(**kwargs))
        return described

    def _execute(
        self,
        run: RunMetadata,
        params: Optional[FetchParams] = None,
        use_cache: bool = True,
        **kwargs,
    ) -> int:
        """Fetch, extract and reconcile.

        Returns:
            Number of items reconciled.
        """
        ttl = timedelta(seconds=self.config.api.cache_ttl_seconds)

        with self.connect() as conn:
            cache = ResponseCache(ApiCacheRepository(conn), default_ttl=ttl, clock=self.clock)
            fetcher = ItemFetcher(self.client, cache)
            result = fetcher.fetch(params, use_cache=use_cache)
            run.from_cache = result.from_cache

            raw_items = extract_items_from_response(result.payload)
            reconciler = SyncReconciler(ItemRepository(conn), clock=self.clock)
            summary = reconciler.reconcile_with_summary(raw_items)

        logger.info(
            "FetchItemsStage: cache=%s extracted=%d inserted=%d updated=%d",
            result.cache_status, len(raw_items), summary.inserted, summary.updated,
        )
        return len(summary.item_ids)
