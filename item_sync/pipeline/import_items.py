"""
ImportItemsStage — reconcile items from a saved API payload on disk.

Accepts the same shapes as the live API (a bare JSON array or an object with an
``items`` array), so a response captured with ``curl`` can be replayed offline.
Malformed entries are dropped exactly as in a live fetch.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from item_sync.db.repositories.item_repo import ItemRepository
from item_sync.models.meta import RunMetadata
from item_sync.pipeline.base import PipelineStage
from item_sync.sync.normalizer import extract_items_from_response
from item_sync.sync.reconciler import SyncReconciler

logger = logging.getLogger(__name__)


class ImportItemsStage(PipelineStage):
    """Reconcile the items found in a local JSON file."""

    stage_name = "import"

    def _execute(self, run: RunMetadata, source_path: str | Path | None = None, **kwargs) -> int:
        """Load, extract and reconcile.

        Args:
            run: In-progress run record.
            source_path: JSON file to import.

        Returns:
            Number of items reconciled.

        Raises:
            ValueError: If ``source_path`` is not given.
            FileNotFoundError: If the file does not exist.
            json.JSONDecodeError: If the file is not valid JSON.
        """
        if source_path is None:
            raise ValueError("ImportItemsStage requires source_path.")
        path = Path(source_path)

        with open(path, encoding="utf-8") as f:
            payload = json.load(f)

        raw_items = extract_items_from_response(payload)
        logger.info("ImportItemsStage: %d valid item(s) in %s", len(raw_items), path)

        with self.connect() as conn:
            reconciler = SyncReconciler(ItemRepository(conn), clock=self.clock)
            ids = reconciler.reconcile(raw_items)
        return len(ids)
