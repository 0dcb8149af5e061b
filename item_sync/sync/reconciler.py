"""
Sync reconciler — the single write path for ingesting external item data.

For each raw item, in input order:
  1. normalize it,
  2. if it carries an ``external_id`` and a stored item has that id,
     overwrite the stored item's mutable fields (identity preserved),
  3. otherwise insert a new item,
  4. stamp ``last_synced_at`` and commit.

Each item is its own transaction. If an item fails, only that item's partial
write is rolled back; items already reconciled in the same call stay
committed, and the error propagates to the caller.

Concurrent reconcilers are not coordinated here. The partial UNIQUE index on
``items.external_id`` makes a racing duplicate insert fail with
``sqlite3.IntegrityError`` rather than silently duplicating the record.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from item_sync.db.repositories.item_repo import ItemRepository
from item_sync.models.raw import RawItem
from item_sync.sync.normalizer import normalize
from item_sync.utils.time_utils import Clock, utcnow

logger = logging.getLogger(__name__)


@dataclass
class ReconcileSummary:
    """Outcome of one ``reconcile()`` call.

    Attributes:
        item_ids: Resulting ``item_id`` per input item, in input order.
        inserted: Number of new rows created.
        updated: Number of existing rows overwritten.
    """

    item_ids: list[int] = field(default_factory=list)
    inserted: int = 0
    updated: int = 0


class SyncReconciler:
    """Upserts batches of raw items into the ``items`` table by external id.

    Args:
        repo: Item repository bound to an open connection.
        clock: Returns "now" for ``last_synced_at``.
    """

    def __init__(self, repo: ItemRepository, clock: Clock = utcnow) -> None:
        self.repo = repo
        self.clock = clock

    def reconcile(self, batch: Iterable[RawItem | Mapping[str, Any]]) -> list[int]:
        """Upsert every raw item and return their ids in input order.

        Raises:
            ItemValidationError: If an item's name is missing/blank. Items
                before it remain committed.
            sqlite3.Error: On storage failure for an item (same guarantee).
        """
        return self.reconcile_with_summary(batch).item_ids

    def reconcile_with_summary(
        self, batch: Iterable[RawItem | Mapping[str, Any]]
    ) -> ReconcileSummary:
        """Same as ``reconcile()`` but also reports insert/update counts."""
        summary = ReconcileSummary()
        for position, raw in enumerate(batch):
            try:
                item_id, was_update = self._upsert_one(raw)
                self.repo.commit()
            except Exception:
                self.repo.rollback()
                logger.error(
                    "Reconcile failed at batch position %d after %d item(s) committed",
                    position, len(summary.item_ids),
                )
                raise

            summary.item_ids.append(item_id)
            if was_update:
                summary.updated += 1
            else:
                summary.inserted += 1

        logger.info(
            "Reconciled %d item(s): inserted=%d updated=%d",
            len(summary.item_ids), summary.inserted, summary.updated,
        )
        return summary

    def _upsert_one(self, raw: RawItem | Mapping[str, Any]) -> tuple[int, bool]:
        """Normalize and write one item. Returns ``(item_id, was_update)``."""
        item = normalize(raw).model_copy(update={"last_synced_at": self.clock()})

        if item.external_id is not None:
            existing = self.repo.get_by_external_id(item.external_id)
            if existing is not None and existing.item_id is not None:
                self.repo.replace(existing.item_id, item)
                logger.debug(
                    "Updated item %d from external_id=%s", existing.item_id, item.external_id
                )
                return existing.item_id, True

        item_id = self.repo.insert(item)
        logger.debug("Inserted item %d (external_id=%s)", item_id, item.external_id)
        return item_id, False
