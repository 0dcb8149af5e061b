"""
Item catalog — single-item create/read/update/delete.

This is the manual-edit surface next to the bulk sync path. Unlike batch
extraction, which silently drops malformed entries, ``add_item()`` rejects an
invalid item with ``ItemValidationError`` and writes nothing. Operations on an
unknown ``item_id`` raise ``ItemNotFoundError``.

Writes are committed by the caller's connection context (``get_connection()``).
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from item_sync.db.repositories.item_repo import ItemRepository
from item_sync.errors import ItemNotFoundError
from item_sync.models.item import Item, ItemUpdate
from item_sync.models.raw import RawItem
from item_sync.sync.normalizer import normalize
from item_sync.utils.time_utils import Clock, utcnow

logger = logging.getLogger(__name__)

# Columns that may not be patched to NULL.
_NON_NULLABLE_UPDATE_FIELDS = frozenset({"name", "item_type", "min_level", "learnable"})


class ItemCatalog:
    """CRUD over the ``items`` table.

    Args:
        repo: Item repository bound to an open connection.
        clock: Returns "now" for ``last_synced_at`` on insert.
    """

    def __init__(self, repo: ItemRepository, clock: Clock = utcnow) -> None:
        self.repo = repo
        self.clock = clock

    def add_item(self, item: Item | RawItem | Mapping[str, Any]) -> int:
        """Insert one item and return its new ``item_id``.

        Raw payloads (``RawItem`` or API-shaped mappings) go through the
        normalizer first; an already-canonical ``Item`` is stored as given.

        Raises:
            ItemValidationError: If a raw payload's name is missing or blank.
        """
        if not isinstance(item, Item):
            item = normalize(item)
        item_id = self.repo.insert(
            item.model_copy(update={"last_synced_at": self.clock()})
        )
        logger.info("Added item %d '%s'", item_id, item.name)
        return item_id

    def get_item(self, item_id: int) -> Item:
        """Fetch one item.

        Raises:
            ItemNotFoundError: If ``item_id`` is unknown.
        """
        item = self.repo.get_by_id(item_id)
        if item is None:
            raise ItemNotFoundError(item_id)
        return item

    def update_item(self, item_id: int, update: ItemUpdate) -> Item:
        """Apply a partial update and return the updated item.

        Only fields explicitly set on ``update`` are written; explicit ``None``
        on a non-nullable field is ignored.

        Raises:
            ItemNotFoundError: If ``item_id`` is unknown.
        """
        fields = {
            key: value
            for key, value in update.model_dump(exclude_unset=True).items()
            if not (value is None and key in _NON_NULLABLE_UPDATE_FIELDS)
        }
        if "stats" in fields and fields["stats"] is not None:
            fields["stats"] = list(update.stats or [])
        elif "stats" in fields:
            fields.pop("stats")
        if "professions" in fields and fields["professions"] is not None:
            fields["professions"] = list(update.professions or [])
        elif "professions" in fields:
            fields.pop("professions")

        if not self.repo.patch(item_id, fields):
            raise ItemNotFoundError(item_id)
        logger.info("Updated item %d fields=%s", item_id, sorted(fields))
        return self.get_item(item_id)

    def delete_item(self, item_id: int) -> None:
        """Delete one item.

        Raises:
            ItemNotFoundError: If ``item_id`` is unknown.
        """
        if not self.repo.delete(item_id):
            raise ItemNotFoundError(item_id)
        logger.info("Deleted item %d", item_id)

    def count(self) -> int:
        return self.repo.count()
