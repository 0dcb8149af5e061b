"""
Repository for canonical item documents.

Stats and professions are stored as JSON arrays inside the ``items`` row, so
every read returns a complete ``Item`` and every write replaces the embedded
lists wholesale.

Scan order is always ``item_id`` ascending (insertion order), which is the
order the query engine paginates over.
"""

from __future__ import annotations

import logging
import sqlite3
from typing import Any, Optional

from item_sync.db.repositories.base import BaseRepository, decode_json, encode_json
from item_sync.models.item import Item, ItemProfession, ItemStat
from item_sync.utils.time_utils import from_iso, to_iso, utcnow

logger = logging.getLogger(__name__)

# Columns a patch may touch, mapped to their encoder.
_PATCHABLE_COLUMNS: dict[str, Any] = {
    "name": lambda v: v,
    "description": lambda v: v,
    "item_type": lambda v: v,
    "category": lambda v: v,
    "sub_category": lambda v: v,
    "sub_type": lambda v: v,
    "min_level": lambda v: int(v),
    "learnable": lambda v: int(bool(v)),
    "stats": lambda v: encode_json([_dump(s) for s in v]),
    "professions": lambda v: encode_json([_dump(p) for p in v]),
    "external_id": lambda v: v,
    "last_synced_at": to_iso,
}


class ItemRepository(BaseRepository):
    """Read/write access to the ``items`` table."""

    def insert(self, item: Item) -> int:
        """Insert a new item; the store assigns ``item_id`` and ``created_at``.

        Args:
            item: The ``Item`` to persist. ``item.item_id`` is ignored.

        Returns:
            The newly assigned ``item_id``.

        Raises:
            sqlite3.IntegrityError: If ``external_id`` is already stored.
        """
        self.execute(
            """
            INSERT INTO items (
                name, description, item_type, category, sub_category, sub_type,
                min_level, learnable, stats, professions, external_id, last_synced_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?);
            """,
            _item_values(item),
        )
        return self.last_insert_rowid()

    def replace(self, item_id: int, item: Item) -> bool:
        """Overwrite every mutable field of an existing row with ``item``.

        Identity (``item_id``) and ``created_at`` are preserved.

        Returns:
            ``True`` if a row was updated, ``False`` if ``item_id`` is unknown.
        """
        cursor = self.execute(
            """
            UPDATE items SET
                name           = ?,
                description    = ?,
                item_type      = ?,
                category       = ?,
                sub_category   = ?,
                sub_type       = ?,
                min_level      = ?,
                learnable      = ?,
                stats          = ?,
                professions    = ?,
                external_id    = ?,
                last_synced_at = ?,
                updated_at     = ?
            WHERE item_id = ?;
            """,
            (*_item_values(item), to_iso(utcnow()), item_id),
        )
        return cursor.rowcount > 0

    def patch(self, item_id: int, fields: dict[str, Any]) -> bool:
        """Update only the given columns of an existing row.

        Args:
            item_id: Row to update.
            fields: Column name → new value. Keys must be patchable columns.

        Returns:
            ``True`` if a row was updated, ``False`` if ``item_id`` is unknown.

        Raises:
            ValueError: If ``fields`` names a column that cannot be patched.
        """
        unknown = set(fields) - set(_PATCHABLE_COLUMNS)
        if unknown:
            raise ValueError(f"Cannot patch item columns: {sorted(unknown)}.")
        if not fields:
            return self.exists(item_id)

        assignments = ", ".join(f"{col} = ?" for col in fields)
        values = [_PATCHABLE_COLUMNS[col](val) for col, val in fields.items()]
        cursor = self.execute(
            f"UPDATE items SET {assignments}, updated_at = ? WHERE item_id = ?;",
            (*values, to_iso(utcnow()), item_id),
        )
        return cursor.rowcount > 0

    def delete(self, item_id: int) -> bool:
        """Delete a row. Returns ``False`` if ``item_id`` is unknown."""
        cursor = self.execute("DELETE FROM items WHERE item_id = ?;", (item_id,))
        return cursor.rowcount > 0

    def get_by_id(self, item_id: int) -> Optional[Item]:
        row = self.fetchone("SELECT * FROM items WHERE item_id = ?;", (item_id,))
        return _row_to_item(row) if row else None

    def get_by_external_id(self, external_id: str) -> Optional[Item]:
        """Point lookup on the unique ``external_id`` index."""
        row = self.fetchone(
            "SELECT * FROM items WHERE external_id = ?;", (external_id,)
        )
        return _row_to_item(row) if row else None

    def exists(self, item_id: int) -> bool:
        row = self.fetchone("SELECT 1 AS found FROM items WHERE item_id = ?;", (item_id,))
        return row is not None

    def find(
        self,
        category: Optional[str] = None,
        item_type: Optional[str] = None,
        learnable: Optional[bool] = None,
        min_level: Optional[int] = None,
        sub_category: Optional[str] = None,
        sub_type: Optional[str] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> list[Item]:
        """Scan items matching every supplied attribute filter.

        ``None`` arguments do not constrain the scan. ``min_level`` keeps items
        whose ``min_level`` is at least the threshold. Results are in
        ``item_id`` order; ``limit``/``offset`` slice that order.
        """
        clauses: list[str] = []
        params: list[Any] = []
        for column, value in (
            ("category", category),
            ("item_type", item_type),
            ("sub_category", sub_category),
            ("sub_type", sub_type),
        ):
            if value is not None:
                clauses.append(f"{column} = ?")
                params.append(value)
        if learnable is not None:
            clauses.append("learnable = ?")
            params.append(int(learnable))
        if min_level is not None:
            clauses.append("min_level >= ?")
            params.append(min_level)

        sql = "SELECT * FROM items"
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        sql += " ORDER BY item_id"
        if limit is not None:
            sql += " LIMIT ? OFFSET ?"
            params.extend([limit, offset])
        elif offset:
            sql += " LIMIT -1 OFFSET ?"
            params.append(offset)

        rows = self.fetchall(sql + ";", tuple(params))
        return [_row_to_item(r) for r in rows]

    def all(self) -> list[Item]:
        """Full collection scan in ``item_id`` order."""
        return self.find()

    def count(self) -> int:
        """Return total number of stored items."""
        row = self.fetchone("SELECT COUNT(*) AS n FROM items;")
        assert row is not None
        return int(row["n"])


# ── Private helpers ────────────────────────────────────────────────────────────

def _dump(model: Any) -> dict[str, Any]:
    if isinstance(model, (ItemStat, ItemProfession)):
        return model.model_dump(mode="json")
    return dict(model)


def _item_values(item: Item) -> tuple[Any, ...]:
    return (
        item.name,
        item.description,
        item.item_type,
        item.category,
        item.sub_category,
        item.sub_type,
        item.min_level,
        int(item.learnable),
        encode_json([s.model_dump(mode="json") for s in item.stats]),
        encode_json([p.model_dump(mode="json") for p in item.professions]),
        item.external_id,
        to_iso(item.last_synced_at),
    )


def _row_to_item(row: sqlite3.Row) -> Item:
    return Item(
        item_id=row["item_id"],
        name=row["name"],
        description=row["description"],
        item_type=row["item_type"],
        category=row["category"],
        sub_category=row["sub_category"],
        sub_type=row["sub_type"],
        min_level=row["min_level"],
        learnable=bool(row["learnable"]),
        stats=[ItemStat(**s) for s in decode_json(row["stats"], [])],
        professions=[ItemProfession(**p) for p in decode_json(row["professions"], [])],
        external_id=row["external_id"],
        last_synced_at=from_iso(row["last_synced_at"]),
        created_at=from_iso(row["created_at"]),
    )
