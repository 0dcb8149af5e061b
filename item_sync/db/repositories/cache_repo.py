"""
Repository for cached external API responses (``api_cache`` table).

``replace()`` is the only write path: it deletes every row with the same
(endpoint, params_key) and inserts the new one in the same transaction, so
readers never observe two live entries for one key. Like every repository,
it leaves the commit to the caller.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime
from typing import Optional

from item_sync.db.repositories.base import BaseRepository, decode_json, encode_json
from item_sync.models.cache import CacheEntry
from item_sync.utils.time_utils import from_iso, to_iso

logger = logging.getLogger(__name__)


class ApiCacheRepository(BaseRepository):
    """Read/write access to the ``api_cache`` table."""

    def get_latest(self, endpoint: str, params_key: str) -> Optional[CacheEntry]:
        """Return the most recently fetched entry for a key, live or not."""
        row = self.fetchone(
            """
            SELECT * FROM api_cache
            WHERE endpoint = ? AND params_key = ?
            ORDER BY fetched_at DESC, cache_id DESC
            LIMIT 1;
            """,
            (endpoint, params_key),
        )
        return _row_to_entry(row) if row else None

    def replace(self, entry: CacheEntry) -> int:
        """Delete entries with the same key and insert ``entry`` (not committed).

        Returns:
            The new ``cache_id``.
        """
        deleted = self.delete_key(entry.endpoint, entry.params_key)
        self.execute(
            """
            INSERT INTO api_cache (endpoint, params_key, payload, fetched_at, expires_at)
            VALUES (?, ?, ?, ?, ?);
            """,
            (
                entry.endpoint,
                entry.params_key,
                encode_json(entry.payload),
                to_iso(entry.fetched_at),
                to_iso(entry.expires_at),
            ),
        )
        cache_id = self.last_insert_rowid()
        if deleted:
            logger.debug(
                "api_cache: replaced %d prior entr%s for %s %s",
                deleted, "y" if deleted == 1 else "ies", entry.endpoint, entry.params_key,
            )
        return cache_id

    def delete_key(self, endpoint: str, params_key: str) -> int:
        """Delete all entries for a key. Returns the number of rows removed."""
        cursor = self.execute(
            "DELETE FROM api_cache WHERE endpoint = ? AND params_key = ?;",
            (endpoint, params_key),
        )
        return cursor.rowcount

    def delete_expired(self, now: datetime) -> int:
        """Delete entries whose ``expires_at`` is at or before ``now``.

        Stored timestamps are ISO-8601 UTC strings, so they compare correctly
        as text.
        """
        cursor = self.execute(
            "DELETE FROM api_cache WHERE expires_at <= ?;", (to_iso(now),)
        )
        return cursor.rowcount

    def count(self) -> int:
        row = self.fetchone("SELECT COUNT(*) AS n FROM api_cache;")
        assert row is not None
        return int(row["n"])


def _row_to_entry(row: sqlite3.Row) -> CacheEntry:
    return CacheEntry(
        cache_id=row["cache_id"],
        endpoint=row["endpoint"],
        params_key=row["params_key"],
        payload=decode_json(row["payload"]),
        fetched_at=from_iso(row["fetched_at"]),
        expires_at=from_iso(row["expires_at"]),
    )
