"""
SQLite schema DDL — all CREATE TABLE and CREATE INDEX statements.

All statements use ``IF NOT EXISTS`` so ``apply_schema()`` is idempotent.

Tables:
  1. items       — canonical item documents; ``stats`` and ``professions`` are
                   JSON arrays embedded in the row.
  2. api_cache   — cached external API responses keyed by
                   (endpoint, params_key).
  3. sync_runs   — pipeline stage audit log.

``items.external_id`` carries a partial UNIQUE index: two concurrent syncs of
the same external item fail loudly with ``IntegrityError`` instead of
producing a duplicate row.
"""

from __future__ import annotations

import logging
import sqlite3

logger = logging.getLogger(__name__)

# ── DDL statements ─────────────────────────────────────────────────────────────

_DDL_ITEMS = """
CREATE TABLE IF NOT EXISTS items (
    item_id         INTEGER PRIMARY KEY AUTOINCREMENT,
    name            TEXT    NOT NULL CHECK (length(trim(name)) > 0),
    description     TEXT,
    item_type       TEXT    NOT NULL DEFAULT 'unknown',
    category        TEXT,
    sub_category    TEXT,
    sub_type        TEXT,
    min_level       INTEGER NOT NULL DEFAULT 1 CHECK (min_level >= 1),
    learnable       INTEGER NOT NULL DEFAULT 0,
    stats           TEXT    NOT NULL DEFAULT '[]',
    professions     TEXT    NOT NULL DEFAULT '[]',
    external_id     TEXT,
    last_synced_at  TEXT,
    created_at      TEXT    NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now')),
    updated_at      TEXT    NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now'))
);
"""

_DDL_ITEMS_INDEXES = """
CREATE INDEX IF NOT EXISTS idx_items_item_type
    ON items (item_type);
CREATE INDEX IF NOT EXISTS idx_items_category
    ON items (category);
CREATE INDEX IF NOT EXISTS idx_items_min_level
    ON items (min_level);
CREATE INDEX IF NOT EXISTS idx_items_learnable
    ON items (learnable);
CREATE UNIQUE INDEX IF NOT EXISTS idx_items_external_id
    ON items (external_id) WHERE external_id IS NOT NULL;
CREATE INDEX IF NOT EXISTS idx_items_category_item_type
    ON items (category, item_type);
CREATE INDEX IF NOT EXISTS idx_items_min_level_item_type
    ON items (min_level, item_type);
CREATE INDEX IF NOT EXISTS idx_items_learnable_category
    ON items (learnable, category);
"""

_DDL_API_CACHE = """
CREATE TABLE IF NOT EXISTS api_cache (
    cache_id        INTEGER PRIMARY KEY AUTOINCREMENT,
    endpoint        TEXT    NOT NULL,
    params_key      TEXT    NOT NULL,
    payload         TEXT    NOT NULL,
    fetched_at      TEXT    NOT NULL,
    expires_at      TEXT    NOT NULL
);
"""

_DDL_API_CACHE_INDEXES = """
CREATE INDEX IF NOT EXISTS idx_api_cache_endpoint_params
    ON api_cache (endpoint, params_key);
CREATE INDEX IF NOT EXISTS idx_api_cache_expires_at
    ON api_cache (expires_at);
"""

_DDL_SYNC_RUNS = """
CREATE TABLE IF NOT EXISTS sync_runs (
    run_id          INTEGER PRIMARY KEY AUTOINCREMENT,
    run_slug        TEXT    NOT NULL UNIQUE,
    pipeline_stage  TEXT    NOT NULL,
    status          TEXT    NOT NULL DEFAULT 'started',
    request_params  TEXT    NOT NULL DEFAULT '{}',
    from_cache      INTEGER NOT NULL DEFAULT 0,
    config_snapshot TEXT    NOT NULL DEFAULT '{}',
    rows_processed  INTEGER NOT NULL DEFAULT 0,
    error_message   TEXT,
    started_at      TEXT    NOT NULL,
    finished_at     TEXT
);
"""

_DDL_SYNC_RUNS_INDEXES = """
CREATE INDEX IF NOT EXISTS idx_sync_runs_stage_started
    ON sync_runs (pipeline_stage, started_at);
"""

_ALL_DDL: list[str] = [
    _DDL_ITEMS,
    _DDL_ITEMS_INDEXES,
    _DDL_API_CACHE,
    _DDL_API_CACHE_INDEXES,
    _DDL_SYNC_RUNS,
    _DDL_SYNC_RUNS_INDEXES,
]

ALL_TABLE_NAMES = [
    "items",
    "api_cache",
    "sync_runs",
]


def apply_schema(conn: sqlite3.Connection) -> None:
    """Apply all DDL statements to ``conn``.

    Idempotent; safe to call on an already-initialized database.

    Args:
        conn: An open ``sqlite3.Connection``.
    """
    logger.debug("Applying schema to database...")

    for ddl in _ALL_DDL:
        for statement in _split_ddl(ddl):
            conn.execute(statement)

    conn.commit()
    logger.info("Schema applied: %d tables, indexes created/verified.", len(ALL_TABLE_NAMES))


def _split_ddl(ddl: str) -> list[str]:
    """Split a multi-statement DDL block on semicolons."""
    return [s.strip() for s in ddl.split(";") if s.strip()]


def get_existing_tables(conn: sqlite3.Connection) -> list[str]:
    """Return the sorted table names present in the database."""
    rows = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' ORDER BY name;"
    ).fetchall()
    return [row["name"] for row in rows]


def get_existing_indexes(conn: sqlite3.Connection) -> list[str]:
    """Return the sorted index names present in the database."""
    rows = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='index' ORDER BY name;"
    ).fetchall()
    return [row["name"] for row in rows]
