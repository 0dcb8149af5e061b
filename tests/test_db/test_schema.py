"""Tests for SQLite schema — idempotency, table/index creation, constraints."""

from __future__ import annotations

import sqlite3

import pytest

from item_sync.db.schema import (
    ALL_TABLE_NAMES,
    apply_schema,
    get_existing_indexes,
    get_existing_tables,
)


class TestApplySchema:
    def test_all_tables_created(self, in_memory_db):
        tables = get_existing_tables(in_memory_db)
        for expected_table in ALL_TABLE_NAMES:
            assert expected_table in tables, (
                f"Expected table '{expected_table}' not found. Found: {tables}"
            )

    def test_idempotent_double_apply(self, in_memory_db):
        """apply_schema() called twice must not raise errors."""
        apply_schema(in_memory_db)
        tables = get_existing_tables(in_memory_db)
        assert len(tables) >= len(ALL_TABLE_NAMES)

    def test_key_indexes_created(self, in_memory_db):
        indexes = get_existing_indexes(in_memory_db)
        for idx in (
            "idx_items_item_type",
            "idx_items_category",
            "idx_items_min_level",
            "idx_items_learnable",
            "idx_items_external_id",
            "idx_items_category_item_type",
            "idx_items_min_level_item_type",
            "idx_items_learnable_category",
            "idx_api_cache_endpoint_params",
        ):
            assert idx in indexes, f"Index '{idx}' not found."


class TestItemConstraints:
    def _insert(self, conn, name="Thing", external_id=None, min_level=1):
        conn.execute(
            "INSERT INTO items (name, external_id, min_level) VALUES (?, ?, ?);",
            (name, external_id, min_level),
        )

    def test_blank_name_rejected(self, in_memory_db):
        with pytest.raises(sqlite3.IntegrityError):
            self._insert(in_memory_db, name="   ")

    def test_min_level_below_one_rejected(self, in_memory_db):
        with pytest.raises(sqlite3.IntegrityError):
            self._insert(in_memory_db, min_level=0)

    def test_duplicate_external_id_rejected(self, in_memory_db):
        self._insert(in_memory_db, external_id="dup")
        with pytest.raises(sqlite3.IntegrityError):
            self._insert(in_memory_db, external_id="dup")

    def test_many_null_external_ids_allowed(self, in_memory_db):
        self._insert(in_memory_db)
        self._insert(in_memory_db)
        row = in_memory_db.execute("SELECT COUNT(*) AS n FROM items;").fetchone()
        assert row["n"] == 2

    def test_defaults_applied(self, in_memory_db):
        self._insert(in_memory_db)
        row = in_memory_db.execute("SELECT * FROM items;").fetchone()
        assert row["item_type"] == "unknown"
        assert row["learnable"] == 0
        assert row["stats"] == "[]"
        assert row["created_at"] is not None
