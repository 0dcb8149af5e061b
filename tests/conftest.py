"""
Shared pytest fixtures for the item-sync test suite.

Provides:
  - ``in_memory_db``: A fresh in-memory SQLite connection with the full
    schema applied. Created anew for each test that requests it.
  - ``FrozenClock``: a settable "now" for cache-expiry and sync-stamp tests.
  - Sample raw payload and config factories used across test modules.
"""

from __future__ import annotations

import sqlite3
from datetime import datetime, timedelta, timezone
from typing import Any, Generator

import pytest

from item_sync.config import AppConfig, ApiConfig, DatabaseConfig
from item_sync.db.schema import apply_schema
from item_sync.sync.normalizer import SAMPLE_RAW_ITEM


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


# ── Database fixture ──────────────────────────────────────────────────────────

@pytest.fixture
def in_memory_db() -> Generator[sqlite3.Connection, None, None]:
    """Yield a fresh in-memory SQLite connection with the full schema applied.

    Connection is closed after the test.
    """
    conn = sqlite3.connect(":memory:")
    conn.row_factory = sqlite3.Row
    apply_schema(conn)
    yield conn
    conn.close()


# ── Clock and config ──────────────────────────────────────────────────────────

@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(datetime(2024, 9, 15, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def app_config(tmp_path) -> AppConfig:
    """An ``AppConfig`` pointing at a throwaway on-disk database."""
    return AppConfig(
        database=DatabaseConfig(db_path=str(tmp_path / "item_sync.db")),
        api=ApiConfig(base_url="https://api.test", cache_ttl_seconds=300),
    )


# ── Sample payloads ───────────────────────────────────────────────────────────

@pytest.fixture
def sample_raw_item() -> dict[str, Any]:
    """The API-shaped sample item (explicitly typed stats, two professions)."""
    return dict(SAMPLE_RAW_ITEM)


@pytest.fixture
def raw_batch() -> list[dict[str, Any]]:
    """Three API-shaped items with external ids."""
    return [
        {
            "id": "ext-a",
            "name": "Iron Helm",
            "itemType": "armor",
            "category": "combat",
            "minLevel": 5,
            "stats": [{"name": "defense", "value": 12}],
            "professions": [{"name": "blacksmith", "level": 2}],
        },
        {
            "id": "ext-b",
            "name": "Recipe: Stew",
            "itemType": "recipe",
            "category": "cooking",
            "learnable": True,
        },
        {
            "id": "ext-c",
            "name": "Oak Staff",
            "itemType": "weapon",
            "category": "combat",
            "minLevel": 12,
            "stats": [
                {"name": "intelligence", "value": "18"},
                {"name": "critical_chance", "value": 3},
            ],
        },
    ]
