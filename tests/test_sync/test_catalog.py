"""Tests for single-item catalog operations."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from item_sync.db.repositories.item_repo import ItemRepository
from item_sync.errors import ItemNotFoundError, ItemValidationError
from item_sync.models.item import Item, ItemStat, ItemUpdate, StatType
from item_sync.sync.catalog import ItemCatalog


@pytest.fixture
def catalog(in_memory_db, clock) -> ItemCatalog:
    return ItemCatalog(ItemRepository(in_memory_db), clock=clock)


class TestAddItem:
    def test_add_raw_payload(self, catalog, sample_raw_item, clock):
        item_id = catalog.add_item(sample_raw_item)
        item = catalog.get_item(item_id)
        assert item.name == "Sword of Power"
        assert len(item.stats) == 4
        assert item.last_synced_at == clock.now

    def test_add_canonical_item(self, catalog):
        item_id = catalog.add_item(Item(name="Torch", item_type="tool"))
        assert catalog.get_item(item_id).item_type == "tool"

    def test_invalid_raw_rejected_and_nothing_written(self, catalog):
        with pytest.raises(ItemValidationError):
            catalog.add_item({"name": "  "})
        assert catalog.count() == 0


class TestGetItem:
    def test_unknown_raises(self, catalog):
        with pytest.raises(ItemNotFoundError, match="Item 404 not found"):
            catalog.get_item(404)


class TestUpdateItem:
    def test_partial_update(self, catalog):
        item_id = catalog.add_item({"name": "Torch", "minLevel": 3, "category": "tools"})
        updated = catalog.update_item(item_id, ItemUpdate(min_level=8))
        assert updated.min_level == 8
        assert updated.name == "Torch"
        assert updated.category == "tools"

    def test_replaces_stats(self, catalog):
        item_id = catalog.add_item({"name": "Torch", "stats": [{"name": "light", "value": 1}]})
        new_stats = [ItemStat(name="heat", value=4, type=StatType.GENERAL)]
        updated = catalog.update_item(item_id, ItemUpdate(stats=new_stats))
        assert updated.stats == new_stats

    def test_explicit_none_on_required_field_ignored(self, catalog):
        item_id = catalog.add_item({"name": "Torch"})
        updated = catalog.update_item(item_id, ItemUpdate(name=None, description="Lit"))
        assert updated.name == "Torch"
        assert updated.description == "Lit"

    def test_unknown_raises(self, catalog):
        with pytest.raises(ItemNotFoundError):
            catalog.update_item(999, ItemUpdate(name="Ghost"))

    def test_blank_name_rejected_by_model(self):
        with pytest.raises(ValidationError):
            ItemUpdate(name=" ")


class TestDeleteItem:
    def test_delete(self, catalog):
        item_id = catalog.add_item({"name": "Torch"})
        catalog.delete_item(item_id)
        with pytest.raises(ItemNotFoundError):
            catalog.get_item(item_id)

    def test_unknown_raises(self, catalog):
        with pytest.raises(ItemNotFoundError) as exc_info:
            catalog.delete_item(7)
        assert exc_info.value.item_id == 7


class TestMinLevelRange:
    def test_update_beyond_storage_range_rejected(self):
        with pytest.raises(ValidationError, match="min_level"):
            ItemUpdate(min_level=2**63)

    def test_item_beyond_storage_range_rejected(self):
        with pytest.raises(ValidationError, match="min_level"):
            Item(name="Torch", min_level=2**63)
