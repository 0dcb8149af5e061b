"""Tests for raw → canonical item normalization and batch extraction."""

from __future__ import annotations

import json

import pytest

from item_sync.errors import ItemValidationError
from item_sync.models.item import StatType
from item_sync.models.raw import RawItem
from item_sync.sync.normalizer import (
    classify_stat_type,
    coerce_profession_level,
    coerce_stat_value,
    extract_items_from_response,
    is_valid_raw_item,
    normalize,
    sample_item,
    validate_api_response,
)


class TestNormalizeDefaults:
    def test_minimal_item_gets_defaults(self):
        item = normalize({"name": "Pebble"})
        assert item.name == "Pebble"
        assert item.item_type == "unknown"
        assert item.min_level == 1
        assert item.learnable is False
        assert item.stats == []
        assert item.professions == []
        assert item.external_id is None
        assert item.last_synced_at is None

    def test_explicit_learnable_false_kept(self):
        assert normalize({"name": "X", "learnable": False}).learnable is False

    def test_learnable_true_kept(self):
        assert normalize({"name": "X", "learnable": True}).learnable is True

    def test_learnable_string_parsed(self):
        assert normalize({"name": "X", "learnable": "true"}).learnable is True
        assert normalize({"name": "X", "learnable": "false"}).learnable is False

    def test_camel_case_fields_mapped(self, sample_raw_item):
        item = normalize(sample_raw_item)
        assert item.item_type == "weapon"
        assert item.sub_category == "sword"
        assert item.sub_type == "magical"
        assert item.min_level == 10
        assert item.external_id == "sword_power_001"

    def test_numeric_external_id_stringified(self):
        assert normalize({"name": "X", "id": 42}).external_id == "42"

    def test_min_level_below_one_clamped(self):
        assert normalize({"name": "X", "minLevel": 0}).min_level == 1
        assert normalize({"name": "X", "minLevel": "junk"}).min_level == 1

    def test_min_level_beyond_storage_range_defaults(self):
        assert normalize({"name": "X", "minLevel": 10**20}).min_level == 1
        assert normalize({"name": "X", "minLevel": 2**63 - 1}).min_level == 2**63 - 1

    def test_accepts_raw_item_dataclass(self):
        raw = RawItem.from_payload({"name": "Lantern", "itemType": "tool"})
        assert normalize(raw).item_type == "tool"


class TestNormalizeRejects:
    @pytest.mark.parametrize("payload", [{}, {"name": ""}, {"name": "   "}, {"name": 7}])
    def test_invalid_name_raises(self, payload):
        with pytest.raises(ItemValidationError):
            normalize(payload)

    def test_non_object_raises(self):
        with pytest.raises(ItemValidationError, match="object"):
            normalize(["name", "x"])  # type: ignore[arg-type]


class TestStatCoercion:
    def test_numeric_values_kept(self):
        assert coerce_stat_value(150) == 150.0
        assert coerce_stat_value(2.5) == 2.5

    def test_numeric_strings_parsed(self):
        assert coerce_stat_value(" 18 ") == 18.0

    @pytest.mark.parametrize(
        "value", ["abc", None, float("nan"), float("inf"), True, [1], 10**400, "9" * 400]
    )
    def test_unusable_values_become_zero(self, value):
        assert coerce_stat_value(value) == 0.0

    def test_non_numeric_stat_normalized_to_zero(self):
        item = normalize({"name": "X", "stats": [{"name": "luck", "value": "lots"}]})
        assert item.stats[0].value == 0.0

    def test_oversized_json_integer_normalized_to_zero(self):
        payload = json.loads('{"name": "X", "stats": [{"name": "luck", "value": ' + "9" * 400 + "}]}")
        assert normalize(payload).stats[0].value == 0.0


class TestStatClassification:
    @pytest.mark.parametrize("name, expected", [
        ("attack_power", StatType.CORE),
        ("Max Health", StatType.CORE),
        ("durability", StatType.CORE),
        ("strength", StatType.PRIMARY),
        ("AGILITY_BONUS", StatType.PRIMARY),
        ("critical_chance", StatType.GENERAL),
        ("magic_resistance", StatType.GENERAL),
    ])
    def test_classified_by_name(self, name, expected):
        assert classify_stat_type(None, name) == expected

    def test_core_vocabulary_checked_first(self):
        assert classify_stat_type(None, "strength_and_stamina") == StatType.CORE

    def test_explicit_type_wins_case_insensitive(self):
        assert classify_stat_type("Core", "critical_chance") == StatType.CORE
        assert classify_stat_type("PRIMARY", "magic_resistance") == StatType.PRIMARY

    def test_unknown_explicit_type_is_general(self):
        assert classify_stat_type("legendary", "attack_power") == StatType.GENERAL

    def test_sample_item_stats(self):
        stats = {s.name: s.type for s in sample_item().stats}
        assert stats == {
            "attack_power": StatType.CORE,
            "durability": StatType.CORE,
            "magic_resistance": StatType.PRIMARY,
            "critical_chance": StatType.GENERAL,
        }


class TestProfessionCoercion:
    @pytest.mark.parametrize("value, expected", [
        (5, 5),
        ("7", 7),
        ("3.7", 3),
        (0, 1),
        (-4, 1),
        ("expert", 1),
        (None, 1),
        (False, 1),
    ])
    def test_levels(self, value, expected):
        assert coerce_profession_level(value) == expected

    def test_profession_order_preserved(self, sample_raw_item):
        names = [p.name for p in normalize(sample_raw_item).professions]
        assert names == ["warrior", "paladin"]


class TestExtraction:
    def test_bare_list(self):
        assert len(extract_items_from_response([{"name": "A"}, {"name": "B"}])) == 2

    def test_envelope_drops_invalid_entries(self):
        extracted = extract_items_from_response({"items": [{"name": "A"}, {"name": ""}]})
        assert extracted == [{"name": "A"}]

    def test_non_object_entries_dropped(self):
        assert extract_items_from_response([{"name": "A"}, "B", None, {"name": 3}]) == [
            {"name": "A"}
        ]

    @pytest.mark.parametrize("payload", [None, "x", {"data": []}, {"items": "nope"}, 12])
    def test_unknown_shapes_yield_empty(self, payload):
        assert extract_items_from_response(payload) == []

    def test_validate_api_response(self):
        assert validate_api_response({"items": [{"name": "A"}]}) is True
        assert validate_api_response([{"name": "A"}, {"name": " "}]) is False
        assert validate_api_response({"total": 0}) is False

    def test_is_valid_raw_item(self):
        assert is_valid_raw_item({"name": "A"}) is True
        assert is_valid_raw_item({"name": "  "}) is False
        assert is_valid_raw_item("A") is False
