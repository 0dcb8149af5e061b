"""Tests for filtered, paginated item queries."""

from __future__ import annotations

import pytest

from item_sync.db.repositories.item_repo import ItemRepository
from item_sync.models.item import Item, ItemProfession, ItemStat, StatType
from item_sync.models.query import ItemFilter, Page, ProfessionFilter, StatFilter
from item_sync.sync.query_engine import ItemQueryEngine, paginate


def _stat(name: str, value: float, type_: StatType = StatType.GENERAL) -> ItemStat:
    return ItemStat(name=name, value=value, type=type_)


@pytest.fixture
def repo(in_memory_db) -> ItemRepository:
    return ItemRepository(in_memory_db)


@pytest.fixture
def engine(repo) -> ItemQueryEngine:
    return ItemQueryEngine(repo)


class TestPaginate:
    def test_window(self):
        assert paginate(list(range(10)), Page(offset=3, limit=4)) == [3, 4, 5, 6]

    def test_past_end_is_empty(self):
        assert paginate([1, 2], Page(offset=5, limit=10)) == []

    def test_invalid_page_rejected(self):
        with pytest.raises(ValueError):
            Page(offset=-1)
        with pytest.raises(ValueError):
            Page(limit=0)


class TestQueryItems:
    def test_last_partial_page(self, engine, repo):
        for n in range(120):
            repo.insert(Item(name=f"Item {n}", category="combat"))
        results = engine.query_items(ItemFilter(category="combat"), Page(offset=100, limit=50))
        assert len(results) == 20
        assert results[0].name == "Item 100"

    def test_default_page_size(self, engine, repo):
        for n in range(60):
            repo.insert(Item(name=f"Item {n}"))
        assert len(engine.query_items()) == 50

    def test_filters_are_conjunctive(self, engine, repo):
        repo.insert(Item(name="A", category="combat", item_type="weapon", min_level=10))
        repo.insert(Item(name="B", category="combat", item_type="armor", min_level=10))
        repo.insert(Item(name="C", category="combat", item_type="weapon", min_level=2))
        results = engine.query_items(ItemFilter(category="combat", item_type="weapon", min_level=5))
        assert [i.name for i in results] == ["A"]

    def test_learnable_false_filter_applies(self, engine, repo):
        repo.insert(Item(name="A", learnable=True))
        repo.insert(Item(name="B"))
        assert [i.name for i in engine.query_items(ItemFilter(learnable=False))] == ["B"]

    def test_sub_category_and_sub_type(self, engine, repo):
        repo.insert(Item(name="A", sub_category="sword", sub_type="magical"))
        repo.insert(Item(name="B", sub_category="sword", sub_type="plain"))
        results = engine.query_items(ItemFilter(sub_category="sword", sub_type="magical"))
        assert [i.name for i in results] == ["A"]

    def test_no_match_is_empty(self, engine, repo):
        repo.insert(Item(name="A", category="combat"))
        assert engine.query_items(ItemFilter(category="cooking")) == []

    def test_max_limit_clamps_page(self, repo):
        for n in range(10):
            repo.insert(Item(name=f"Item {n}"))
        clamped = ItemQueryEngine(repo, max_limit=3)
        assert len(clamped.query_items(page=Page(limit=100))) == 3


class TestQueryByStats:
    @pytest.fixture
    def seeded(self, repo):
        repo.insert(Item(name="Tank", category="combat", stats=[
            _stat("hp", 40, StatType.CORE),
            _stat("str", 60, StatType.PRIMARY),
        ]))
        repo.insert(Item(name="Bruiser", category="combat", stats=[
            _stat("hp", 60, StatType.CORE),
        ]))
        repo.insert(Item(name="Bare", category="combat"))

    def test_predicates_hold_on_same_stat(self, engine, seeded):
        results = engine.query_by_stats(StatFilter(stat_name="hp", min_value=50))
        assert [i.name for i in results] == ["Bruiser"]

    def test_split_across_stats_does_not_match(self, engine, seeded):
        results = engine.query_by_stats(
            StatFilter(stat_name="hp", stat_type=StatType.PRIMARY)
        )
        assert results == []

    def test_by_type_only(self, engine, seeded):
        results = engine.query_by_stats(StatFilter(stat_type=StatType.PRIMARY))
        assert [i.name for i in results] == ["Tank"]

    def test_min_value_zero_applies(self, engine, repo):
        repo.insert(Item(name="Cursed", stats=[_stat("luck", -5)]))
        assert engine.query_by_stats(StatFilter(min_value=0)) == []

    def test_items_without_stats_never_match(self, engine, seeded):
        names = [i.name for i in engine.query_by_stats(StatFilter())]
        assert "Bare" not in names
        assert names == ["Tank", "Bruiser"]

    def test_item_level_filters(self, engine, repo):
        repo.insert(Item(name="A", category="combat", stats=[_stat("hp", 5)]))
        repo.insert(Item(name="B", category="cooking", stats=[_stat("hp", 5)]))
        results = engine.query_by_stats(StatFilter(stat_name="hp", category="cooking"))
        assert [i.name for i in results] == ["B"]

    def test_paginated_after_filtering(self, engine, repo):
        for n in range(5):
            repo.insert(Item(name=f"Skip {n}"))
            repo.insert(Item(name=f"Keep {n}", stats=[_stat("hp", n)]))
        results = engine.query_by_stats(StatFilter(stat_name="hp"), Page(offset=3, limit=10))
        assert [i.name for i in results] == ["Keep 3", "Keep 4"]


class TestQueryByProfession:
    @pytest.fixture
    def seeded(self, repo):
        repo.insert(Item(name="Blade", professions=[
            ItemProfession(name="warrior", level=5),
            ItemProfession(name="paladin", level=3),
        ]))
        repo.insert(Item(name="Wand", professions=[ItemProfession(name="mage", level=1)]))
        repo.insert(Item(name="Rock"))

    def test_max_level_on_same_profession(self, engine, seeded):
        assert engine.query_by_profession(ProfessionFilter(profession="warrior", max_level=3)) == []
        results = engine.query_by_profession(ProfessionFilter(profession="paladin", max_level=3))
        assert [i.name for i in results] == ["Blade"]

    def test_profession_only(self, engine, seeded):
        results = engine.query_by_profession(ProfessionFilter(profession="mage"))
        assert [i.name for i in results] == ["Wand"]

    def test_items_without_professions_never_match(self, engine, seeded):
        names = [i.name for i in engine.query_by_profession(ProfessionFilter())]
        assert names == ["Blade", "Wand"]

    def test_unknown_profession_is_empty(self, engine, seeded):
        assert engine.query_by_profession(ProfessionFilter(profession="bard")) == []


class TestStatQueryThreshold:
    @pytest.fixture
    def hero_item(self, repo) -> int:
        return repo.insert(Item(name="Hero Plate", stats=[
            _stat("hp", 50, StatType.CORE),
            _stat("str", 5, StatType.PRIMARY),
        ]))

    def test_core_stat_above_threshold_kept(self, engine, hero_item):
        results = engine.query_by_stats(StatFilter(stat_type=StatType.CORE, min_value=40))
        assert [i.item_id for i in results] == [hero_item]

    def test_core_stat_below_threshold_excluded(self, engine, hero_item):
        assert engine.query_by_stats(StatFilter(stat_type=StatType.CORE, min_value=60)) == []
