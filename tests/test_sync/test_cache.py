"""Tests for the TTL response cache."""

from __future__ import annotations

from datetime import timedelta

import pytest

from item_sync.db.repositories.cache_repo import ApiCacheRepository
from item_sync.models.cache import CacheStatus
from item_sync.models.query import FetchParams
from item_sync.sync.cache import DEFAULT_TTL, ResponseCache, canonical_params_key


@pytest.fixture
def cache(in_memory_db, clock) -> ResponseCache:
    return ResponseCache(ApiCacheRepository(in_memory_db), clock=clock)


class TestCanonicalParamsKey:
    def test_order_independent(self):
        assert canonical_params_key({"a": 1, "b": 2}) == canonical_params_key({"b": 2, "a": 1})

    def test_empty_and_none_dropped(self):
        assert canonical_params_key({"a": None, "b": "", "c": 1}) == canonical_params_key({"c": 1})

    def test_none_params(self):
        assert canonical_params_key(None) == canonical_params_key({}) == "{}"

    def test_fetch_params_use_api_spelling(self):
        key = canonical_params_key(FetchParams(item_type="weapon", min_level=5))
        assert key == canonical_params_key({"minLevel": 5, "itemType": "weapon"})


class TestResponseCache:
    def test_default_ttl_is_five_minutes(self):
        assert DEFAULT_TTL == timedelta(minutes=5)

    def test_store_then_lookup_hits(self, cache):
        cache.store("/items", {"category": "combat"}, [{"name": "A"}], ttl=timedelta(seconds=300))
        lookup = cache.lookup("/items", {"category": "combat"})
        assert lookup.status == CacheStatus.HIT
        assert lookup.payload == [{"name": "A"}]

    def test_lookup_with_reordered_params_hits(self, cache):
        cache.store("/items", {"page": 1, "category": "combat"}, ["x"])
        assert cache.get("/items", {"category": "combat", "page": 1}) == ["x"]

    def test_never_cached_is_miss(self, cache):
        lookup = cache.lookup("/items", {"page": 9})
        assert lookup.status == CacheStatus.MISS
        assert lookup.payload is None

    def test_different_endpoint_is_miss(self, cache):
        cache.store("/items", {}, ["x"])
        assert cache.lookup("/other", {}).status == CacheStatus.MISS

    def test_expired_entry_not_served(self, cache, clock):
        cache.store("/items", {}, ["x"], ttl=timedelta(seconds=300))
        clock.advance(seconds=300)
        lookup = cache.lookup("/items", {})
        assert lookup.status == CacheStatus.EXPIRED
        assert lookup.payload is None
        assert cache.get("/items", {}) is None

    def test_just_before_expiry_still_hits(self, cache, clock):
        cache.store("/items", {}, ["x"], ttl=timedelta(seconds=300))
        clock.advance(seconds=299)
        assert cache.lookup("/items", {}).hit

    def test_expired_entry_kept_until_replaced(self, cache, clock):
        cache.store("/items", {}, ["old"], ttl=timedelta(seconds=10))
        clock.advance(seconds=60)
        cache.lookup("/items", {})
        assert cache.repo.count() == 1

        cache.store("/items", {}, ["new"])
        assert cache.repo.count() == 1
        assert cache.get("/items", {}) == ["new"]

    def test_store_returns_entry_with_window(self, cache, clock):
        entry = cache.store("/items", {}, [], ttl=timedelta(seconds=30))
        assert entry.cache_id is not None
        assert entry.fetched_at == clock.now
        assert entry.expires_at == clock.now + timedelta(seconds=30)

    def test_non_positive_ttl_rejected(self, cache):
        with pytest.raises(ValueError, match="ttl"):
            cache.store("/items", {}, [], ttl=timedelta(0))

    def test_purge_expired(self, cache, clock):
        cache.store("/items", {"page": 1}, ["a"], ttl=timedelta(seconds=10))
        cache.store("/items", {"page": 2}, ["b"], ttl=timedelta(seconds=600))
        clock.advance(seconds=30)
        assert cache.purge_expired() == 1
        assert cache.get("/items", {"page": 2}) == ["b"]

    def test_store_commits_its_entry(self, cache, in_memory_db):
        cache.store("/items", {}, ["kept"])
        in_memory_db.rollback()
        assert cache.get("/items", {}) == ["kept"]
