"""Tests for the TTL cache."""

import pytest
from pydantic import ValidationError

from reading_room.core.config import AppConfig
from reading_room.data.cache import DataCache


def test_get_and_set(clock):
    cache = DataCache(clock=clock)
    cache.set("a", 1)
    assert cache.get("a") == 1
    assert cache.get("missing") is None


def test_entries_expire(clock):
    cache = DataCache(clock=clock)
    cache.set("quote", "v", ttl_seconds=60)

    clock.advance(59)
    assert cache.get("quote") == "v"
    clock.advance(1)
    assert cache.get("quote") is None
    assert len(cache) == 0


def test_no_ttl_never_expires(clock):
    cache = DataCache(clock=clock)
    cache.set("token", "t")
    clock.advance(10**9)
    assert cache.get("token") == "t"


def test_lru_eviction(clock):
    cache = DataCache(max_items=2, clock=clock)
    cache.set("a", 1)
    cache.set("b", 2)
    cache.get("a")
    cache.set("c", 3)

    assert cache.get("b") is None
    assert cache.get("a") == 1
    assert cache.get("c") == 3


def test_clear_expired(clock):
    cache = DataCache(clock=clock)
    cache.set("short", 1, ttl_seconds=5)
    cache.set("long", 2, ttl_seconds=50)
    clock.advance(10)

    assert cache.clear_expired() == 1
    assert len(cache) == 1


def test_stats(clock):
    cache = DataCache(clock=clock)
    cache.set("a", 1)
    cache.get("a")
    cache.get("b")
    stats = cache.get_stats()
    assert stats["hits"] == 1
    assert stats["misses"] == 1
    assert stats["entries"] == 1


def test_empty_cache_is_truthy():
    cache = DataCache()
    assert len(cache) == 0
    assert cache


def test_zero_capacity_does_not_fail(clock):
    cache = DataCache(max_items=0, clock=clock)
    cache.set("a", 1)
    cache.set("b", 2)
    assert len(cache) == 1
    assert cache.get("b") == 2


def test_config_rejects_non_positive_capacity():
    with pytest.raises(ValidationError):
        AppConfig.model_validate({"cache": {"max_items": 0}})
