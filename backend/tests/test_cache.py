"""Tests for the in-memory TTL cache."""

from conftest import FakeClock
from fundwatch.services.cache import TTLCache


def test_set_and_get():
    cache = TTLCache(default_ttl=60)
    cache.set("key1", {"price": 100.5})
    assert cache.get("key1") == {"price": 100.5}


def test_get_missing_key():
    cache = TTLCache(default_ttl=60)
    assert cache.get("nonexistent") is None


def test_hit_just_before_expiry():
    clock = FakeClock()
    cache = TTLCache(default_ttl=60, clock=clock)
    value = ["000001", "000002"]
    entry = cache.set("directory", value)
    clock.now = entry.expires_at - 0.001
    assert cache.get("directory") is value


def test_miss_just_after_expiry():
    clock = FakeClock()
    cache = TTLCache(default_ttl=60, clock=clock)
    entry = cache.set("directory", "snapshot")
    clock.now = entry.expires_at + 0.001
    assert cache.get("directory") is None


def test_expired_entry_is_evicted():
    clock = FakeClock()
    cache = TTLCache(default_ttl=1, clock=clock)
    cache.set("token", "abc")
    clock.advance(2)
    assert cache.get_entry("token") is None
    # A later clock rewind cannot resurrect an evicted entry
    clock.advance(-2)
    assert cache.get("token") is None


def test_custom_ttl_overrides_default():
    clock = FakeClock()
    cache = TTLCache(default_ttl=3600, clock=clock)
    cache.set("token", "abc", ttl=10)
    clock.advance(11)
    assert cache.get("token") is None


def test_set_overwrites_and_resets_expiry():
    clock = FakeClock()
    cache = TTLCache(default_ttl=10, clock=clock)
    cache.set("token", "old")
    clock.advance(8)
    cache.set("token", "new")
    clock.advance(8)
    assert cache.get("token") == "new"


def test_entry_records_timestamps():
    clock = FakeClock(now=500.0)
    cache = TTLCache(default_ttl=30, clock=clock)
    entry = cache.set("k", 1)
    assert entry.stored_at == 500.0
    assert entry.expires_at == 530.0


def test_delete_and_clear():
    cache = TTLCache(default_ttl=60)
    cache.set("key1", "v1")
    cache.set("key2", "v2")
    cache.delete("key1")
    assert cache.get("key1") is None
    cache.clear()
    assert cache.get("key2") is None
