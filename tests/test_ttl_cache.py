"""Tests for TTLCache and CooldownTracker."""

from src.caches.ttl_cache import CooldownTracker, TTLCache


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def test_entries_expire():
    clock = FakeClock()
    cache = TTLCache(60, clock=clock)
    cache.set("roles", [1, 2])

    clock.now += 59
    assert cache.get("roles") == [1, 2]
    assert cache.remaining("roles") == 1

    clock.now += 1
    assert cache.get("roles") is None
    assert "roles" not in cache


def test_per_entry_ttl_override():
    clock = FakeClock()
    cache = TTLCache(60, clock=clock)
    cache.set("short", 1, ttl_seconds=5)
    clock.now += 10
    assert cache.get("short") is None


def test_max_size_evicts_soonest_expiring():
    clock = FakeClock()
    cache = TTLCache(60, max_size=2, clock=clock)
    cache.set("a", 1, ttl_seconds=10)
    cache.set("b", 2, ttl_seconds=100)
    cache.set("c", 3, ttl_seconds=50)

    assert len(cache) == 2
    assert cache.get("a") is None
    assert cache.get("b") == 2
    assert cache.get("c") == 3


def test_sweep_drops_expired_only():
    clock = FakeClock()
    cache = TTLCache(60, clock=clock)
    cache.set("old", 1, ttl_seconds=5)
    cache.set("new", 2)
    clock.now += 10

    assert cache.sweep() == 1
    assert len(cache) == 1


def test_cooldown_blocks_until_expiry():
    clock = FakeClock()
    cooldown = CooldownTracker(30, clock=clock)

    assert cooldown.hit(42)
    assert not cooldown.hit(42)
    assert cooldown.hit(43)
    assert cooldown.retry_after(42) == 30

    clock.now += 30
    assert cooldown.retry_after(42) == 0
    assert cooldown.hit(42)
