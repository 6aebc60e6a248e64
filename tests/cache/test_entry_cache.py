import pytest

from tracie.memory.cache.entry_cache import EntryCache


class _Clock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def test_set_then_get_within_ttl_returns_value():
    clock = _Clock()
    cache = EntryCache("users", ttl=10, capacity=5, clock=clock)

    cache.set("a", {"name": "Ada"})
    clock.now += 9.9

    assert cache.get("a") == {"name": "Ada"}


def test_expired_entry_is_never_returned_before_physical_eviction():
    clock = _Clock()
    cache = EntryCache("messages", ttl=10, capacity=5, clock=clock)
    cache.set("a", 1)

    clock.now += 10.01

    assert cache.get("a") is None
    assert cache.has("a") is False
    assert cache.keys() == []


def test_zero_ttl_never_expires():
    clock = _Clock()
    cache = EntryCache("media", ttl=0, capacity=5, clock=clock)
    cache.set("blob", b"x")
    clock.now += 10_000

    assert cache.get("blob") == b"x"


def test_capacity_evicts_expired_then_oldest():
    clock = _Clock()
    cache = EntryCache("groups", ttl=10, capacity=3, clock=clock)
    cache.set("old", 1)
    clock.now += 11
    cache.set("b", 2)
    cache.set("c", 3)

    # "old" is expired, so it makes room first
    cache.set("d", 4)
    assert sorted(cache.keys()) == ["b", "c", "d"]

    # Nothing expired: the oldest live key goes
    cache.set("e", 5)
    assert sorted(cache.keys()) == ["c", "d", "e"]


def test_updating_a_key_refreshes_its_position_and_ttl():
    clock = _Clock()
    cache = EntryCache("users", ttl=10, capacity=2, clock=clock)
    cache.set("a", 1)
    cache.set("b", 2)
    clock.now += 5
    cache.set("a", 11)
    cache.set("c", 3)

    assert sorted(cache.keys()) == ["a", "c"]
    clock.now += 9
    assert cache.get("a") == 11


def test_add_only_inserts_when_absent_or_expired():
    clock = _Clock()
    cache = EntryCache("messages", ttl=10, capacity=5, clock=clock)

    assert cache.add("m1", True) is True
    assert cache.add("m1", True) is False
    clock.now += 11
    assert cache.add("m1", True) is True


def test_stats_count_hits_and_misses_from_get_only():
    cache = EntryCache("users", ttl=10, capacity=5)
    cache.set("a", 1)

    cache.get("a")
    cache.get("a")
    cache.get("missing")
    cache.has("a")
    cache.has("missing")

    stats = cache.stats()
    assert (stats.keys, stats.hits, stats.misses) == (1, 2, 1)
    assert stats.accesses == 3


def test_prune_removes_only_expired_entries():
    clock = _Clock()
    cache = EntryCache("users", ttl=10, capacity=5, clock=clock)
    cache.set("a", 1)
    clock.now += 6
    cache.set("b", 2)
    clock.now += 5

    assert cache.prune() == 1
    assert cache.keys() == ["b"]


def test_clear_is_idempotent():
    cache = EntryCache("users", ttl=10, capacity=5)
    cache.set("a", 1)

    assert cache.clear() == 1
    assert cache.clear() == 0
    assert len(cache) == 0


def test_capacity_must_be_positive():
    with pytest.raises(ValueError):
        EntryCache("users", ttl=10, capacity=0)


def test_cache_without_live_eviction_drops_only_expired_entries():
    clock = _Clock()
    cache = EntryCache("messages", ttl=10, capacity=2, clock=clock, evict_live=False)
    cache.add("old", True)
    clock.now += 11
    cache.add("b", True)
    cache.add("c", True)
    cache.add("d", True)

    assert sorted(cache.keys()) == ["b", "c", "d"]
