import pytest

from figmaflow.application.services.ttl_cache import TTLCache


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


def test_get_within_ttl(clock):
    cache = TTLCache(default_ttl=10, clock=clock)
    cache.set("a", 1)
    clock.advance(10)
    assert cache.get("a") == 1


def test_entry_expires_after_ttl(clock):
    cache = TTLCache(default_ttl=10, clock=clock)
    cache.set("a", 1)
    clock.advance(10.5)
    assert cache.get("a") is None
    assert len(cache) == 0


def test_per_entry_ttl_overrides_default(clock):
    cache = TTLCache(default_ttl=10, clock=clock)
    cache.set("short", 1, ttl=1)
    cache.set("long", 2, ttl=100)
    clock.advance(5)
    assert cache.has("short") is False
    assert cache.has("long") is True


def test_least_recently_used_entry_is_evicted(clock):
    cache = TTLCache(max_size=2, clock=clock)
    cache.set("a", 1)
    cache.set("b", 2)
    cache.get("a")
    cache.set("c", 3)
    assert cache.has("a")
    assert not cache.has("b")
    assert cache.has("c")
    assert len(cache) == 2


def test_overwrite_does_not_evict(clock):
    cache = TTLCache(max_size=2, clock=clock)
    cache.set("a", 1)
    cache.set("b", 2)
    cache.set("a", 10)
    assert cache.get("a") == 10
    assert cache.get("b") == 2


def test_stats_count_hits_and_misses(clock):
    cache = TTLCache(clock=clock)
    cache.set("a", 1)
    cache.get("a")
    cache.get("a")
    cache.get("missing")
    stats = cache.stats()
    assert stats.hits == 2
    assert stats.misses == 1
    assert stats.size == 1
    assert stats.hit_rate == pytest.approx(2 / 3)
    assert cache.hits == 2


def test_has_does_not_touch_counters(clock):
    cache = TTLCache(clock=clock)
    cache.set("a", 1)
    cache.has("a")
    cache.has("b")
    assert cache.stats().hits == 0
    assert cache.stats().misses == 0


def test_cleanup_removes_only_expired(clock):
    cache = TTLCache(default_ttl=10, clock=clock)
    cache.set("old", 1)
    clock.advance(6)
    cache.set("new", 2)
    clock.advance(6)
    assert cache.cleanup() == 1
    assert cache.has("new")


def test_invalidate_by_predicate(clock):
    cache = TTLCache(clock=clock)
    cache.set(("doc1", 1), "x")
    cache.set(("doc1", 2), "y")
    cache.set(("doc2", 1), "z")
    assert cache.invalidate(lambda key: key[0] == "doc1") == 2
    assert len(cache) == 1


def test_delete_and_clear(clock):
    cache = TTLCache(clock=clock)
    cache.set("a", 1)
    assert cache.delete("a") is True
    assert cache.delete("a") is False
    cache.set("b", 2)
    cache.get("b")
    cache.clear()
    assert len(cache) == 0
    assert cache.stats().hits == 0


def test_invalid_configuration():
    with pytest.raises(ValueError):
        TTLCache(max_size=0)
    with pytest.raises(ValueError):
        TTLCache(default_ttl=0)
