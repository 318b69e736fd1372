"""
Tests for the parsed-tree cache.
"""

from hypothesis import given
from hypothesis import strategies as st

from depchunk.core.ast_cache import ASTCache


class FakeClock:
    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestASTCache:
    def test_hit_requires_matching_hash(self):
        """A stored tree is only served for the hash it was stored with."""
        cache = ASTCache()
        cache.set("a.ts", "h1", "tree")

        assert cache.get("a.ts", "h1") == "tree"
        assert cache.get("a.ts", "h2") is None
        # The mismatch evicted the stale entry
        assert cache.get("a.ts", "h1") is None

    def test_unknown_path_is_miss(self):
        cache = ASTCache()
        cache.set("a.ts", "h1", "tree")
        assert cache.get("b.ts", "h1") is None

    def test_ttl_expiry(self):
        clock = FakeClock()
        cache = ASTCache(ttl=10, clock=clock)
        cache.set("a.ts", "h", "tree")

        clock.now = 10
        assert cache.get("a.ts", "h") == "tree"
        clock.now = 10.5
        assert cache.get("a.ts", "h") is None
        assert "a.ts" not in cache

    def test_evicts_oldest_insertion_not_least_recent_use(self):
        """Reading an entry does not protect it from eviction."""
        clock = FakeClock()
        cache = ASTCache(max_size=2, ttl=1000, clock=clock)
        cache.set("a.ts", "h", "A")
        clock.now = 1
        cache.set("b.ts", "h", "B")
        clock.now = 2
        assert cache.get("a.ts", "h") == "A"

        cache.set("c.ts", "h", "C")

        assert "a.ts" not in cache
        assert "b.ts" in cache
        assert "c.ts" in cache
        assert cache.get_stats().evictions == 1

    def test_overwrite_does_not_evict(self):
        cache = ASTCache(max_size=1)
        cache.set("a.ts", "h1", "A")
        cache.set("a.ts", "h2", "A2")
        assert len(cache) == 1
        assert cache.get_stats().evictions == 0

    def test_stats_and_clear(self):
        cache = ASTCache(max_size=5)
        cache.set("a.ts", "h", "A")
        cache.get("a.ts", "h")
        cache.get("b.ts", "h")

        stats = cache.get_stats()
        assert (stats.hits, stats.misses, stats.size, stats.max_size) == (1, 1, 1, 5)
        assert stats.hit_rate == 0.5

        cache.clear()
        stats = cache.get_stats()
        assert (stats.hits, stats.misses, stats.evictions, stats.size) == (0, 0, 0, 0)
        assert stats.hit_rate == 0.0

    def test_invalidate(self):
        cache = ASTCache()
        cache.set("a.ts", "h", "A")
        cache.invalidate("a.ts")
        cache.invalidate("missing.ts")
        assert len(cache) == 0


class TestASTCacheProperties:
    @given(
        max_size=st.integers(min_value=1, max_value=10),
        paths=st.lists(st.sampled_from([f"f{i}.ts" for i in range(20)]), max_size=60),
    )
    def test_size_never_exceeds_max(self, max_size, paths):
        clock = FakeClock()
        cache = ASTCache(max_size=max_size, ttl=1e9, clock=clock)
        for path in paths:
            clock.now += 1
            cache.set(path, "h", path)
            assert len(cache) <= max_size

    @given(paths=st.lists(st.sampled_from([f"f{i}.ts" for i in range(8)]), min_size=1, max_size=30))
    def test_get_after_set_returns_value(self, paths):
        cache = ASTCache(max_size=100)
        for path in paths:
            cache.set(path, f"hash-{path}", path.upper())
            assert cache.get(path, f"hash-{path}") == path.upper()

    @given(count=st.integers(min_value=2, max_value=12))
    def test_eviction_removes_smallest_timestamp(self, count):
        clock = FakeClock()
        cache = ASTCache(max_size=count, ttl=1e9, clock=clock)
        for i in range(count):
            clock.now = i
            cache.set(f"f{i}.ts", "h", i)
        clock.now = count
        cache.set("new.ts", "h", "new")

        assert "f0.ts" not in cache
        assert all(f"f{i}.ts" in cache for i in range(1, count))
