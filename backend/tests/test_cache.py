"""Tests for the TTL response cache."""

from luxora.services.cache import ResponseCache, build_cache_key


class _Clock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class TestCacheKeys:
    def test_distinct_parameters_never_collide(self):
        keys = {
            build_cache_key("headlines", category="technology", country="us", page_size=10),
            build_cache_key("headlines", category="technology", country="us", page_size=20),
            build_cache_key("headlines", category="technology", country="gb", page_size=10),
            build_cache_key("headlines", category="business", country="us", page_size=10),
            build_cache_key("headlines", category=None, country="us", page_size=10),
            build_cache_key("search", q="technology", page_size=10),
        }
        assert len(keys) == 6

    def test_separator_characters_in_values_are_escaped(self):
        assert build_cache_key("search", q="a&page_size=5") != build_cache_key(
            "search", q="a", page_size=5
        )

    def test_kind_is_an_ordinary_parameter(self):
        key = build_cache_key("media", query="storm", kind="photo")

        assert key.startswith("media?")
        assert "kind=photo" in key
        assert key != build_cache_key("media", query="storm", kind="video")

    def test_parameter_order_and_case_do_not_matter(self):
        assert build_cache_key("headlines", country="US", category="Tech") == build_cache_key(
            "headlines", category="tech", country="us"
        )


class TestResponseCache:
    def test_returns_fresh_entry(self):
        cache = ResponseCache(ttl_seconds=900, clock=_Clock())
        cache.put("k", ["a"])

        assert cache.get("k") == ["a"]

    def test_expired_entry_is_a_miss(self):
        clock = _Clock()
        cache = ResponseCache(ttl_seconds=900, clock=clock)
        cache.put("k", ["a"])

        clock.now += 900

        assert cache.get("k") is None

    def test_unknown_key_is_a_miss(self):
        assert ResponseCache().get("missing") is None

    def test_clear_removes_everything(self):
        cache = ResponseCache(clock=_Clock())
        cache.put("a", 1)
        cache.put("b", 2)

        assert cache.clear() == 2
        assert len(cache) == 0
        assert cache.get("a") is None

    def test_stats_counts_valid_entries(self):
        clock = _Clock()
        cache = ResponseCache(ttl_seconds=60, clock=clock, name="test")
        cache.put("old", 1)
        clock.now += 61
        cache.put("new", 2)

        assert cache.stats() == {
            "name": "test",
            "entries": 2,
            "valid_entries": 1,
            "ttl_seconds": 60,
        }
