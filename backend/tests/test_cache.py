import pytest

from shared.cache import _MISSING, AsyncTTLCache, cached


class Reader:
    def __init__(self, cache):
        self.calls = 0
        self.fail = False
        self.value = "v1"

        @cached(cache=cache, key_func=lambda key: f"k:{key}", retry=2, retry_delay=0)
        async def read(key):
            self.calls += 1
            if self.fail:
                raise ConnectionError("down")
            return self.value

        self.read = read


class TestCached:
    async def test_second_read_is_served_from_cache(self):
        reader = Reader(AsyncTTLCache())
        assert await reader.read("a") == "v1"
        assert await reader.read("a") == "v1"
        assert reader.calls == 1

    async def test_none_is_cached(self):
        cache = AsyncTTLCache()
        reader = Reader(cache)
        reader.value = None
        await reader.read("a")
        await reader.read("a")
        assert reader.calls == 1

    async def test_invalidate_forces_reload(self):
        cache = AsyncTTLCache()
        reader = Reader(cache)
        await reader.read("a")
        reader.value = "v2"
        cache.invalidate("k:a")
        assert await reader.read("a") == "v2"

    async def test_retries_then_raises_without_stale(self):
        reader = Reader(AsyncTTLCache())
        reader.fail = True
        with pytest.raises(ConnectionError):
            await reader.read("a")
        assert reader.calls == 2

    async def test_serves_stale_value_when_source_fails(self):
        cache = AsyncTTLCache(ttl=60)
        reader = Reader(cache)
        await reader.read("a")
        cache._cache.clear()  # expire the fresh tier only
        reader.fail = True
        assert await reader.read("a") == "v1"


def test_stale_tier_is_bounded():
    cache = AsyncTTLCache(maxsize=2)
    for key in ("a", "b", "c"):
        cache.set(key, key)
    assert cache.get_stale("a") is _MISSING
    assert cache.get_stale("c") == "c"
