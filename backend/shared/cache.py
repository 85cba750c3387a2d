"""In-process TTL cache for slowly changing tenant configuration.

Backed by ``cachetools.TTLCache``. Every value written is also kept in a
bounded stale store so reads can fall back to the last-known-good value
while Postgres is unreachable.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from collections import OrderedDict
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from cachetools import TTLCache  # type: ignore[import-untyped]

logger = logging.getLogger(__name__)

# Distinguishes "not cached" from a cached None
_MISSING = object()

F = TypeVar("F", bound=Callable[..., Any])


class AsyncTTLCache:
    """TTL cache with a stale LRU store and per-key asyncio locks."""

    def __init__(self, maxsize: int = 128, ttl: float = 60.0):
        self._maxsize = maxsize
        self._cache: TTLCache = TTLCache(maxsize=maxsize, ttl=ttl)
        self._stale: OrderedDict[str, Any] = OrderedDict()
        self._locks: dict[str, asyncio.Lock] = {}

    def lock_for(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            if len(self._locks) >= self._maxsize * 2:
                # Drop locks whose keys are gone from both tiers
                for k in [k for k in self._locks if k not in self._stale]:
                    if not self._locks[k].locked():
                        del self._locks[k]
            lock = self._locks[key] = asyncio.Lock()
        return lock

    def get(self, key: str) -> Any:
        """Return the fresh value or ``_MISSING``."""
        return self._cache.get(key, _MISSING)

    def set(self, key: str, value: Any) -> None:
        self._cache[key] = value
        self._stale[key] = value
        self._stale.move_to_end(key)
        while len(self._stale) > self._maxsize:
            self._stale.popitem(last=False)

    def invalidate(self, key: str) -> None:
        """Drop a key from both tiers so the next read goes to the database."""
        self._cache.pop(key, None)
        self._stale.pop(key, None)

    def clear(self) -> None:
        self._cache.clear()
        self._stale.clear()

    def get_stale(self, key: str) -> Any:
        value = self._stale.get(key, _MISSING)
        if value is not _MISSING:
            self._stale.move_to_end(key)
        return value

    @property
    def size(self) -> int:
        return len(self._cache)

    async def load(
        self,
        key: str,
        loader: Callable[[], Awaitable[Any]],
        *,
        retry: int = 3,
        retry_delay: float = 1.0,
    ) -> Any:
        """Return the cached value for ``key`` or fill it from ``loader``.

        Concurrent misses on one key share a single load. When every attempt
        fails the stale value is served; with none, the last error propagates.
        """
        value = self.get(key)
        if value is not _MISSING:
            return value

        async with self.lock_for(key):
            value = self.get(key)
            if value is not _MISSING:
                return value

            error: Exception | None = None
            for attempt in range(retry):
                if attempt:
                    await asyncio.sleep(retry_delay * attempt)
                try:
                    value = await loader()
                except Exception as e:
                    error = e
                    logger.warning(
                        f"Load {attempt + 1}/{retry} failed for {key}: {type(e).__name__}: {e}"
                    )
                    continue
                self.set(key, value)
                return value

            value = self.get_stale(key)
            if value is _MISSING:
                raise error or RuntimeError(f"No attempts made for {key}")
            logger.warning(f"Serving last known value for {key}")
            return value


def cached(
    cache: AsyncTTLCache,
    key_func: Callable[..., str],
    *,
    retry: int = 3,
    retry_delay: float = 1.0,
):
    """Route an async read through ``cache.load``; ``key_func`` gets the call's arguments."""

    def decorator(func: F) -> F:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            return await cache.load(
                key_func(*args, **kwargs),
                lambda: func(*args, **kwargs),
                retry=retry,
                retry_delay=retry_delay,
            )

        wrapper.cache = cache  # type: ignore[attr-defined]
        return wrapper  # type: ignore[return-value]

    return decorator
