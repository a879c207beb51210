"""In-process TTL cache with a stale fallback.

Backed by ``cachetools.TTLCache``; each repository owns its cache instances.
When the database cannot be reached, reads fall back to the last value that
was successfully loaded so screens keep their config during a blip.
"""

import asyncio
import functools
import logging
from collections import OrderedDict
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from cachetools import TTLCache  # type: ignore[import-untyped]

logger = logging.getLogger(__name__)

_MISSING = object()

T = TypeVar("T")


class AsyncTTLCache:
    """Fresh values expire after *ttl*; the stale copy survives for fallback.

    ``_stale`` is an LRU bounded by *maxsize* and is consulted only after the
    loader has failed.
    """

    def __init__(self, maxsize: int = 128, ttl: float = 60.0, *, retry: int = 3):
        self.retry = retry
        self._maxsize = maxsize
        self._fresh: TTLCache = TTLCache(maxsize=maxsize, ttl=ttl)
        self._stale: OrderedDict[str, Any] = OrderedDict()
        self._loading: dict[str, asyncio.Lock] = {}

    def _lock_for(self, key: str) -> asyncio.Lock:
        if key not in self._loading and len(self._loading) >= self._maxsize * 2:
            idle = [k for k, lock in self._loading.items() if not lock.locked()]
            for k in idle:
                del self._loading[k]
        return self._loading.setdefault(key, asyncio.Lock())

    def _remember(self, key: str, value: Any) -> None:
        self._fresh[key] = value
        self._stale[key] = value
        self._stale.move_to_end(key)
        if len(self._stale) > self._maxsize:
            self._stale.popitem(last=False)

    def invalidate(self, key: str) -> None:
        """Drop the fresh value; the stale copy is kept."""
        self._fresh.pop(key, None)

    async def get_or_load(self, key: str, loader: Callable[[], Awaitable[T]]) -> T:
        """Concurrent misses on one key share a single load.

        After ``retry`` failed attempts the stale value is served with a
        warning; without one the last exception propagates.
        """
        value = self._fresh.get(key, _MISSING)
        if value is not _MISSING:
            return value

        async with self._lock_for(key):
            value = self._fresh.get(key, _MISSING)
            if value is not _MISSING:
                return value

            attempt = 0
            while True:
                attempt += 1
                try:
                    value = await loader()
                except asyncio.CancelledError:
                    raise
                except Exception as exc:
                    if attempt < self.retry:
                        logger.warning(
                            "Load of %s failed (%s), attempt %d/%d",
                            key,
                            type(exc).__name__,
                            attempt,
                            self.retry,
                        )
                        await asyncio.sleep(0.5 * attempt)
                        continue
                    stale = self._stale.get(key, _MISSING)
                    if stale is _MISSING:
                        raise
                    self._stale.move_to_end(key)
                    logger.warning("Serving stale %s after %s", key, type(exc).__name__)
                    return stale
                self._remember(key, value)
                return value


def cached(cache: AsyncTTLCache, key_func: Callable[..., str]):
    """Route an async loader through ``cache.get_or_load``."""

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            return await cache.get_or_load(
                key_func(*args, **kwargs), lambda: func(*args, **kwargs)
            )

        wrapper.cache = cache  # type: ignore[attr-defined]
        return wrapper

    return decorator
