# src/unify_build/managers/layout_cache_manager.py
import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Hashable, Optional, Tuple

logger = logging.getLogger(__name__)

CacheKey = Tuple[Any, str]
Loader = Callable[[], Awaitable[Optional[str]]]


class LayoutCacheManager:
    """
    Shared path -> content cache for layouts and components.

    Each key is loaded through a single in-flight task that every concurrent
    caller awaits ("compute once, share result"). Failed or empty loads are
    evicted so the next caller retries.
    """

    def __init__(self):
        self._cache: Dict[CacheKey, str] = {}
        self._pending: Dict[CacheKey, asyncio.Task] = {}
        self.hits = 0
        self.misses = 0

    @staticmethod
    def make_key(scope: Hashable, path: str) -> CacheKey:
        return (scope, path)

    async def get_or_load(self, key: CacheKey, loader: Loader) -> Optional[str]:
        if key in self._cache:
            self.hits += 1
            return self._cache[key]

        task = self._pending.get(key)
        if task is None:
            self.misses += 1
            task = asyncio.get_running_loop().create_task(loader())
            self._pending[key] = task
            task.add_done_callback(lambda t, k=key: self._settle(k, t))
        else:
            self.hits += 1
            logger.debug("Joining in-flight load for %s", key[1])

        return await task

    def _settle(self, key: CacheKey, task: asyncio.Task) -> None:
        if self._pending.get(key) is task:
            del self._pending[key]
        if task.cancelled() or task.exception() is not None:
            return
        content = task.result()
        if content is not None:
            self._cache[key] = content

    def contains(self, key: CacheKey) -> bool:
        return key in self._cache

    def clear(self) -> None:
        self._cache.clear()
        self.hits = 0
        self.misses = 0

    def stats(self) -> Dict[str, int]:
        return {
            "cache_hits": self.hits,
            "cache_misses": self.misses,
            "cached_entries": len(self._cache),
            "pending_loads": len(self._pending),
        }
