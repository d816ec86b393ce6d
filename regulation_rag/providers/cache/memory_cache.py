"""In-memory cache provider using cachetools.TTLCache."""

from __future__ import annotations

from typing import Any

import structlog
from cachetools import TTLCache

from regulation_rag.interfaces.cache_provider import ICacheProvider

logger = structlog.get_logger(logger_name=__name__)


class MemoryCacheProvider(ICacheProvider):
    """TTL cache backed by ``cachetools.TTLCache``.

    Parameters
    ----------
    max_size:
        Entries kept before the least-recently-used one is evicted.
    ttl:
        Lifetime in seconds applied to every entry.  ``TTLCache`` has a
        single TTL, so the per-call ``ttl`` argument of :meth:`set` is ignored.
    """

    def __init__(self, max_size: int = 512, ttl: int = 600) -> None:
        self._cache: TTLCache[str, Any] = TTLCache(maxsize=max_size, ttl=ttl)

    async def get(self, key: str) -> Any | None:
        value = self._cache.get(key)
        logger.debug("cache_hit" if value is not None else "cache_miss", key=key)
        return value

    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        self._cache[key] = value

    async def delete(self, key: str) -> None:
        self._cache.pop(key, None)

    async def clear(self) -> None:
        self._cache.clear()
        logger.debug("cache_cleared")

    def __len__(self) -> int:
        return len(self._cache)
