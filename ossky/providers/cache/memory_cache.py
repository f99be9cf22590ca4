"""In-memory cache provider using cachetools.TLRUCache.

Simple, fast cache suitable for local runs and single-process deployments.
Honours the same contract as the S3 provider (per-entry TTL, JSON values,
bool/str reads) so it can be swapped in via ``CACHE_BACKEND=memory``.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import Any

import structlog
from cachetools import TLRUCache

from ossky.interfaces.cache_provider import ICacheProvider
from ossky.providers.cache.serialization import decode_value, encode_value

logger = structlog.get_logger(logger_name=__name__)


def _entry_expiry(_key: str, entry: tuple[bytes, float], now: float) -> float:
    """Per-item time-to-use: entries carry their own TTL."""
    return now + entry[1]


class MemoryCacheProvider(ICacheProvider):
    """In-memory per-entry TTL cache backed by ``cachetools.TLRUCache``.

    Parameters
    ----------
    max_size:
        Maximum number of entries before the entry closest to expiry
        is evicted.
    ttl:
        Default time-to-live in seconds for cache entries.
    timer:
        Monotonic clock used for expiry; injected by tests.
    """

    def __init__(
        self,
        max_size: int = 1000,
        ttl: int = 24 * 60 * 60,
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        self._default_ttl = ttl
        self._cache: TLRUCache[str, tuple[bytes, float]] = TLRUCache(
            maxsize=max_size, ttu=_entry_expiry, timer=timer
        )

    # ------------------------------------------------------------------
    # ICacheProvider implementation
    # ------------------------------------------------------------------

    async def get(self, key: str) -> str | None:
        """Retrieve the cached value for *key*, or ``None`` if missing/expired."""
        entry = self._cache.get(key)
        if entry is None:
            logger.debug("cache_miss", key=key)
            return None
        logger.debug("cache_hit", key=key)
        return decode_value(key, entry[0])

    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        """Store *value* under *key* for *ttl* seconds (default TTL when falsy)."""
        payload = encode_value(key, value)
        effective_ttl = ttl if ttl else self._default_ttl
        self._cache[key] = (payload, float(effective_ttl))
        logger.debug("cache_set", key=key, ttl=effective_ttl)

    async def delete(self, key: str) -> None:
        """Remove *key* from the cache (no-op if absent)."""
        self._cache.pop(key, None)
        logger.debug("cache_delete", key=key)
