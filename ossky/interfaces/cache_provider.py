"""Abstract base class for cache service providers.

Defines the key-value contract the discovery provider relies on to avoid
republishing a project and to remember rate-limit back-off state.
Implementations may use an S3-compatible object store or an in-process
TTL cache; the adapter pattern allows the backend to be swapped without
touching business logic.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import Any, Union

# The only shapes a read may produce.  Writes accept anything JSON
# serialisable, reads reject everything but these.
CacheValue = Union[bool, str]

ScanVisitor = Callable[[str], Awaitable[None]]


class ICacheProvider(ABC):
    """Contract for expiring key-value cache services.

    All operations are async to allow for network-backed stores without
    blocking the event loop.
    """

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Retrieve the value stored under *key*.

        Parameters
        ----------
        key:
            The cache key to look up.

        Returns
        -------
        str or None
            The cached value if present and not expired (booleans are
            rendered as ``"true"`` / ``"false"``); ``None`` when the key is
            absent or expired.  ``None`` is the only miss signal -- backend
            failures raise :class:`~ossky.utils.errors.CacheError`.

        Raises
        ------
        ossky.utils.errors.UnsupportedCacheValueError
            If the stored value decodes to anything other than a bool or str.
        """

    @abstractmethod
    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        """Store *value* under *key* with a time-to-live.

        Parameters
        ----------
        key:
            The cache key.
        value:
            Any JSON-serialisable value.  Only bool and str values can be
            read back through :meth:`get`.
        ttl:
            Time-to-live in seconds.  ``None`` or ``0`` selects the
            provider's default TTL.

        Raises
        ------
        ossky.utils.errors.CacheWriteError
            If serialisation or the underlying write fails.
        """

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove the entry stored under *key*.

        This is a no-op if the key does not exist.
        """

    async def exists(self, key: str) -> bool:
        """Return ``True`` if *key* is present in the cache and not expired."""
        return await self.get(key) is not None

    async def scan(self, prefix: str, visit: ScanVisitor) -> None:
        """Enumerate keys under *prefix*.

        Reserved extension point: the default implementation succeeds
        without visiting anything, and callers treat it as optional.
        """
        return None
