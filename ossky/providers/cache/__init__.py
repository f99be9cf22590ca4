"""Cache providers.

S3CacheProvider is the production backend: an S3-compatible bucket where
each object carries its own ``expires-at`` metadata.  MemoryCacheProvider
is a per-entry TTL dict for local runs and tests -- fast but not shared
across processes or restarts.
"""

from ossky.providers.cache.memory_cache import MemoryCacheProvider
from ossky.providers.cache.s3_cache import S3CacheProvider, ensure_bucket

__all__ = ["MemoryCacheProvider", "S3CacheProvider", "ensure_bucket"]
