"""Public interface definitions for all external service providers.

Every external service ossky talks to is accessed through the abstract base
classes defined in this package.  Concrete adapters implement these
interfaces and are injected at runtime by ``ossky.main``.

CONCRETE PROVIDER MAP:
    Interface          ->  Concrete implementations (in ossky/providers/)
    -------------------------------------------------------------------
    ICacheProvider     ->  S3CacheProvider, MemoryCacheProvider
    IContentProvider   ->  GitHubContentProvider
    IPublisher         ->  BlueskyPublisher
"""

from ossky.interfaces.cache_provider import CacheValue, ICacheProvider, ScanVisitor
from ossky.interfaces.content_provider import Content, IContentProvider
from ossky.interfaces.publisher import IPublisher

__all__ = [
    "CacheValue",
    "Content",
    "ICacheProvider",
    "IContentProvider",
    "IPublisher",
    "ScanVisitor",
]
