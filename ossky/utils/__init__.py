"""Utility modules for ossky.

Available utility modules (all re-exported here for convenience):

- **errors** -- Domain-specific exception hierarchy rooted at OssBotError;
  each concern raises its own subclass so callers can handle failures
  granularly.
- **logging** -- structlog setup with a dual-renderer pattern: coloured
  console output in development, structured JSON in production.
- **text_normalizer** -- whitespace collapsing and UTF-8 byte accounting
  used by the post encoder.
"""

from ossky.utils.errors import (
    CacheError,
    CacheWriteError,
    CleanupError,
    ConfigurationError,
    ContentUnavailableError,
    ContractViolationError,
    OssBotError,
    PostTooLongError,
    ProviderUnavailableError,
    PublishError,
    PublishErrorKind,
    RateLimitError,
    UnsupportedCacheValueError,
    UnsupportedFacetError,
)
from ossky.utils.logging import configure_logging, get_logger
from ossky.utils.text_normalizer import byte_len, collapse_whitespace, truncate_utf8

__all__ = [
    "CacheError",
    "CacheWriteError",
    "CleanupError",
    "ConfigurationError",
    "ContentUnavailableError",
    "ContractViolationError",
    "OssBotError",
    "PostTooLongError",
    "ProviderUnavailableError",
    "PublishError",
    "PublishErrorKind",
    "RateLimitError",
    "UnsupportedCacheValueError",
    "UnsupportedFacetError",
    "byte_len",
    "collapse_whitespace",
    "configure_logging",
    "get_logger",
    "truncate_utf8",
]
