"""Custom exception hierarchy for ossky.

All application exceptions inherit from :class:`OssBotError`, which carries
an optional ``provider_name`` so error handlers can identify which external
service (e.g. "s3", "github", "bluesky") caused the failure.

The hierarchy is organized by concern:

    OssBotError  (base -- catch-all for any ossky error)
    +-- ConfigurationError        (startup / missing config / wrong credentials)
    +-- CacheError                (object-store transport failure)
    |   +-- CacheWriteError       (serialisation or put failure)
    +-- ContractViolationError    (caller broke a contract -- never recovered)
    |   +-- UnsupportedCacheValueError
    |   +-- UnsupportedFacetError
    |   +-- PostTooLongError
    +-- CleanupError              (janitor could not delete an object)
    +-- ContentUnavailableError   (discovery failed, back off until next poll)
    +-- ProviderUnavailableError  (external service down / unreachable)
    +-- RateLimitError            (provider rate-limit exceeded)
    +-- PublishError              (publish transport failure, carries a kind)

A cache miss is not an error: ``ICacheProvider.get`` returns ``None``.
"""

from __future__ import annotations

from enum import Enum


class OssBotError(Exception):
    """Base exception for all ossky errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name`` identifying which external service triggered the
    error.  ``__str__`` prefixes the provider name in brackets for log
    output, e.g. ``[bluesky] Rate limit exceeded``.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


class ConfigurationError(OssBotError):
    """Raised when configuration is invalid or missing at startup."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Cache errors
# ---------------------------------------------------------------------------

class CacheError(OssBotError):
    """Raised when the cache backend cannot be reached or returns garbage.

    Distinct from a miss, which is signalled by ``None``.
    """

    def __init__(
        self,
        message: str = "Cache operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class CacheWriteError(CacheError):
    """Raised when a value cannot be serialised or the put fails."""

    def __init__(
        self,
        message: str = "Cache write failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class CleanupError(OssBotError):
    """Raised when the janitor fails to delete an expired object.

    Aborts the current sweep; the next cycle picks up the remainder.
    """

    def __init__(
        self,
        message: str = "Cache cleanup failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Contract violations
# ---------------------------------------------------------------------------

class ContractViolationError(OssBotError):
    """Raised when a caller breaks a programming contract.

    These are never retried or suppressed.
    """

    def __init__(
        self,
        message: str = "Contract violation",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class UnsupportedCacheValueError(ContractViolationError):
    """Raised when a cached value decodes to something other than bool or str."""

    def __init__(
        self,
        message: str = "Unsupported cache value type",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class UnsupportedFacetError(ContractViolationError):
    """Raised when a facet feature kind other than link or tag is requested."""

    def __init__(
        self,
        message: str = "Unsupported facet feature",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class PostTooLongError(ContractViolationError):
    """Raised when the encoded post text exceeds the byte budget."""

    def __init__(
        self,
        message: str = "Post text exceeds the byte limit",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Discovery errors
# ---------------------------------------------------------------------------

class ContentUnavailableError(OssBotError):
    """Raised when no content could be fetched from the discovery provider.

    The poll loop treats this as "skip this cycle", never as a reason to
    reconnect.
    """

    def __init__(
        self,
        message: str = "Could not get content",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ProviderUnavailableError(OssBotError):
    """Raised when an external service or provider is unreachable."""

    def __init__(
        self,
        message: str = "External service is unavailable",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class RateLimitError(OssBotError):
    """Raised when an API rate limit is exceeded."""

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Publish errors
# ---------------------------------------------------------------------------

class PublishErrorKind(str, Enum):
    """Machine-readable class assigned to a publish failure at the transport boundary."""

    MALFORMED = "malformed"
    UNAUTHORIZED = "unauthorized"
    RATE_LIMITED = "rate_limited"
    PROTOCOL = "protocol"
    TRANSIENT_NETWORK = "transient_network"
    NETWORK = "network"


class PublishError(OssBotError):
    """Raised when a call to the publishing service fails.

    ``kind`` is what the error classifier acts on; ``status_code`` and
    ``error_name`` keep the raw protocol signal for logs.
    """

    def __init__(
        self,
        kind: PublishErrorKind,
        message: str = "Publish failed",
        provider_name: str | None = None,
        status_code: int | None = None,
        error_name: str | None = None,
    ) -> None:
        self._kind = kind
        self._status_code = status_code
        self._error_name = error_name
        super().__init__(message=message, provider_name=provider_name)

    @property
    def kind(self) -> PublishErrorKind:
        return self._kind

    @property
    def status_code(self) -> int | None:
        return self._status_code

    @property
    def error_name(self) -> str | None:
        return self._error_name
