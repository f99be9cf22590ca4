"""S3-compatible object-store cache provider using boto3.

Each cache entry is one object: the JSON-encoded value as the body and its
expiry as the ``expires-at`` user metadata.  Expiry is enforced lazily on
read (an expired object is deleted and reported as a miss) and eagerly by
:class:`~ossky.services.cache_janitor.CacheJanitor`.

boto3 is synchronous, so every call is pushed onto a worker thread with
``asyncio.to_thread`` to keep the event loop free.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Mapping
from datetime import datetime, timedelta, timezone
from typing import Any

import structlog
from botocore.exceptions import BotoCoreError, ClientError

from ossky.interfaces.cache_provider import ICacheProvider
from ossky.providers.cache.serialization import (
    EXPIRES_AT_KEY,
    decode_value,
    encode_value,
    expires_at_from_metadata,
    format_expires_at,
    parse_expires_at,
)
from ossky.utils.errors import CacheError, CacheWriteError

logger = structlog.get_logger(logger_name=__name__)

DEFAULT_TTL_SECONDS = 24 * 60 * 60

_MISSING_KEY_CODES = frozenset({"NoSuchKey", "NotFound", "404"})
_MISSING_BUCKET_CODES = frozenset({"NoSuchBucket", "NotFound", "404"})


def is_missing_key_error(exc: ClientError) -> bool:
    """Return ``True`` if *exc* is S3's way of saying the key does not exist."""
    return exc.response.get("Error", {}).get("Code") in _MISSING_KEY_CODES


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class S3CacheProvider(ICacheProvider):
    """Expiring key-value cache backed by an S3 bucket.

    Parameters
    ----------
    client:
        A boto3 S3 client.
    bucket:
        Bucket holding the cache objects; it must already exist.
    default_ttl:
        TTL in seconds applied when ``set`` is called with ``ttl`` of
        ``None`` or ``0``.
    clock:
        Returns the current aware UTC time.  Injected by tests.
    """

    def __init__(
        self,
        client: Any,
        bucket: str,
        default_ttl: int = DEFAULT_TTL_SECONDS,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._client = client
        self._bucket = bucket
        self._default_ttl = default_ttl
        self._clock = clock or _utcnow

    @property
    def bucket(self) -> str:
        return self._bucket

    # ------------------------------------------------------------------
    # ICacheProvider implementation
    # ------------------------------------------------------------------

    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        """Write *value* and its expiry in a single put."""
        body = encode_value(key, value)
        effective_ttl = ttl if ttl else self._default_ttl
        expires_at = self._clock() + timedelta(seconds=effective_ttl)

        try:
            await asyncio.to_thread(self._put_sync, key, body, format_expires_at(expires_at))
        except (ClientError, BotoCoreError) as exc:
            raise CacheWriteError(
                message=f"Failed to write cache key '{key}': {exc}",
                provider_name="s3",
            ) from exc

        logger.debug("cache_set", key=key, ttl=effective_ttl)

    async def get(self, key: str) -> str | None:
        """Return the value for *key*, or ``None`` if absent or expired."""
        try:
            payload, metadata = await asyncio.to_thread(self._fetch_sync, key)
        except ClientError as exc:
            if is_missing_key_error(exc):
                logger.debug("cache_miss", key=key)
                return None
            raise CacheError(
                message=f"Failed to read cache key '{key}': {exc}",
                provider_name="s3",
            ) from exc
        except BotoCoreError as exc:
            raise CacheError(
                message=f"Failed to read cache key '{key}': {exc}",
                provider_name="s3",
            ) from exc

        if self._is_expired(key, metadata):
            await self._delete_quietly(key)
            logger.debug("cache_expired", key=key)
            return None

        value = decode_value(key, payload)
        logger.debug("cache_hit", key=key)
        return value

    async def delete(self, key: str) -> None:
        """Remove *key* (no-op if absent)."""
        try:
            await asyncio.to_thread(self._delete_sync, key)
        except ClientError as exc:
            if is_missing_key_error(exc):
                return
            raise CacheError(
                message=f"Failed to delete cache key '{key}': {exc}",
                provider_name="s3",
            ) from exc
        except BotoCoreError as exc:
            raise CacheError(
                message=f"Failed to delete cache key '{key}': {exc}",
                provider_name="s3",
            ) from exc
        logger.debug("cache_delete", key=key)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _is_expired(self, key: str, metadata: Mapping[str, str]) -> bool:
        raw = expires_at_from_metadata(metadata)
        if raw is None:
            return False
        try:
            expires_at = parse_expires_at(raw)
        except ValueError:
            # Left for the janitor to report; a read does not guess.
            logger.warning("cache_expiry_unparseable", key=key, expires_at=raw)
            return False
        return expires_at <= self._clock()

    async def _delete_quietly(self, key: str) -> None:
        """Best-effort delete on the lazy-expiry path; failures are only logged."""
        try:
            await self.delete(key)
        except CacheError as exc:
            logger.warning("cache_expired_delete_failed", key=key, error=str(exc))

    # -- Sync helpers (executed via asyncio.to_thread) -------------------------

    def _put_sync(self, key: str, body: bytes, expires_at: str) -> None:
        self._client.put_object(
            Bucket=self._bucket,
            Key=key,
            Body=body,
            ContentType="application/json",
            Metadata={EXPIRES_AT_KEY: expires_at},
        )

    def _fetch_sync(self, key: str) -> tuple[bytes, dict[str, str]]:
        response = self._client.get_object(Bucket=self._bucket, Key=key)
        body = response["Body"]
        try:
            payload = body.read()
        finally:
            body.close()
        return payload, response.get("Metadata") or {}

    def _delete_sync(self, key: str) -> None:
        self._client.delete_object(Bucket=self._bucket, Key=key)


def ensure_bucket(client: Any, bucket: str, region: str = "") -> bool:
    """Create *bucket* if it does not exist yet.

    Returns ``True`` when the bucket was created.  Synchronous; call it
    through ``asyncio.to_thread`` from async code.
    """
    try:
        client.head_bucket(Bucket=bucket)
        return False
    except ClientError as exc:
        if exc.response.get("Error", {}).get("Code") not in _MISSING_BUCKET_CODES:
            raise CacheError(
                message=f"Cannot access bucket '{bucket}': {exc}",
                provider_name="s3",
            ) from exc
    except BotoCoreError as exc:
        raise CacheError(
            message=f"Cannot access bucket '{bucket}': {exc}",
            provider_name="s3",
        ) from exc

    kwargs: dict[str, Any] = {"Bucket": bucket}
    if region and region != "us-east-1":
        kwargs["CreateBucketConfiguration"] = {"LocationConstraint": region}
    try:
        client.create_bucket(**kwargs)
    except (ClientError, BotoCoreError) as exc:
        raise CacheError(
            message=f"Failed to create bucket '{bucket}': {exc}",
            provider_name="s3",
        ) from exc
    logger.info("cache_bucket_created", bucket=bucket)
    return True
