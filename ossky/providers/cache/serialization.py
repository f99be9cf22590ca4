"""Value and expiry encoding shared by the cache providers and the janitor.

Cache bodies are JSON.  Expiry lives in object metadata under
``expires-at`` as an RFC 3339 UTC timestamp, so it can be read without
downloading the body.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from ossky.utils.errors import CacheError, CacheWriteError, UnsupportedCacheValueError

EXPIRES_AT_KEY = "expires-at"

# S3 hands user metadata back either bare (boto3) or with the header prefix
# (raw HTTP / some S3-compatible servers).
_USER_META_PREFIX = "x-amz-meta-"


def encode_value(key: str, value: Any) -> bytes:
    """Serialise *value* to JSON bytes or raise :class:`CacheWriteError`."""
    try:
        return json.dumps(value).encode("utf-8")
    except (TypeError, ValueError) as exc:
        raise CacheWriteError(
            message=f"Cannot serialise value for '{key}': {exc}",
        ) from exc


def decode_value(key: str, payload: bytes | str) -> str:
    """Decode a stored JSON payload into the string form returned by ``get``.

    Booleans become ``"true"`` / ``"false"``, strings pass through, every
    other shape is a contract violation.
    """
    try:
        value = json.loads(payload)
    except ValueError as exc:
        raise CacheError(message=f"Cannot decode cached value for '{key}': {exc}") from exc

    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return value
    raise UnsupportedCacheValueError(
        message=f"Cached value for '{key}' has unsupported type {type(value).__name__}",
    )


def format_expires_at(moment: datetime) -> str:
    """Render *moment* as an RFC 3339 UTC timestamp (second precision)."""
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def parse_expires_at(raw: str) -> datetime:
    """Parse an RFC 3339 timestamp; naive values are taken as UTC.

    Raises
    ------
    ValueError
        If *raw* is not a valid timestamp.
    """
    text = raw.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def expires_at_from_metadata(metadata: Mapping[str, str] | None) -> str | None:
    """Return the raw ``expires-at`` value from object metadata, if present."""
    if not metadata:
        return None
    for name, value in metadata.items():
        lowered = name.lower()
        if lowered.startswith(_USER_META_PREFIX):
            lowered = lowered[len(_USER_META_PREFIX):]
        if lowered == EXPIRES_AT_KEY:
            return value
    return None
