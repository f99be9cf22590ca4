"""Text normalization utilities for post construction.

Two concerns live here:

1. **Whitespace normalization** -- repository descriptions and hashtag
   lines arrive with tabs, newlines and runs of spaces; posts need them
   collapsed to single spaces.

2. **UTF-8 byte accounting** -- the publishing protocol measures text
   length and facet offsets in UTF-8 bytes, not code points, so every
   length check goes through :func:`byte_len` and every cut through
   :func:`truncate_utf8`.
"""

import re

_WHITESPACE_RE = re.compile(r"\s+")


def collapse_whitespace(text: str) -> str:
    """Collapse every whitespace run to a single space and trim the ends.

    >>> collapse_whitespace("  a\\n\\tb   c ")
    'a b c'
    """
    return _WHITESPACE_RE.sub(" ", text).strip()


def byte_len(text: str) -> int:
    """Return the UTF-8 encoded length of *text*."""
    return len(text.encode("utf-8"))


def truncate_utf8(text: str, max_bytes: int) -> str:
    """Cut *text* to at most *max_bytes* UTF-8 bytes.

    A code point split by the cut is dropped rather than emitted as a
    broken sequence, so the result may be a few bytes shorter than
    *max_bytes*.
    """
    encoded = text.encode("utf-8")
    if len(encoded) <= max_bytes:
        return text
    return encoded[:max_bytes].decode("utf-8", errors="ignore")
