"""Builds announcement text and byte-exact facets from a :class:`PostDraft`.

Layout (default stargazer placement)::

    <title> by <@author> (<stargazers>)

    <description, collapsed, max 150 bytes>

    <#hashtags>

The title itself is the link to the project; the URL is never written
into the body.  Facet offsets are UTF-8 byte offsets because that is how
the richtext lexicon indexes text.

The description and hashtag blocks are fitted into whatever the 300-byte
budget leaves: the description is cut short with an ellipsis and trailing
hashtags are dropped.  The title/author/stargazers segment is never
shortened; if it alone overflows, :class:`PostTooLongError` is raised.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone

from ossky.config.settings import StargazersPlacement
from ossky.models.post import EncodedPost, Facet, FacetKind, PostDraft
from ossky.utils.errors import PostTooLongError
from ossky.utils.text_normalizer import byte_len, collapse_whitespace, truncate_utf8

MAX_POST_BYTES = 300
# Room kept free for a trailing short hashtag marker.
RESERVED_SUFFIX_BYTES = 3
DESCRIPTION_LIMIT_BYTES = 150
_ELLIPSIS = "..."
_BLOCK_SEPARATOR = "\n\n"
GITHUB_PROFILE_URL = "https://github.com/"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PostEncoder:
    """Deterministic text + facet construction.

    Parameters
    ----------
    language:
        Value for the record's ``langs`` field.
    stargazers_placement:
        Whether ``(n ⭐️)`` follows the title/author segment or the
        description block.
    clock:
        Source of ``createdAt``; injected by tests.
    """

    def __init__(
        self,
        language: str = "en-UK",
        stargazers_placement: StargazersPlacement = StargazersPlacement.AFTER_TITLE,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._language = language
        self._stargazers_placement = stargazers_placement
        self._clock = clock or _utcnow

    def encode(self, draft: PostDraft) -> EncodedPost:
        """Assemble the post text and its facets.

        Raises
        ------
        PostTooLongError
            If the title/author/stargazers segment alone is longer than
            300 bytes.
        """
        text = draft.title

        author_start = -1
        if draft.author:
            text += " by "
            author_start = byte_len(text)
            text += draft.author

        stargazers = f" ({draft.stargazers})" if draft.stargazers else ""
        tail = ""
        if self._stargazers_placement is StargazersPlacement.AFTER_TITLE:
            text += stargazers
        else:
            tail = stargazers

        if byte_len(text) < MAX_POST_BYTES - RESERVED_SUFFIX_BYTES and draft.description:
            room = MAX_POST_BYTES - byte_len(text) - byte_len(tail) - len(_BLOCK_SEPARATOR)
            description = self._shorten(draft.description, room)
            if description:
                text += _BLOCK_SEPARATOR + description

        text += tail

        if byte_len(text) > MAX_POST_BYTES:
            raise PostTooLongError(
                message=f"Post text is {byte_len(text)} bytes, limit is {MAX_POST_BYTES}",
            )

        hashtags = self._fit_hashtags(
            draft.hashtags, MAX_POST_BYTES - byte_len(text) - len(_BLOCK_SEPARATOR)
        )
        if hashtags:
            text += _BLOCK_SEPARATOR + hashtags

        facets = [Facet(byte_start=0, byte_end=byte_len(draft.title), kind=FacetKind.LINK, value=draft.url)]
        if author_start > 0:
            facets.append(
                Facet(
                    byte_start=author_start,
                    byte_end=author_start + byte_len(draft.author),
                    kind=FacetKind.LINK,
                    value=GITHUB_PROFILE_URL + draft.author[1:],
                )
            )
        if hashtags:
            facets.extend(self._tag_facets(text, hashtags))

        return EncodedPost(
            text=text,
            facets=tuple(facets),
            created_at=self._clock(),
            langs=(self._language,),
        )

    def build_record(self, draft: PostDraft) -> dict:
        """Encode *draft* and return the ``app.bsky.feed.post`` record."""
        return self.encode(draft).to_record()

    @staticmethod
    def _shorten(description: str, room: int) -> str:
        normalized = collapse_whitespace(description)
        limit = min(DESCRIPTION_LIMIT_BYTES, room)
        if byte_len(normalized) <= limit:
            return normalized
        if limit <= len(_ELLIPSIS):
            return ""
        return truncate_utf8(normalized, limit - len(_ELLIPSIS)) + _ELLIPSIS

    @staticmethod
    def _fit_hashtags(hashtags: str, room: int) -> str:
        """Collapse *hashtags* and keep the leading tokens that fit in *room* bytes."""
        kept: list[str] = []
        used = 0
        for token in collapse_whitespace(hashtags).split(" "):
            if not token:
                continue
            needed = byte_len(token) + (1 if kept else 0)
            if used + needed > room:
                break
            kept.append(token)
            used += needed
        return " ".join(kept)

    @staticmethod
    def _tag_facets(text: str, hashtags: str) -> list[Facet]:
        """One tag facet per token, walking a cursor through the hashtag block.

        The block is whitespace-collapsed before it is appended, so advancing
        by ``len(token) + 1`` lands exactly on the next token.
        """
        encoded = text.encode("utf-8")
        block = (_BLOCK_SEPARATOR + hashtags).encode("utf-8")
        cursor = encoded.find(block) + len(_BLOCK_SEPARATOR)

        facets: list[Facet] = []
        for token in hashtags.split(" "):
            token_len = byte_len(token)
            tag = token[1:] if token.startswith("#") else token
            if tag:
                facets.append(
                    Facet(
                        byte_start=cursor,
                        byte_end=cursor + token_len,
                        kind=FacetKind.TAG,
                        value=tag,
                    )
                )
            cursor += token_len + 1
        return facets
