"""Post domain models -- drafts, facets and the encoded record.

# ─── ARCHITECTURE ROLE ───────────────────────────────────────────────
#
# Layer: Models (bottom of the dependency graph -- no imports from upper
# layers except the error hierarchy).
#
# A PostDraft is what discovery produces; the PostEncoder turns it into an
# EncodedPost whose facets point at UTF-8 byte ranges of the text, the
# indexing convention of the app.bsky.richtext.facet lexicon.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ossky.utils.errors import UnsupportedFacetError

POST_COLLECTION = "app.bsky.feed.post"

_LINK_FEATURE = "app.bsky.richtext.facet#link"
_TAG_FEATURE = "app.bsky.richtext.facet#tag"


class FacetKind(str, Enum):
    """Annotation kinds known to the richtext lexicon.

    Only LINK and TAG can be encoded; MENTION is listed so that asking for
    it fails loudly instead of silently producing nothing.
    """

    LINK = "link"
    TAG = "tag"
    MENTION = "mention"


class PostDraft(BaseModel):
    """Pre-publish content of one announcement."""

    model_config = ConfigDict(frozen=True)

    title: str = Field(min_length=1, description="Project name; annotated as the link.")
    url: str = Field(min_length=1, description="Canonical project link.")
    description: str = Field(default="", description="Project description, shortened by the encoder.")
    author: str = Field(default="", description="GitHub handle formatted as '@handle'.")
    stargazers: str = Field(default="", description="Pre-formatted star count, e.g. '123 ⭐️'.")
    hashtags: str = Field(default="", description="Space separated '#tag' tokens.")

    @field_validator("author")
    @classmethod
    def _prefix_handle(cls, value: str) -> str:
        value = value.strip()
        if value and not value.startswith("@"):
            return "@" + value
        return value


class Facet(BaseModel):
    """A byte-range annotation over the post text."""

    model_config = ConfigDict(frozen=True)

    byte_start: int = Field(ge=0)
    byte_end: int = Field(ge=0)
    kind: FacetKind
    value: str

    @model_validator(mode="after")
    def _check_range(self) -> Facet:
        if self.byte_end < self.byte_start:
            raise ValueError("byte_end must not precede byte_start")
        return self

    def to_record(self) -> dict[str, Any]:
        """Render in the lexicon shape ``{"index": ..., "features": [...]}``."""
        return {
            "index": {"byteStart": self.byte_start, "byteEnd": self.byte_end},
            "features": [build_feature(self.kind, self.value)],
        }


def build_feature(kind: FacetKind, value: str) -> dict[str, str]:
    """Return the lexicon feature object for *kind*.

    Raises
    ------
    UnsupportedFacetError
        For mentions and anything that is not a :class:`FacetKind`.
    """
    if kind is FacetKind.LINK:
        return {"$type": _LINK_FEATURE, "uri": value}
    if kind is FacetKind.TAG:
        return {"$type": _TAG_FEATURE, "tag": value}
    raise UnsupportedFacetError(message=f"Facet feature '{kind}' is not supported")


class EncodedPost(BaseModel):
    """Final post text with its facets, ready to become a record."""

    model_config = ConfigDict(frozen=True)

    text: str
    facets: tuple[Facet, ...] = ()
    created_at: datetime
    langs: tuple[str, ...] = ("en-UK",)

    def to_record(self) -> dict[str, Any]:
        """Return the ``app.bsky.feed.post`` record for ``createRecord``."""
        return {
            "$type": POST_COLLECTION,
            "text": self.text,
            "createdAt": self.created_at.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "langs": list(self.langs),
            "facets": [facet.to_record() for facet in self.facets],
        }
