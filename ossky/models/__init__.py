"""ossky domain models -- re-exports all public model classes."""

from __future__ import annotations

from ossky.models.post import (
    POST_COLLECTION,
    EncodedPost,
    Facet,
    FacetKind,
    PostDraft,
    build_feature,
)

__all__ = [
    "POST_COLLECTION",
    "EncodedPost",
    "Facet",
    "FacetKind",
    "PostDraft",
    "build_feature",
]
