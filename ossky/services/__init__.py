"""Domain services: encoding, publishing glue, error policy and cache sweeping."""

from ossky.services.cache_janitor import CacheJanitor, CleanupReport
from ossky.services.content_service import ContentService, draft_from_content
from ossky.services.error_classifier import (
    PublishOutcome,
    classify_publish_error,
    resolve_publish_error,
)
from ossky.services.post_encoder import PostEncoder

__all__ = [
    "CacheJanitor",
    "CleanupReport",
    "ContentService",
    "PostEncoder",
    "PublishOutcome",
    "classify_publish_error",
    "draft_from_content",
    "resolve_publish_error",
]
