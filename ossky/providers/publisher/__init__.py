"""Publisher providers.

BlueskyPublisher posts app.bsky.feed.post records over XRPC with httpx.
"""

from ossky.providers.publisher.bluesky_publisher import BlueskyPublisher

__all__ = ["BlueskyPublisher"]
