"""Abstract base class for project-discovery providers.

A content provider finds the next open-source project worth announcing.
It owns deduplication (through an injected cache) so the caller only ever
sees candidates that have not been published recently.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field


@dataclass(frozen=True)
class Content:
    """A discovered project, ready to be turned into a post.

    Attributes
    ----------
    title:
        Project name.
    subtitle:
        Project description (may be empty).
    url:
        Canonical project link.
    extra_data:
        Free-form display lines such as ``"42 ⭐️"``, ``"Author: @octocat"``
        and the hashtag line.
    """

    title: str
    url: str
    subtitle: str = ""
    extra_data: tuple[str, ...] = field(default_factory=tuple)


class IContentProvider(ABC):
    """Contract for discovery services that yield projects to publish."""

    @abstractmethod
    async def get_content_to_publish(self) -> Content | None:
        """Return the next project to announce, or ``None`` if nothing qualifies.

        Raises
        ------
        ossky.utils.errors.OssBotError
            Any subclass, when the upstream service or the cache fails.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"github"``."""
