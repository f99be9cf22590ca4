"""Abstract base class for social-network publishers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class IPublisher(ABC):
    """Contract for publishing post records.

    A publisher is connected once per session, used for any number of
    posts, then closed.  The poll loop reconnects by building a fresh
    publisher.
    """

    @abstractmethod
    async def connect(self) -> None:
        """Open a session.

        Raises
        ------
        ossky.utils.errors.ConfigurationError
            If the credentials are unusable (e.g. full-access password).
        ossky.utils.errors.PublishError
            If the service rejects the login or cannot be reached.
        """

    @abstractmethod
    async def post(self, record: dict[str, Any]) -> None:
        """Publish *record*.

        Returning normally means either success or a failure the error
        classifier chose to suppress (rate limit, transient network);
        callers must not try to tell these apart.
        """

    @abstractmethod
    async def close(self) -> None:
        """Release the session and any owned resources."""
