"""Glue between discovery, encoding and publishing.

One call to :meth:`ContentService.publish_next` asks the provider for a
project, turns it into a :class:`PostDraft`, encodes it and hands the
record to the publisher.
"""

from __future__ import annotations

from ossky.interfaces.content_provider import Content, IContentProvider
from ossky.interfaces.publisher import IPublisher
from ossky.models.post import PostDraft
from ossky.services.post_encoder import PostEncoder
from ossky.utils.errors import ContentUnavailableError, OssBotError
from ossky.utils.logging import get_logger, log_error

_AUTHOR_MARKER = "Author: @"
_STAR_MARKER = "⭐️"


def draft_from_content(content: Content) -> PostDraft:
    """Split the provider's free-form ``extra_data`` lines into draft fields.

    The author line is recognised by its ``"Author: @"`` prefix, any line
    holding a ``#`` is the hashtag line and a line with a star is the
    stargazer count.  Later lines of the same kind win.
    """
    author = stargazers = hashtags = ""
    for line in content.extra_data:
        if _AUTHOR_MARKER in line:
            author = line.replace("Author: ", "", 1)
        if "#" in line:
            hashtags = line.strip()
            continue
        if _STAR_MARKER in line:
            stargazers = line.strip()

    return PostDraft(
        title=content.title,
        url=content.url,
        description=content.subtitle,
        author=author,
        stargazers=stargazers,
        hashtags=hashtags,
    )


class ContentService:
    """Fetches the next project and publishes it."""

    def __init__(self, provider: IContentProvider, encoder: PostEncoder) -> None:
        self._provider = provider
        self._encoder = encoder
        self._logger = get_logger(__name__)

    @property
    def provider(self) -> IContentProvider:
        return self._provider

    async def publish_next(self, publisher: IPublisher) -> bool:
        """Publish one project.

        Returns
        -------
        bool
            ``True`` when a record was handed to the publisher, ``False``
            when the provider had nothing new.

        Raises
        ------
        ContentUnavailableError
            The provider failed; the caller should wait for the next poll.
        PublishError
            Propagated from the publisher for non-suppressed failures.
        """
        try:
            content = await self._provider.get_content_to_publish()
        except OssBotError as exc:
            log_error(self._logger, "content_fetch_failed", exc, provider=self._provider.get_provider_name())
            raise ContentUnavailableError(provider_name=self._provider.get_provider_name()) from exc

        if content is None:
            self._logger.debug("nothing found")
            return False

        record = self._encoder.build_record(draft_from_content(content))
        await publisher.post(record)
        return True
