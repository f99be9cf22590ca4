"""Long-running bot loop: connect, poll, publish, reconnect.

# ─── LOOP STRUCTURE ──────────────────────────────────────────────────
#
#   run()
#     ├─ janitor.start()                      (once per process)
#     └─ reconnect loop
#          ├─ publisher = publisher_factory(); connect()
#          │     ConfigurationError → raised, process exits
#          │     anything else      → log, pause(reconnect_delay), retry
#          └─ poll loop
#                ├─ content_service.publish_next(publisher)
#                │     ContentUnavailableError → log, keep polling
#                │     PostTooLongError        → log, skip project, keep polling
#                │     other error             → log, leave poll loop
#                └─ pause(check_interval)
#          close publisher, pause(reconnect_delay)
#     finally: janitor.stop()
#
# stop() sets the same event every pause waits on, so the loop ends at
# the next pause without waiting out the full interval.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable

from ossky.interfaces.publisher import IPublisher
from ossky.services.cache_janitor import CacheJanitor
from ossky.services.content_service import ContentService
from ossky.utils.errors import ConfigurationError, ContentUnavailableError, PostTooLongError
from ossky.utils.logging import get_logger, log_error

DEFAULT_CHECK_INTERVAL_SECONDS = 15 * 60
DEFAULT_RECONNECT_DELAY_SECONDS = 2 * 60


class BotRunner:
    """Drives the publish cycle until :meth:`stop` is called.

    Parameters
    ----------
    publisher_factory:
        Returns a fresh, unconnected publisher for every (re)connect.
    content_service:
        Fetches and publishes one project per poll.
    janitor:
        Optional cache sweeper, started once and stopped on exit.
    check_interval:
        Seconds between polls.
    reconnect_delay:
        Seconds to wait after a failed session before reconnecting.
    """

    def __init__(
        self,
        publisher_factory: Callable[[], IPublisher],
        content_service: ContentService,
        janitor: CacheJanitor | None = None,
        check_interval: float = DEFAULT_CHECK_INTERVAL_SECONDS,
        reconnect_delay: float = DEFAULT_RECONNECT_DELAY_SECONDS,
    ) -> None:
        self._publisher_factory = publisher_factory
        self._content_service = content_service
        self._janitor = janitor
        self._check_interval = check_interval
        self._reconnect_delay = reconnect_delay
        self._stop_event = asyncio.Event()
        self._logger = get_logger(__name__)

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    def stop(self) -> None:
        """Ask the loop to end at its next pause."""
        self._stop_event.set()

    async def run(self) -> None:
        """Run until stopped.

        Raises
        ------
        ConfigurationError
            If the publisher refuses the configured credentials.
        """
        if self._janitor is not None:
            self._janitor.start()
        try:
            while not self.stopped:
                await self._run_session()
                if not self.stopped:
                    self._logger.info("bot_reconnecting", delay=self._reconnect_delay)
                    await self._pause(self._reconnect_delay)
        finally:
            if self._janitor is not None:
                await self._janitor.stop()
            self._logger.info("bot_stopped")

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _run_session(self) -> None:
        """Connect one publisher and poll with it until something breaks."""
        publisher = self._publisher_factory()
        try:
            try:
                await publisher.connect()
            except ConfigurationError:
                raise
            except Exception as exc:
                log_error(self._logger, "bot_connect_failed", exc)
                return

            self._logger.info("bot_connected", check_interval=self._check_interval)
            await self._poll(publisher)
        finally:
            await publisher.close()

    async def _poll(self, publisher: IPublisher) -> None:
        while not self.stopped:
            try:
                await self._content_service.publish_next(publisher)
            except ContentUnavailableError as exc:
                self._logger.warning("bot_content_unavailable", error=str(exc))
            except PostTooLongError as exc:
                log_error(self._logger, "bot_post_skipped", exc)
            except Exception as exc:
                log_error(self._logger, "bot_session_failed", exc)
                return
            await self._pause(self._check_interval)

    async def _pause(self, seconds: float) -> None:
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass
