"""Background sweeper that reclaims expired cache objects.

# ─── HOW THE JANITOR WORKS ───────────────────────────────────────────
#
#   start() ──create_task──→ _run()
#                              │  wait(interval) or stop signal
#                              ▼
#                          run_cycle()
#                              │  list keys (paginated)
#                              │  head_object per key → expires-at
#                              │  missing   → log + delete (orphan)
#                              │  garbage   → log + skip
#                              │  past      → delete
#                              ▼
#                          CleanupReport
#
# Reads and writes never call into the janitor; lazy expiry in
# S3CacheProvider.get keeps expired entries invisible in the meantime.
#
# Failure policy:
#   - metadata fetch fails for one object → logged, skipped
#   - a listing page fails                → logged, listing resumes once
#                                           after the last key seen
#   - listing fails again                 → logged, cycle ends early
#   - a delete fails                      → CleanupError, cycle aborted
#   - anything else kills the loop        → logged as janitor_crashed
# Every case is retried naturally on the next cycle.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

import structlog
from botocore.exceptions import BotoCoreError, ClientError

from ossky.providers.cache.s3_cache import is_missing_key_error
from ossky.providers.cache.serialization import expires_at_from_metadata, parse_expires_at
from ossky.utils.errors import CleanupError
from ossky.utils.logging import get_logger, log_error

DEFAULT_CLEANUP_INTERVAL_SECONDS = 24 * 60 * 60

_EXHAUSTED = object()


@dataclass
class CleanupReport:
    """Outcome of one sweep over the bucket."""

    scanned: int = 0
    deleted: int = 0
    skipped: int = 0


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CacheJanitor:
    """Periodically deletes expired and orphaned objects from the cache bucket.

    Parameters
    ----------
    client:
        A boto3 S3 client (the same backing store the cache writes to).
    bucket:
        Cache bucket name.
    interval:
        Seconds between sweeps.  The first sweep runs one interval after
        :meth:`start`.
    prefix:
        Only keys under this prefix are swept.
    clock:
        Returns the current aware UTC time.  Injected by tests.
    """

    def __init__(
        self,
        client: Any,
        bucket: str,
        interval: float = DEFAULT_CLEANUP_INTERVAL_SECONDS,
        prefix: str = "",
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._client = client
        self._bucket = bucket
        self._interval = interval
        self._prefix = prefix
        self._clock = clock or _utcnow
        self._stop_event = asyncio.Event()
        self._task: asyncio.Task[None] | None = None
        self._logger: structlog.BoundLogger = get_logger(__name__)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> asyncio.Task[None]:
        """Schedule the background sweep loop on the running event loop."""
        if self._task is not None and not self._task.done():
            return self._task
        self._stop_event.clear()
        self._task = asyncio.create_task(self._run(), name="cache-janitor")
        self._logger.info("janitor_started", bucket=self._bucket, interval=self._interval)
        return self._task

    async def stop(self) -> None:
        """Signal the loop to stop and wait for it to exit.

        An in-flight delete is allowed to finish; no new object is touched
        after the signal.
        """
        self._stop_event.set()
        task, self._task = self._task, None
        if task is None:
            return
        try:
            await task
        except asyncio.CancelledError:
            pass
        except Exception as exc:
            log_error(self._logger, "janitor_crashed", exc, bucket=self._bucket)
        self._logger.info("janitor_stopped", bucket=self._bucket)

    async def _run(self) -> None:
        while not self._stop_event.is_set():
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self._interval)
            except asyncio.TimeoutError:
                pass
            if self._stop_event.is_set():
                break
            try:
                report = await self.run_cycle()
            except CleanupError as exc:
                self._logger.error("janitor_cycle_failed", bucket=self._bucket, error=str(exc))
                continue
            self._logger.info(
                "janitor_cycle_complete",
                bucket=self._bucket,
                scanned=report.scanned,
                deleted=report.deleted,
                skipped=report.skipped,
            )

    # ------------------------------------------------------------------
    # Sweep
    # ------------------------------------------------------------------

    async def run_cycle(self) -> CleanupReport:
        """Run one sweep over the bucket.

        Returns
        -------
        CleanupReport
            Counts of objects seen, deleted and skipped.

        Raises
        ------
        CleanupError
            If an object cannot be deleted; remaining objects are left for
            the next cycle.
        """
        report = CleanupReport()
        keys = self._iter_keys()
        last_key: str | None = None
        resumed = False

        while not self._stop_event.is_set():
            try:
                key = await asyncio.to_thread(next, keys, _EXHAUSTED)
            except (ClientError, BotoCoreError) as exc:
                if resumed:
                    self._logger.error(
                        "janitor_list_failed", bucket=self._bucket, after=last_key, error=str(exc)
                    )
                    break
                self._logger.warning(
                    "janitor_list_resuming", bucket=self._bucket, after=last_key, error=str(exc)
                )
                resumed = True
                keys = self._iter_keys(start_after=last_key)
                continue
            if key is _EXHAUSTED:
                break

            last_key = key
            report.scanned += 1
            if await self._sweep_object(key):
                report.deleted += 1
            else:
                report.skipped += 1

        return report

    async def _sweep_object(self, key: str) -> bool:
        """Inspect one object and delete it when orphaned or expired.

        Returns ``True`` if the object was deleted.
        """
        try:
            metadata = await asyncio.to_thread(self._head_sync, key)
        except ClientError as exc:
            if is_missing_key_error(exc):
                # Removed between listing and inspection.
                return False
            self._logger.error("janitor_metadata_failed", key=key, error=str(exc))
            return False
        except BotoCoreError as exc:
            self._logger.error("janitor_metadata_failed", key=key, error=str(exc))
            return False

        raw = expires_at_from_metadata(metadata)
        if raw is None:
            self._logger.error("janitor_orphan_found", key=key, reason="no expiration metadata")
            await self._delete(key)
            return True

        try:
            expires_at = parse_expires_at(raw)
        except ValueError as exc:
            self._logger.error("janitor_expiry_unparseable", key=key, expires_at=raw, error=str(exc))
            return False

        if not self._clock() > expires_at:
            return False

        await self._delete(key)
        self._logger.debug("janitor_expired_deleted", key=key, expired_at=raw)
        return True

    async def _delete(self, key: str) -> None:
        # Shielded so a cancellation never abandons a delete half-way.
        try:
            await asyncio.shield(asyncio.to_thread(self._delete_sync, key))
        except (ClientError, BotoCoreError) as exc:
            raise CleanupError(
                message=f"Failed to delete expired object ({key}): {exc}",
                provider_name="s3",
            ) from exc

    # -- Sync helpers (executed via asyncio.to_thread) -------------------------

    def _iter_keys(self, start_after: str | None = None) -> Iterator[str]:
        params = {"Bucket": self._bucket, "Prefix": self._prefix}
        if start_after:
            params["StartAfter"] = start_after
        paginator = self._client.get_paginator("list_objects_v2")
        for page in paginator.paginate(**params):
            for item in page.get("Contents", []):
                yield item["Key"]

    def _head_sync(self, key: str) -> dict[str, str]:
        response = self._client.head_object(Bucket=self._bucket, Key=key)
        return response.get("Metadata") or {}

    def _delete_sync(self, key: str) -> None:
        self._client.delete_object(Bucket=self._bucket, Key=key)
