"""ossky application wiring.

Builds every provider and service from :class:`Settings` and exposes the
two long-lived entry points used by the CLI: :func:`run_bot` (the posting
loop with its cache janitor) and :func:`run_sweep` (one janitor cycle).
"""

from __future__ import annotations

import asyncio
import signal
from typing import Any

import boto3
import httpx
import structlog
from botocore.config import Config as BotoConfig

from ossky.config.settings import CacheBackend, Settings
from ossky.interfaces.cache_provider import ICacheProvider
from ossky.pipeline.runner import BotRunner
from ossky.providers.cache.memory_cache import MemoryCacheProvider
from ossky.providers.cache.s3_cache import S3CacheProvider, ensure_bucket
from ossky.providers.content.github_provider import GitHubContentProvider
from ossky.providers.publisher.bluesky_publisher import BlueskyPublisher
from ossky.services.cache_janitor import CacheJanitor, CleanupReport
from ossky.services.content_service import ContentService
from ossky.services.post_encoder import PostEncoder
from ossky.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


def build_s3_client(app_settings: Settings) -> Any:
    """Create a boto3 S3 client for the configured endpoint.

    Endpoints given without a scheme (``s3.example.org``) are assumed to be
    HTTPS.  Path-style addressing keeps non-AWS object stores working.
    """
    endpoint = app_settings.aws_endpoint
    if endpoint and "://" not in endpoint:
        endpoint = f"https://{endpoint}"

    return boto3.client(
        "s3",
        endpoint_url=endpoint or None,
        aws_access_key_id=app_settings.aws_access_key_id or None,
        aws_secret_access_key=app_settings.aws_secret_key or None,
        region_name=app_settings.aws_region or None,
        config=BotoConfig(s3={"addressing_style": "path"}),
    )


def build_cache(app_settings: Settings, s3_client: Any | None = None) -> ICacheProvider:
    """Select the cache backend named by ``cache_backend``."""
    if app_settings.cache_backend is CacheBackend.MEMORY:
        return MemoryCacheProvider(ttl=app_settings.cache_default_ttl_seconds)
    return S3CacheProvider(
        client=s3_client if s3_client is not None else build_s3_client(app_settings),
        bucket=app_settings.cache_bucket,
        default_ttl=app_settings.cache_default_ttl_seconds,
    )


def build_janitor(app_settings: Settings, s3_client: Any) -> CacheJanitor:
    return CacheJanitor(
        client=s3_client,
        bucket=app_settings.cache_bucket,
        interval=app_settings.cache_cleanup_interval_seconds,
    )


def build_runner(
    app_settings: Settings,
    s3_client: Any | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> BotRunner:
    """Construct the bot runner with all of its collaborators.

    The janitor is only attached for the S3 backend; the in-process cache
    expires entries on its own.
    """
    if app_settings.cache_backend is CacheBackend.S3 and s3_client is None:
        s3_client = build_s3_client(app_settings)

    cache = build_cache(app_settings, s3_client)
    provider = GitHubContentProvider(
        github_token=app_settings.github_token,
        cache=cache,
        language=app_settings.github_language,
        hashtag=app_settings.github_hashtag,
        min_stars=app_settings.github_min_stars,
        max_topic_hashtags=app_settings.github_max_topic_hashtags,
        dedupe_ttl=app_settings.dedupe_ttl_seconds,
        http_client=http_client,
    )
    encoder = PostEncoder(
        language=app_settings.post_language,
        stargazers_placement=app_settings.stargazers_placement,
    )

    def publisher_factory() -> BlueskyPublisher:
        return BlueskyPublisher(
            handle=app_settings.bluesky_handle,
            app_key=app_settings.bluesky_app_key,
            server=app_settings.bluesky_server,
            http_client=http_client,
        )

    janitor = None
    if app_settings.cache_backend is CacheBackend.S3:
        janitor = build_janitor(app_settings, s3_client)

    return BotRunner(
        publisher_factory=publisher_factory,
        content_service=ContentService(provider, encoder),
        janitor=janitor,
        check_interval=app_settings.check_interval_seconds,
        reconnect_delay=app_settings.reconnect_delay_seconds,
    )


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------


async def run_bot(app_settings: Settings) -> None:
    """Run the bot until SIGINT or SIGTERM."""
    s3_client = None
    if app_settings.cache_backend is CacheBackend.S3:
        s3_client = build_s3_client(app_settings)
        await asyncio.to_thread(
            ensure_bucket, s3_client, app_settings.cache_bucket, app_settings.aws_region
        )

    async with httpx.AsyncClient(timeout=httpx.Timeout(30.0)) as http_client:
        runner = build_runner(app_settings, s3_client=s3_client, http_client=http_client)

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, runner.stop)
            except NotImplementedError:
                # Not available on Windows event loops.
                pass

        _logger.info(
            "bot_starting",
            handle=app_settings.bluesky_handle,
            cache_backend=app_settings.cache_backend.value,
            bucket=app_settings.cache_bucket,
        )
        await runner.run()


async def run_sweep(app_settings: Settings, s3_client: Any | None = None) -> CleanupReport:
    """Run a single janitor cycle against the cache bucket."""
    if s3_client is None:
        s3_client = build_s3_client(app_settings)
    janitor = build_janitor(app_settings, s3_client)
    report = await janitor.run_cycle()
    _logger.info(
        "sweep_complete",
        bucket=app_settings.cache_bucket,
        scanned=report.scanned,
        deleted=report.deleted,
        skipped=report.skipped,
    )
    return report
