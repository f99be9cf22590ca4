"""Unit tests for the factory functions in ossky/main.py."""

from __future__ import annotations

from typing import Any
from unittest.mock import MagicMock

import pytest

from ossky.config.settings import CacheBackend, Settings
from ossky.main import build_cache, build_runner, build_s3_client, run_sweep
from ossky.providers.cache.memory_cache import MemoryCacheProvider
from ossky.providers.cache.s3_cache import S3CacheProvider
from ossky.services.cache_janitor import CacheJanitor


def _settings(**overrides) -> Settings:
    """Build a Settings instance with complete credentials and optional overrides."""
    defaults = {
        "bluesky_app_key": "app-pass",
        "github_token": "ghp_test",
        "aws_endpoint": "s3.example.org",
        "aws_access_key_id": "testing",
        "aws_secret_key": "testing",
        "aws_region": "us-east-1",
        "app_env": "test",
    }
    defaults.update(overrides)
    return Settings(**defaults)


class TestBuildS3Client:
    def test_scheme_added_to_bare_endpoint(self, aws_credentials: None) -> None:
        client = build_s3_client(_settings())

        assert client.meta.endpoint_url == "https://s3.example.org"

    def test_explicit_scheme_kept(self, aws_credentials: None) -> None:
        client = build_s3_client(_settings(aws_endpoint="http://localhost:9000"))

        assert client.meta.endpoint_url == "http://localhost:9000"


class TestBuildCache:
    def test_memory_backend(self) -> None:
        cache = build_cache(_settings(cache_backend=CacheBackend.MEMORY))

        assert isinstance(cache, MemoryCacheProvider)

    def test_s3_backend_uses_given_client(self) -> None:
        client = MagicMock()

        cache = build_cache(_settings(cache_bucket="my-bucket"), client)

        assert isinstance(cache, S3CacheProvider)
        assert cache.bucket == "my-bucket"


class TestBuildRunner:
    def test_s3_backend_attaches_janitor(self) -> None:
        runner = build_runner(_settings(), s3_client=MagicMock())

        assert isinstance(runner._janitor, CacheJanitor)
        assert runner._check_interval == 900
        assert runner._reconnect_delay == 120

    def test_memory_backend_has_no_janitor(self) -> None:
        runner = build_runner(_settings(cache_backend=CacheBackend.MEMORY))

        assert runner._janitor is None

    def test_publisher_factory_builds_fresh_publishers(self) -> None:
        runner = build_runner(_settings(cache_backend=CacheBackend.MEMORY))

        assert runner._publisher_factory() is not runner._publisher_factory()


class TestRunSweep:
    @pytest.mark.asyncio
    async def test_sweep_deletes_orphans(self, s3_client: Any, bucket: str, put_raw_object) -> None:
        put_raw_object("orphan")

        report = await run_sweep(_settings(cache_bucket=bucket), s3_client=s3_client)

        assert (report.scanned, report.deleted) == (1, 1)
