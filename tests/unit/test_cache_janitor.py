"""Unit tests for CacheJanitor sweeps and lifecycle."""

from __future__ import annotations

import asyncio
from typing import Any
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError
from structlog.testing import capture_logs

from ossky.providers.cache.s3_cache import S3CacheProvider
from ossky.services.cache_janitor import CacheJanitor
from ossky.utils.errors import CleanupError


def _client_error(code: str, operation: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


def _mock_client(keys: list[str], metadata: dict[str, str] | None = None) -> MagicMock:
    client = MagicMock()
    paginator = MagicMock()
    paginator.paginate.return_value = [{"Contents": [{"Key": key} for key in keys]}]
    client.get_paginator.return_value = paginator
    client.head_object.return_value = {"Metadata": metadata or {}}
    return client


class TestCacheJanitorSweep:
    @pytest.fixture()
    def cache(self, s3_client: Any, bucket: str, clock) -> S3CacheProvider:
        return S3CacheProvider(client=s3_client, bucket=bucket, clock=clock)

    @pytest.fixture()
    def janitor(self, s3_client: Any, bucket: str, clock) -> CacheJanitor:
        return CacheJanitor(client=s3_client, bucket=bucket, interval=3600, clock=clock)

    @pytest.mark.asyncio
    async def test_expired_deleted_fresh_kept(
        self, cache: S3CacheProvider, janitor: CacheJanitor, clock, object_exists
    ) -> None:
        await cache.set("old", True, ttl=60)
        await cache.set("fresh", True, ttl=3600)
        clock.advance(61)

        report = await janitor.run_cycle()

        assert (report.scanned, report.deleted, report.skipped) == (2, 1, 1)
        assert object_exists("old") is False
        assert object_exists("fresh") is True

    @pytest.mark.asyncio
    async def test_entry_at_exact_expiry_is_kept(
        self, cache: S3CacheProvider, janitor: CacheJanitor, clock, object_exists
    ) -> None:
        await cache.set("edge", True, ttl=60)
        clock.advance(60)

        report = await janitor.run_cycle()

        assert report.deleted == 0
        assert object_exists("edge") is True

    @pytest.mark.asyncio
    async def test_object_without_expiry_is_deleted_and_logged(
        self, janitor: CacheJanitor, put_raw_object, object_exists
    ) -> None:
        put_raw_object("orphan")

        with capture_logs() as logs:
            report = await janitor.run_cycle()

        assert report.deleted == 1
        assert object_exists("orphan") is False
        orphan_logs = [entry for entry in logs if entry["event"] == "janitor_orphan_found"]
        assert orphan_logs and orphan_logs[0]["key"] == "orphan"
        assert orphan_logs[0]["log_level"] == "error"

    @pytest.mark.asyncio
    async def test_unparseable_expiry_is_skipped(
        self, janitor: CacheJanitor, put_raw_object, object_exists
    ) -> None:
        put_raw_object("garbled", metadata={"expires-at": "yesterday-ish"})

        with capture_logs() as logs:
            report = await janitor.run_cycle()

        assert (report.deleted, report.skipped) == (0, 1)
        assert object_exists("garbled") is True
        assert any(entry["event"] == "janitor_expiry_unparseable" for entry in logs)

    @pytest.mark.asyncio
    async def test_second_cycle_is_a_noop(
        self, cache: S3CacheProvider, janitor: CacheJanitor, clock
    ) -> None:
        await cache.set("old", True, ttl=1)
        clock.advance(5)

        first = await janitor.run_cycle()
        second = await janitor.run_cycle()

        assert first.deleted == 1
        assert second.deleted == 0
        assert second.scanned == 0

    @pytest.mark.asyncio
    async def test_prefix_limits_sweep(
        self, s3_client: Any, bucket: str, clock, put_raw_object, object_exists
    ) -> None:
        put_raw_object("repo-a/b")
        put_raw_object("other")
        janitor = CacheJanitor(client=s3_client, bucket=bucket, prefix="repo-", clock=clock)

        report = await janitor.run_cycle()

        assert report.scanned == 1
        assert object_exists("other") is True


class TestCacheJanitorFailures:
    @pytest.mark.asyncio
    async def test_delete_failure_aborts_cycle(self) -> None:
        client = _mock_client(["a", "b"], {"expires-at": "2000-01-01T00:00:00Z"})
        client.delete_object.side_effect = _client_error("AccessDenied", "DeleteObject")
        janitor = CacheJanitor(client=client, bucket="b")

        with pytest.raises(CleanupError, match=r"\(a\)"):
            await janitor.run_cycle()
        assert client.delete_object.call_count == 1

    @pytest.mark.asyncio
    async def test_metadata_failure_skips_object(self) -> None:
        client = _mock_client(["a", "b"])
        client.head_object.side_effect = [
            _client_error("InternalError", "HeadObject"),
            {"Metadata": {"expires-at": "2000-01-01T00:00:00Z"}},
        ]
        janitor = CacheJanitor(client=client, bucket="b")

        with capture_logs() as logs:
            report = await janitor.run_cycle()

        assert (report.scanned, report.deleted, report.skipped) == (2, 1, 1)
        client.delete_object.assert_called_once_with(Bucket="b", Key="b")
        assert any(entry["event"] == "janitor_metadata_failed" for entry in logs)

    @pytest.mark.asyncio
    async def test_object_vanished_before_inspection(self) -> None:
        client = _mock_client(["gone"])
        client.head_object.side_effect = _client_error("404", "HeadObject")
        janitor = CacheJanitor(client=client, bucket="b")

        report = await janitor.run_cycle()

        assert report.skipped == 1
        client.delete_object.assert_not_called()

    @pytest.mark.asyncio
    async def test_repeated_listing_failure_ends_cycle(self) -> None:
        client = MagicMock()
        client.get_paginator.return_value.paginate.side_effect = _client_error(
            "InternalError", "ListObjectsV2"
        )
        janitor = CacheJanitor(client=client, bucket="b")

        with capture_logs() as logs:
            report = await janitor.run_cycle()

        assert report.scanned == 0
        assert client.get_paginator.return_value.paginate.call_count == 2
        assert any(entry["event"] == "janitor_list_failed" for entry in logs)

    @pytest.mark.asyncio
    async def test_listing_resumes_after_last_key(self) -> None:
        def pages_then_error():
            yield {"Contents": [{"Key": "a"}, {"Key": "b"}]}
            raise _client_error("InternalError", "ListObjectsV2")

        client = _mock_client([])
        paginate = client.get_paginator.return_value.paginate
        paginate.side_effect = [pages_then_error(), [{"Contents": [{"Key": "c"}]}]]
        janitor = CacheJanitor(client=client, bucket="b")

        with capture_logs() as logs:
            report = await janitor.run_cycle()

        assert (report.scanned, report.deleted) == (3, 3)
        assert paginate.call_args_list[1].kwargs["StartAfter"] == "b"
        assert any(entry["event"] == "janitor_list_resuming" for entry in logs)
        assert not any(entry["event"] == "janitor_list_failed" for entry in logs)


class TestCacheJanitorLifecycle:
    @pytest.mark.asyncio
    async def test_start_runs_cycles_until_stopped(self) -> None:
        client = _mock_client([])
        janitor = CacheJanitor(client=client, bucket="b", interval=0.01)

        task = janitor.start()
        assert janitor.start() is task
        await asyncio.sleep(0.05)
        await janitor.stop()

        assert janitor.running is False
        assert client.get_paginator.called

    @pytest.mark.asyncio
    async def test_stop_before_first_interval_skips_sweep(self) -> None:
        client = _mock_client([])
        janitor = CacheJanitor(client=client, bucket="b", interval=3600)

        janitor.start()
        await asyncio.sleep(0)
        await janitor.stop()

        client.get_paginator.assert_not_called()

    @pytest.mark.asyncio
    async def test_stop_without_start_is_noop(self) -> None:
        janitor = CacheJanitor(client=_mock_client([]), bucket="b")

        await janitor.stop()

        assert janitor.running is False

    @pytest.mark.asyncio
    async def test_cycle_failure_keeps_loop_alive(self) -> None:
        client = _mock_client(["a"], {"expires-at": "2000-01-01T00:00:00Z"})
        client.delete_object.side_effect = _client_error("AccessDenied", "DeleteObject")
        janitor = CacheJanitor(client=client, bucket="b", interval=0.01)

        with capture_logs() as logs:
            janitor.start()
            await asyncio.sleep(0.05)
            assert janitor.running is True
            await janitor.stop()

        assert any(entry["event"] == "janitor_cycle_failed" for entry in logs)

    @pytest.mark.asyncio
    async def test_crashed_loop_is_logged_on_stop(self) -> None:
        client = _mock_client([])
        client.get_paginator.side_effect = RuntimeError("paginator exploded")
        janitor = CacheJanitor(client=client, bucket="b", interval=0.01)

        with capture_logs() as logs:
            janitor.start()
            await asyncio.sleep(0.05)
            assert janitor.running is False
            await janitor.stop()

        crashed = [entry for entry in logs if entry["event"] == "janitor_crashed"]
        assert crashed[0]["error"] == "paginator exploded"
        assert crashed[0]["error_type"] == "RuntimeError"
