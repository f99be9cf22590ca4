"""Shared pytest fixtures for the ossky test suite."""

from __future__ import annotations

from collections.abc import Iterator
from datetime import datetime, timedelta, timezone
from typing import Any

import boto3
import pytest
import structlog
from moto import mock_aws

from ossky.models.post import PostDraft

# Loggers must not be cached on first use, otherwise
# structlog.testing.capture_logs() cannot swap the processor chain.
structlog.configure(
    processors=[
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.dev.ConsoleRenderer(colors=False),
    ],
    wrapper_class=structlog.make_filtering_bound_logger(0),
    logger_factory=structlog.PrintLoggerFactory(),
    cache_logger_on_first_use=False,
)

CACHE_BUCKET = "test-cache-bucket"


# ---------------------------------------------------------------------------
# Clock
# ---------------------------------------------------------------------------


class FakeClock:
    """Callable returning a controllable aware UTC time."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# ---------------------------------------------------------------------------
# S3 (moto)
# ---------------------------------------------------------------------------


@pytest.fixture
def bucket() -> str:
    return CACHE_BUCKET


@pytest.fixture
def aws_credentials(monkeypatch: pytest.MonkeyPatch) -> None:
    """Fake credentials so boto3 never reaches for real ones."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")


@pytest.fixture
def s3_client(aws_credentials: None) -> Iterator[Any]:
    """A moto-backed S3 client with the cache bucket already created."""
    with mock_aws():
        client = boto3.client("s3", region_name="us-east-1")
        client.create_bucket(Bucket=CACHE_BUCKET)
        yield client


@pytest.fixture
def put_raw_object(s3_client: Any):
    """Write an object directly, bypassing the cache provider."""

    def _put(key: str, body: bytes = b'"value"', metadata: dict | None = None) -> None:
        kwargs: dict[str, Any] = {"Bucket": CACHE_BUCKET, "Key": key, "Body": body}
        if metadata is not None:
            kwargs["Metadata"] = metadata
        s3_client.put_object(**kwargs)

    return _put


@pytest.fixture
def object_exists(s3_client: Any):
    def _exists(key: str) -> bool:
        response = s3_client.list_objects_v2(Bucket=CACHE_BUCKET, Prefix=key)
        return any(item["Key"] == key for item in response.get("Contents", []))

    return _exists


# ---------------------------------------------------------------------------
# Post fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def full_draft() -> PostDraft:
    return PostDraft(
        title="simple",
        description="description",
        url="https://github.com/user/repo",
        author="@user",
        stargazers="1 ⭐️",
        hashtags="#go",
    )
