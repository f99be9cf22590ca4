"""Application settings loaded from environment variables via pydantic-settings.

Settings are read from two sources (in priority order):

  1. **Environment variables** -- e.g. ``BLUESKY_APP_KEY=xxxx-xxxx``
  2. **.env file** -- key=value lines in the working directory

Field ``bluesky_app_key`` maps to env var ``BLUESKY_APP_KEY`` and so on.
Defaults below are the reference policy (15 minute poll, 2 minute
reconnect delay, 24 hour cache TTL and sweep interval).
"""

from enum import Enum

from pydantic_settings import BaseSettings, SettingsConfigDict


class StargazersPlacement(str, Enum):
    """Where the ``(n ⭐️)`` segment goes in the post text."""

    AFTER_TITLE = "after_title"
    AFTER_DESCRIPTION = "after_description"


class CacheBackend(str, Enum):
    S3 = "s3"
    MEMORY = "memory"


class Settings(BaseSettings):
    """ossky application settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # === Bluesky ===
    bluesky_handle: str = "till+bluesky-golang@lagged.biz"
    bluesky_app_key: str = ""
    bluesky_server: str = "https://bsky.social"

    # === Object store (cache) ===
    aws_endpoint: str = ""
    aws_access_key_id: str = ""
    aws_secret_key: str = ""
    aws_region: str = ""
    cache_backend: CacheBackend = CacheBackend.S3
    cache_bucket: str = "golangoss-cache-bucket"
    cache_default_ttl_seconds: int = 24 * 60 * 60
    cache_cleanup_interval_seconds: int = 24 * 60 * 60
    # 0 = use the store's default TTL for "already posted" markers.
    dedupe_ttl_seconds: int = 0

    # === GitHub discovery ===
    github_token: str = ""
    github_language: str = "go"
    github_hashtag: str = "#golang"
    github_max_topic_hashtags: int = 3
    github_min_stars: int = 10

    # === Schedule ===
    check_interval_seconds: float = 15 * 60
    reconnect_delay_seconds: float = 2 * 60

    # === Post layout ===
    post_language: str = "en-UK"
    stargazers_placement: StargazersPlacement = StargazersPlacement.AFTER_TITLE

    # === App Config ===
    app_env: str = "development"
    log_level: str = "INFO"

    def missing_required(self) -> list[str]:
        """Return the names of required credentials that are still empty."""
        required = ["bluesky_app_key", "github_token"]
        if self.cache_backend is CacheBackend.S3:
            required += ["aws_endpoint", "aws_access_key_id", "aws_secret_key"]
        return [name for name in required if not getattr(self, name)]
