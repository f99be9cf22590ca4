"""GitHub repository discovery provider using the REST search API.

Picks a random page of repositories for the configured language, skips
the ones already announced (tracked in the injected cache) and returns the
first fresh one as :class:`~ossky.interfaces.content_provider.Content`.

When GitHub reports that the rate limit is exhausted, the reset time is
stored in the cache so that no further calls are made until it passes,
even across restarts when the S3 backend is used.
"""

from __future__ import annotations

import math
import random
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

import httpx
import structlog

from ossky.interfaces.cache_provider import ICacheProvider
from ossky.interfaces.content_provider import Content, IContentProvider
from ossky.utils.errors import ProviderUnavailableError, RateLimitError

logger = structlog.get_logger(logger_name=__name__)

_GITHUB_API = "https://api.github.com"
_DEFAULT_TIMEOUT = 15.0
_SEARCH_PER_PAGE = 30
# The search API never returns more than this many results per query.
_MAX_SEARCH_RESULTS = 1000
_MIN_BACKOFF_SECONDS = 60

RATE_LIMIT_CACHE_KEY = "github-rate-limit"
REPO_CACHE_PREFIX = "repo-"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class GitHubContentProvider(IContentProvider):
    """Discovers repositories to announce.

    Constructor injection: token, cache and HTTP client are passed in, not
    read from the environment.
    """

    def __init__(
        self,
        *,
        github_token: str,
        cache: ICacheProvider,
        language: str = "go",
        hashtag: str = "#golang",
        min_stars: int = 10,
        max_topic_hashtags: int = 3,
        dedupe_ttl: int = 0,
        http_client: httpx.AsyncClient | None = None,
        rng: random.Random | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._token = github_token
        self._cache = cache
        self._language = language
        self._hashtag = hashtag
        self._min_stars = min_stars
        self._max_topic_hashtags = max_topic_hashtags
        self._dedupe_ttl = dedupe_ttl
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=httpx.Timeout(_DEFAULT_TIMEOUT))
        self._rng = rng or random.Random()
        self._clock = clock or _utcnow

    def get_provider_name(self) -> str:
        return "github"

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # ------------------------------------------------------------------
    # IContentProvider implementation
    # ------------------------------------------------------------------

    async def get_content_to_publish(self) -> Content | None:
        """Return a repository that has not been announced recently."""
        await self._check_backoff()

        first = await self._search(page=1, per_page=1)
        total = min(int(first.get("total_count", 0)), _MAX_SEARCH_RESULTS)
        if total == 0:
            logger.debug("github_search_empty", language=self._language)
            return None

        page = self._rng.randint(1, max(1, math.ceil(total / _SEARCH_PER_PAGE)))
        repos = list((await self._search(page=page, per_page=_SEARCH_PER_PAGE)).get("items", []))
        self._rng.shuffle(repos)

        for repo in repos:
            key = REPO_CACHE_PREFIX + repo["full_name"]
            if await self._cache.get(key) is not None:
                logger.debug("github_repo_already_posted", repo=repo["full_name"])
                continue
            await self._cache.set(key, True, ttl=self._dedupe_ttl)
            logger.info("github_repo_selected", repo=repo["full_name"], page=page)
            return self._content_from(repo)

        logger.debug("github_no_fresh_repo", page=page, candidates=len(repos))
        return None

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _headers(self) -> dict[str, str]:
        """Standard headers for GitHub API requests."""
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if self._token:
            headers["Authorization"] = f"token {self._token}"
        return headers

    async def _search(self, *, page: int, per_page: int) -> dict[str, Any]:
        params = {
            "q": f"language:{self._language} stars:>={self._min_stars} archived:false",
            "sort": "stars",
            "order": "desc",
            "per_page": per_page,
            "page": page,
        }
        try:
            resp = await self._client.get(
                f"{_GITHUB_API}/search/repositories", params=params, headers=self._headers()
            )
        except httpx.HTTPError as exc:
            raise ProviderUnavailableError(
                message=f"GitHub search failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        if self._is_rate_limited(resp):
            until = await self._remember_rate_limit(resp)
            raise RateLimitError(
                message=f"GitHub rate limit exhausted until {until}",
                provider_name=self.get_provider_name(),
            )

        if resp.is_error:
            raise ProviderUnavailableError(
                message=f"GitHub search returned HTTP {resp.status_code}: {resp.text[:200]}",
                provider_name=self.get_provider_name(),
            )
        return resp.json()

    @staticmethod
    def _is_rate_limited(resp: httpx.Response) -> bool:
        if resp.status_code == 429:
            return True
        return resp.status_code == 403 and resp.headers.get("X-RateLimit-Remaining") == "0"

    async def _remember_rate_limit(self, resp: httpx.Response) -> str:
        """Store the reset time in the cache; returns it as an ISO timestamp."""
        now = self._clock().timestamp()
        if "Retry-After" in resp.headers:
            reset_at = now + float(resp.headers["Retry-After"])
        else:
            reset_at = float(resp.headers.get("X-RateLimit-Reset", now))
        ttl = max(math.ceil(reset_at - now), _MIN_BACKOFF_SECONDS)
        until = datetime.fromtimestamp(now + ttl, tz=timezone.utc).isoformat()

        await self._cache.set(RATE_LIMIT_CACHE_KEY, until, ttl=ttl)
        logger.warning("github_rate_limited", until=until, ttl=ttl)
        return until

    async def _check_backoff(self) -> None:
        until = await self._cache.get(RATE_LIMIT_CACHE_KEY)
        if until is not None:
            logger.info("github_rate_limit_backoff", until=until)
            raise RateLimitError(
                message=f"GitHub rate limit back-off in effect until {until}",
                provider_name=self.get_provider_name(),
            )

    def _content_from(self, repo: dict[str, Any]) -> Content:
        owner = (repo.get("owner") or {}).get("login", "")
        extra = [f"{repo.get('stargazers_count', 0)} ⭐️"]
        if owner:
            extra.append(f"Author: @{owner}")
        hashtags = self._hashtags(repo.get("topics") or [])
        if hashtags:
            extra.append(hashtags)

        return Content(
            title=repo.get("name") or repo["full_name"],
            subtitle=repo.get("description") or "",
            url=repo["html_url"],
            extra_data=tuple(extra),
        )

    def _hashtags(self, topics: list[str]) -> str:
        tags: list[str] = []
        if self._hashtag:
            tags.append(self._hashtag)
        for topic in topics:
            if len(tags) >= self._max_topic_hashtags + (1 if self._hashtag else 0):
                break
            tag = "#" + topic.replace("-", "")
            if tag.lower() not in {t.lower() for t in tags}:
                tags.append(tag)
        return " ".join(tags)
