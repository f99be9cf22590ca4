"""Unit tests for GitHubContentProvider with a mocked GitHub API."""

from __future__ import annotations

import random
from collections.abc import Callable

import httpx
import pytest

from ossky.providers.cache.memory_cache import MemoryCacheProvider
from ossky.providers.content.github_provider import (
    RATE_LIMIT_CACHE_KEY,
    GitHubContentProvider,
)
from ossky.utils.errors import ProviderUnavailableError, RateLimitError


def _repo(name: str, owner: str = "octocat", stars: int = 42, topics: list[str] | None = None) -> dict:
    return {
        "name": name,
        "full_name": f"{owner}/{name}",
        "html_url": f"https://github.com/{owner}/{name}",
        "description": f"{name} does things",
        "stargazers_count": stars,
        "owner": {"login": owner},
        "topics": topics or [],
    }


def _search_handler(repos: list[dict], requests: list[httpx.Request]) -> Callable[[httpx.Request], httpx.Response]:
    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        per_page = int(request.url.params["per_page"])
        return httpx.Response(200, json={"total_count": len(repos), "items": repos[:per_page]})

    return handler


class TestGitHubContentProvider:
    @pytest.fixture()
    def cache(self) -> MemoryCacheProvider:
        return MemoryCacheProvider()

    def _provider(self, handler, cache, clock=None) -> GitHubContentProvider:
        return GitHubContentProvider(
            github_token="ghp_test",
            cache=cache,
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
            rng=random.Random(7),
            clock=clock,
        )

    @pytest.mark.asyncio
    async def test_returns_content_with_extra_data(self, cache: MemoryCacheProvider) -> None:
        requests: list[httpx.Request] = []
        repos = [_repo("hello", topics=["golang", "cli", "web-framework", "x", "y"])]
        provider = self._provider(_search_handler(repos, requests), cache)

        content = await provider.get_content_to_publish()

        assert content is not None
        assert content.title == "hello"
        assert content.subtitle == "hello does things"
        assert content.url == "https://github.com/octocat/hello"
        assert content.extra_data == ("42 ⭐️", "Author: @octocat", "#golang #cli #webframework #x")

    @pytest.mark.asyncio
    async def test_search_request_shape(self, cache: MemoryCacheProvider) -> None:
        requests: list[httpx.Request] = []
        provider = self._provider(_search_handler([_repo("a")], requests), cache)

        await provider.get_content_to_publish()

        sent = requests[-1]
        assert sent.url.path == "/search/repositories"
        assert sent.url.params["q"] == "language:go stars:>=10 archived:false"
        assert sent.headers["Authorization"] == "token ghp_test"
        assert sent.headers["Accept"] == "application/vnd.github+json"

    @pytest.mark.asyncio
    async def test_chosen_repo_is_marked_and_not_repeated(self, cache: MemoryCacheProvider) -> None:
        requests: list[httpx.Request] = []
        provider = self._provider(_search_handler([_repo("a"), _repo("b")], requests), cache)

        first = await provider.get_content_to_publish()
        second = await provider.get_content_to_publish()
        third = await provider.get_content_to_publish()

        assert {first.title, second.title} == {"a", "b"}
        assert third is None
        assert await cache.get("repo-octocat/a") == "true"
        assert await cache.get("repo-octocat/b") == "true"

    @pytest.mark.asyncio
    async def test_empty_search_returns_none(self, cache: MemoryCacheProvider) -> None:
        provider = self._provider(_search_handler([], []), cache)

        assert await provider.get_content_to_publish() is None

    @pytest.mark.asyncio
    async def test_rate_limit_is_remembered(self, cache: MemoryCacheProvider, clock) -> None:
        calls: list[httpx.Request] = []
        reset = int(clock().timestamp()) + 120

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(
                403,
                json={"message": "API rate limit exceeded"},
                headers={"X-RateLimit-Remaining": "0", "X-RateLimit-Reset": str(reset)},
            )

        provider = self._provider(handler, cache, clock=clock)

        with pytest.raises(RateLimitError):
            await provider.get_content_to_publish()
        assert await cache.get(RATE_LIMIT_CACHE_KEY) == "2024-05-01T12:02:00+00:00"

        with pytest.raises(RateLimitError, match="back-off"):
            await provider.get_content_to_publish()
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_server_error_is_provider_unavailable(self, cache: MemoryCacheProvider) -> None:
        provider = self._provider(lambda r: httpx.Response(502, text="bad gateway"), cache)

        with pytest.raises(ProviderUnavailableError):
            await provider.get_content_to_publish()

    @pytest.mark.asyncio
    async def test_forbidden_without_rate_limit_is_provider_unavailable(self, cache: MemoryCacheProvider) -> None:
        provider = self._provider(
            lambda r: httpx.Response(403, json={}, headers={"X-RateLimit-Remaining": "12"}), cache
        )

        with pytest.raises(ProviderUnavailableError):
            await provider.get_content_to_publish()
        assert await cache.get(RATE_LIMIT_CACHE_KEY) is None

    @pytest.mark.asyncio
    async def test_connection_error_is_provider_unavailable(self, cache: MemoryCacheProvider) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("down", request=request)

        provider = self._provider(handler, cache)

        with pytest.raises(ProviderUnavailableError):
            await provider.get_content_to_publish()
