"""Content discovery providers.

GitHubContentProvider searches GitHub for repositories in one language and
deduplicates them through an ICacheProvider.
"""

from ossky.providers.content.github_provider import GitHubContentProvider

__all__ = ["GitHubContentProvider"]
