"""Version resolvers that keep release discovery out of the orchestrator."""

import re
from typing import Protocol, runtime_checkable

from outfitter.config.models import ResolverConfig
from outfitter.core.errors import FetchFailed
from outfitter.core.logging import get_logger
from outfitter.system.fetch import Fetcher

logger = get_logger(__name__)

GITHUB_API = "https://api.github.com"


@runtime_checkable
class VersionResolver(Protocol):
    """Protocol for discovering the version a unit should install."""

    async def resolve(self) -> str:
        """Resolve a version string.

        Raises:
            FetchFailed: If resolution fails and there is no fallback
        """
        ...


class StaticResolver:
    """Always returns the configured version."""

    def __init__(self, version: str) -> None:
        self.version = version

    async def resolve(self) -> str:
        return self.version


class UrlTextResolver:
    """Reads a version from a plain-text URL such as Kubernetes' stable.txt."""

    def __init__(self, fetcher: Fetcher, url: str, fallback: str = "") -> None:
        self.fetcher = fetcher
        self.url = url
        self.fallback = fallback

    async def resolve(self) -> str:
        try:
            version = (await self.fetcher.fetch_text(self.url)).strip()
        except FetchFailed:
            if not self.fallback:
                raise
            logger.warning("Using fallback version", url=self.url, version=self.fallback)
            return self.fallback

        if not version:
            if self.fallback:
                return self.fallback
            raise FetchFailed(self.url, "empty version")
        return version


class GitHubReleaseResolver:
    """Reads the tag of a repository's latest GitHub release."""

    def __init__(
        self,
        fetcher: Fetcher,
        repo: str,
        tag_prefix: str = "",
        fallback: str = "",
    ) -> None:
        self.fetcher = fetcher
        self.repo = repo
        self.tag_prefix = tag_prefix
        self.fallback = fallback

    @property
    def url(self) -> str:
        return f"{GITHUB_API}/repos/{self.repo}/releases/latest"

    async def resolve(self) -> str:
        try:
            release = await self.fetcher.fetch_json(self.url)
            tag = release.get("tag_name", "") if isinstance(release, dict) else ""
            if not tag:
                raise FetchFailed(self.url, "release has no tag_name")
        except FetchFailed:
            if not self.fallback:
                raise
            logger.warning("Using fallback version", repo=self.repo, version=self.fallback)
            return self.fallback

        return tag.removeprefix(self.tag_prefix)


def latest_matching(candidates: list[str], pattern: str) -> str:
    """Pick the last entry matching a regular expression.

    Args:
        candidates: Version strings in ascending order
        pattern: Regular expression a version must match

    Returns:
        The last match, or an empty string
    """
    regex = re.compile(pattern)
    matches = [c.strip() for c in candidates if regex.match(c.strip())]
    return matches[-1] if matches else ""


def create_resolver(
    fetcher: Fetcher,
    config: ResolverConfig | None,
) -> VersionResolver | None:
    """Create a resolver from its configuration.

    Args:
        fetcher: HTTP fetcher for network resolvers
        config: Resolver configuration (None for units without a version)

    Returns:
        Resolver instance or None
    """
    if config is None:
        return None
    if config.kind == "url-text":
        return UrlTextResolver(fetcher, config.url, config.fallback)
    if config.kind == "github-release":
        return GitHubReleaseResolver(fetcher, config.repo, config.tag_prefix, config.fallback)
    return StaticResolver(config.version)
