"""HTTP client for installer scripts, signing keys and release artifacts."""

import asyncio
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any, TypeVar

import aiohttp
from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from outfitter.core.errors import FetchFailed
from outfitter.core.logging import get_logger

logger = get_logger(__name__)

USER_AGENT = "outfitter"
CHUNK_SIZE = 64 * 1024

T = TypeVar("T")


class Fetcher:
    """Client for fetching resources over HTTP(S).

    Transient network errors are retried with exponential backoff. HTTP
    error statuses are not retried. Every failure surfaces as FetchFailed.
    """

    def __init__(self, attempts: int = 3, timeout: float = 120.0) -> None:
        """Initialize the fetcher.

        Args:
            attempts: Maximum attempts per request
            timeout: Total timeout per attempt in seconds
        """
        self.attempts = attempts
        self.timeout = timeout

    async def fetch(self, url: str) -> bytes:
        """Fetch a URL into memory.

        Args:
            url: URL to fetch

        Returns:
            Response body

        Raises:
            FetchFailed: If the resource cannot be fetched
        """

        async def _attempt() -> bytes:
            async with self._session() as session:
                async with session.get(url) as response:
                    _check_status(url, response)
                    return await response.read()

        body = await self._with_retry(url, _attempt)
        logger.debug("Fetched resource", url=url, size=len(body))
        return body

    async def fetch_text(self, url: str) -> str:
        """Fetch a URL and decode it as UTF-8 text."""
        return (await self.fetch(url)).decode("utf-8", errors="replace")

    async def fetch_json(self, url: str) -> Any:
        """Fetch a URL and decode it as JSON.

        Raises:
            FetchFailed: If the resource cannot be fetched or is not JSON
        """

        async def _attempt() -> Any:
            async with self._session() as session:
                async with session.get(url, headers={"Accept": "application/json"}) as response:
                    _check_status(url, response)
                    return await response.json(content_type=None)

        try:
            return await self._with_retry(url, _attempt)
        except ValueError as e:
            raise FetchFailed(url, f"invalid JSON: {e}") from e

    async def exists(self, url: str) -> bool:
        """Check whether a URL resolves to a downloadable resource.

        Returns:
            True if a HEAD request (following redirects) succeeds
        """
        try:
            async with self._session() as session:
                async with session.head(url, allow_redirects=True) as response:
                    return response.status < 400
        except (aiohttp.ClientError, TimeoutError) as e:
            logger.debug("Existence check failed", url=url, error=str(e))
            return False

    async def download(self, url: str, destination: Path, mode: int | None = None) -> Path:
        """Stream a URL to a file.

        The body is written to a ``.part`` file that is renamed into place
        only after the download completes, so a failed download never leaves
        a truncated file at ``destination``.

        Args:
            url: URL to download
            destination: Target file path
            mode: Optional permission bits to apply

        Returns:
            The destination path

        Raises:
            FetchFailed: If the download fails
        """
        partial = destination.with_name(destination.name + ".part")
        destination.parent.mkdir(parents=True, exist_ok=True)

        async def _attempt() -> None:
            async with self._session() as session:
                async with session.get(url) as response:
                    _check_status(url, response)
                    with partial.open("wb") as f:
                        async for chunk in response.content.iter_chunked(CHUNK_SIZE):
                            f.write(chunk)

        try:
            await self._with_retry(url, _attempt)
            partial.replace(destination)
        finally:
            partial.unlink(missing_ok=True)

        if mode is not None:
            destination.chmod(mode)

        logger.debug("Downloaded file", url=url, path=str(destination))
        return destination

    def _session(self) -> aiohttp.ClientSession:
        return aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=self.timeout),
            headers={"User-Agent": USER_AGENT},
        )

    async def _with_retry(self, url: str, func: Callable[[], Awaitable[T]]) -> T:
        """Execute a request with retry logic.

        Args:
            url: URL being requested, for error reporting
            func: Async function performing one attempt

        Returns:
            Function result

        Raises:
            FetchFailed: If all attempts fail
        """
        try:
            async for attempt in AsyncRetrying(
                wait=wait_exponential(multiplier=1, min=1, max=10),
                stop=stop_after_attempt(self.attempts),
                retry=retry_if_exception_type((aiohttp.ClientError, asyncio.TimeoutError)),
                reraise=True,
            ):
                with attempt:
                    return await func()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise FetchFailed(url, str(e) or type(e).__name__) from e
        except RetryError as e:
            raise FetchFailed(url, str(e.last_attempt.exception())) from e

        # This should never be reached due to reraise=True
        raise RuntimeError("Unexpected retry error")


def _check_status(url: str, response: aiohttp.ClientResponse) -> None:
    if response.status >= 400:
        raise FetchFailed(url, f"HTTP {response.status}")
