# ABOUTME: Async HTTP client abstraction for metadata provider and image requests.
# ABOUTME: Provides per-host rate limiting, retry with backoff, a hard deadline, and injectable transport.

import asyncio
import logging
import time
from typing import Any, Protocol, runtime_checkable
from urllib.parse import urlsplit

import httpx

logger = logging.getLogger(__name__)

_RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}

DEFAULT_TIMEOUT = 15.0


class MetadataFetchError(Exception):
    """Raised when an HTTP request to a metadata provider fails."""


@runtime_checkable
class HttpClient(Protocol):
    """Protocol for async GET operations against metadata APIs and image hosts."""

    async def get_json(
        self, url: str, params: dict[str, str] | None = None
    ) -> Any: ...

    async def get_bytes(
        self, url: str, params: dict[str, str] | None = None
    ) -> bytes: ...


class LecternHttpClient:
    """Async HTTP client with rate limiting, retry, and a per-call deadline.

    Wraps httpx.AsyncClient. Requests to the same host are spaced by at least
    ``min_request_interval`` seconds; transient failures (429, 5xx) are
    retried with exponential backoff. The whole call, retries included, must
    finish within ``timeout`` seconds or MetadataFetchError is raised.
    """

    def __init__(
        self,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        min_request_interval: float = 0.1,
        max_retries: int = 2,
        retry_delay: float = 1.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        client_kwargs: dict[str, Any] = {
            "headers": {"User-Agent": "lectern/0.1.0"},
            "timeout": timeout,
            "follow_redirects": True,
        }
        if transport is not None:
            client_kwargs["transport"] = transport
        self._client = httpx.AsyncClient(**client_kwargs)
        self._timeout = timeout
        self._min_interval = min_request_interval
        self._max_retries = max_retries
        self._retry_delay = retry_delay
        self._host_locks: dict[str, asyncio.Lock] = {}
        self._last_request_time: dict[str, float] = {}

    async def __aenter__(self) -> "LecternHttpClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def get_json(self, url: str, params: dict[str, str] | None = None) -> Any:
        """Send a GET request and decode the JSON body.

        Raises:
            MetadataFetchError: On transport errors, non-200 responses,
                exhausted retries, timeout, or an undecodable body.
        """
        response = await self._get(url, params)
        try:
            return response.json()
        except ValueError as exc:
            raise MetadataFetchError(f"Invalid JSON from {url}: {exc}") from exc

    async def get_bytes(self, url: str, params: dict[str, str] | None = None) -> bytes:
        """Send a GET request and return the raw body (used for images)."""
        response = await self._get(url, params)
        return response.content

    async def _get(self, url: str, params: dict[str, str] | None) -> httpx.Response:
        try:
            async with asyncio.timeout(self._timeout):
                return await self._get_with_retry(url, params)
        except TimeoutError as exc:
            raise MetadataFetchError(
                f"Request to {url} timed out after {self._timeout:.0f}s"
            ) from exc

    async def _get_with_retry(
        self, url: str, params: dict[str, str] | None
    ) -> httpx.Response:
        attempts = 1 + self._max_retries
        last_status = 0
        for attempt in range(attempts):
            await self._rate_limit(url)
            try:
                response = await self._client.get(url, params=params)
                last_status = response.status_code
            except httpx.HTTPError as exc:
                raise MetadataFetchError(f"Request failed: {url}: {exc}") from exc

            if response.status_code == 200:
                return response

            if response.status_code not in _RETRYABLE_STATUS_CODES:
                raise MetadataFetchError(f"HTTP {response.status_code} from {url}")

            if attempt < attempts - 1:
                delay = self._retry_delay * (2**attempt)
                logger.warning(
                    "HTTP %d from %s, retrying in %.1fs (attempt %d/%d)",
                    response.status_code,
                    url,
                    delay,
                    attempt + 1,
                    self._max_retries,
                )
                await asyncio.sleep(delay)

        raise MetadataFetchError(f"HTTP {last_status} from {url} after {attempts} attempts")

    async def _rate_limit(self, url: str) -> None:
        """Sleep if needed to keep the minimum interval between requests to one host."""
        if self._min_interval <= 0:
            return
        host = urlsplit(url).netloc
        lock = self._host_locks.setdefault(host, asyncio.Lock())
        async with lock:
            last = self._last_request_time.get(host, 0.0)
            elapsed = time.monotonic() - last
            if last > 0 and elapsed < self._min_interval:
                await asyncio.sleep(self._min_interval - elapsed)
            self._last_request_time[host] = time.monotonic()
