"""npm registry API client.

API docs: https://github.com/npm/registry/blob/main/docs/REGISTRY-API.md
No authentication required. Rate limits are undocumented; 429 responses
are retried with exponential backoff.

Every read goes through the same pipeline: cache lookup, concurrency slot,
retrying fetch, cache store. Only successful responses are cached.
"""

from __future__ import annotations

import asyncio
import logging
import random
import time
from typing import Awaitable, Callable, Optional, Type, TypeVar, Union
from urllib.parse import quote, urlencode

import httpx
from pydantic import BaseModel, ValidationError

from ... import USER_AGENT
from ..cache import TTLCache
from ..config import RegistryConfig
from ..errors import (
    MalformedResponseError,
    NetworkError,
    PackageNotFoundError,
    RateLimitedError,
    RegistryError,
    RegistryServerError,
    RequestTimeoutError,
)
from ..models import (
    CacheStats,
    DownloadPeriod,
    DownloadStats,
    PackageVersion,
    Packument,
    SearchResponse,
)

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def encode_package_name(name: str) -> str:
    """URL-encode a package name for the registry path.

    Scoped packages keep the ``@`` but have the slash encoded:
    @babel/core -> @babel%2Fcore
    """
    return quote(name, safe="@")


def _require(value: str, what: str) -> str:
    if not value or not value.strip():
        raise ValueError(f"{what} must not be empty")
    return value.strip()


def _error_message(response: httpx.Response) -> str:
    """Registry error bodies look like ``{"error": "...", "reason": "..."}``."""
    status = response.status_code
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        if body.get("error"):
            return str(body["error"])
        return f"HTTP {status}: {body.get('reason') or 'Unknown error'}"
    return f"HTTP {status}: {response.reason_phrase or 'Unknown error'}"


class RegistryClient:
    """Cached, rate-limited, retrying access to the npm registry.

    Each instance owns its own cache and concurrency limiter, so several
    differently configured clients can live side by side.

    Args:
        config: Client settings; defaults to ``RegistryConfig()``.
        transport: Optional httpx transport (tests pass ``httpx.MockTransport``).
        sleep: Awaitable used for backoff delays.
        clock: Monotonic clock used for cache expiry.
        rng: Returns a float in ``[0, 1)``; scaled by ``config.jitter``.
    """

    def __init__(
        self,
        config: Optional[RegistryConfig] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
        rng: Callable[[], float] = random.random,
    ):
        self.config = config or RegistryConfig()
        self._registry_url = self.config.registry_url.rstrip("/")
        self._downloads_url = self.config.downloads_url.rstrip("/")
        self._transport = transport
        self._sleep = sleep
        self._rng = rng
        self._cache = TTLCache(
            max_size=self.config.cache_max_size,
            ttl=self.config.cache_ttl,
            clock=clock,
        )
        self._limiter = asyncio.Semaphore(self.config.max_concurrent)
        self._http: Optional[httpx.AsyncClient] = None

    @property
    def registry_url(self) -> str:
        return self._registry_url

    # ─── Public operations ───────────────────────────────────────────────

    async def get_package(self, package_name: str) -> Packument:
        """Fetch the full packument: all versions, dist-tags, timestamps, maintainers."""
        name = _require(package_name, "Package name")
        url = f"{self._registry_url}/{encode_package_name(name)}"
        return await self._fetch_with_cache(url, Packument, resource=name)

    async def get_package_version(self, package_name: str, version: str) -> PackageVersion:
        """Fetch one exact version. Ranges are not resolved."""
        name = _require(package_name, "Package name")
        version = _require(version, "Version")
        url = f"{self._registry_url}/{encode_package_name(name)}/{quote(version, safe='')}"
        return await self._fetch_with_cache(url, PackageVersion, resource=f"{name}@{version}")

    async def search_packages(self, query: str, limit: int = 20, offset: int = 0) -> SearchResponse:
        """Search by text. Results keep the registry's ranking."""
        text = _require(query, "Query")
        params = urlencode({"text": text, "size": limit, "from": offset})
        url = f"{self._registry_url}/-/v1/search?{params}"
        return await self._fetch_with_cache(url, SearchResponse, resource=f"search '{text}'")

    async def get_download_stats(
        self,
        package_name: str,
        period: Union[DownloadPeriod, str] = DownloadPeriod.LAST_WEEK,
    ) -> DownloadStats:
        """Download count for a period, from the separate statistics host."""
        name = _require(package_name, "Package name")
        period = DownloadPeriod(period)
        url = f"{self._downloads_url}/downloads/point/{period.value}/{quote(name, safe='@/')}"
        return await self._fetch_with_cache(url, DownloadStats, resource=f"download stats for {name}")

    def clear_cache(self) -> None:
        self._cache.clear()

    def get_cache_stats(self) -> CacheStats:
        return CacheStats(size=len(self._cache), max_size=self._cache.max_size)

    def backoff_delay(self, retry: int) -> float:
        """Seconds to wait before retry number ``retry`` (1-indexed)."""
        return self.config.base_delay * (2 ** (retry - 1)) + self._rng() * self.config.jitter

    async def aclose(self) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None
            logger.debug("Closed registry HTTP client")

    async def __aenter__(self) -> "RegistryClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    # ─── Pipeline ────────────────────────────────────────────────────────

    def _get_http_client(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(
                transport=self._transport,
                timeout=httpx.Timeout(self.config.timeout),
                headers={"Accept": "application/json", "User-Agent": USER_AGENT},
                follow_redirects=True,
            )
        return self._http

    async def _fetch_with_cache(self, url: str, model: Type[ModelT], resource: str) -> ModelT:
        cached = self._cache.get(url)
        if cached is not None:
            logger.debug("Cache hit: %s", url)
            return cached

        async with self._limiter:
            data = await self._fetch_with_retry(url, resource)

        try:
            result = model.model_validate(data)
        except ValidationError as exc:
            raise MalformedResponseError(
                f"Unexpected response shape from {url}: {exc.error_count()} validation error(s)",
                url=url,
            ) from exc

        self._cache.set(url, result)
        return result

    async def _fetch_with_retry(self, url: str, resource: str) -> object:
        max_attempts = self.config.max_retries + 1
        last_error: Optional[RegistryError] = None

        for attempt in range(max_attempts):
            if last_error is not None:
                delay = self.backoff_delay(attempt)
                logger.warning(
                    "Attempt %d/%d for %s failed (%s), retrying in %.2fs",
                    attempt, max_attempts, url, last_error.code, delay,
                )
                await self._sleep(delay)
            try:
                return await self._fetch_once(url, resource)
            except RegistryError as exc:
                if not exc.retryable:
                    raise
                last_error = exc

        logger.error("All %d attempts failed for %s: %s", max_attempts, url, last_error)
        raise last_error

    async def _fetch_once(self, url: str, resource: str) -> object:
        client = self._get_http_client()
        try:
            response = await asyncio.wait_for(client.get(url), timeout=self.config.timeout)
        except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
            raise RequestTimeoutError(url=url, timeout=self.config.timeout) from exc
        except httpx.TransportError as exc:
            raise NetworkError(f"Network error fetching {url}: {str(exc) or type(exc).__name__}", url=url) from exc

        status = response.status_code
        if status == 429:
            raise RateLimitedError(url=url)
        if status == 404:
            raise PackageNotFoundError(resource, url=url)
        if status >= 400:
            raise RegistryServerError(_error_message(response), url=url, status_code=status)

        try:
            return response.json()
        except ValueError as exc:
            raise MalformedResponseError(f"Malformed JSON from {url}", url=url, status_code=status) from exc
