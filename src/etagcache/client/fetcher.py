"""Conditional HTTP fetching for :meth:`CacheManager.get_or_write`.

:class:`HttpFetcher` turns a URL into the ``fetch(etag)`` callback the cache
orchestrator expects.  It sends ``If-None-Match`` when the cache hands it a
revalidation token, maps ``304 Not Modified`` to
:meth:`FetchResult.not_modified`, and derives the next expiry from the
response's ``Cache-Control`` and ``ETag`` headers.

Retries with exponential backoff on 5xx responses and connection errors,
like the rest of the HTTP layer; timeouts come from the underlying
:class:`httpx.AsyncClient`.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

import httpx

from etagcache.cache import CacheManager
from etagcache.exceptions import AuthError, ConnectionError_, NotFoundError, ServerError
from etagcache.models import CacheExpiry, CachePolicy, FetchResult, GlobalConfig

logger = logging.getLogger(__name__)


def parse_cache_control(value: str) -> dict[str, Optional[str]]:
    """Split a ``Cache-Control`` header into lower-cased directives."""
    directives: dict[str, Optional[str]] = {}
    for part in value.split(","):
        part = part.strip()
        if not part:
            continue
        name, _, arg = part.partition("=")
        directives[name.strip().lower()] = arg.strip().strip('"') or None
    return directives


def expiry_from_headers(
    headers: httpx.Headers,
    default_ttl: int,
    etag: Optional[str] = None,
    now: Optional[float] = None,
) -> CacheExpiry:
    """Derive the expiry record for a response.

    ``no-store`` and ``no-cache`` expire immediately, ``max-age`` sets the
    lifetime, anything else uses *default_ttl*.  The response ``ETag`` wins
    over the *etag* that was sent.
    """
    directives = parse_cache_control(headers.get("cache-control", ""))
    ttl = default_ttl
    if "no-store" in directives or "no-cache" in directives:
        ttl = 0
    elif directives.get("max-age") is not None:
        try:
            ttl = max(int(directives["max-age"]), 0)
        except ValueError:
            logger.debug("Ignoring malformed max-age %r", directives["max-age"])
    token = headers.get("etag") or etag
    return CacheExpiry.expire_in_seconds(ttl, token, now=now)


class HttpFetcher:
    """Fetch resources with ETag revalidation.

    Args:
        client: The HTTP client used for every request.  Not closed by the
            fetcher unless it was created by :meth:`from_config`.
        default_ttl: Lifetime in seconds of responses without
            ``Cache-Control`` lifetime information.
        max_retries: Extra attempts after a 5xx response or connection error.

    Example::

        async with HttpFetcher.from_config(config) as fetcher:
            body = await fetcher.cached_get(cache, "album-42", "https://api.example.com/albums/42")
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        default_ttl: int = 300,
        max_retries: int = 0,
    ) -> None:
        self._client = client
        self._default_ttl = default_ttl
        self._max_retries = max_retries
        self._owns_client = False

    @classmethod
    def from_config(cls, config: GlobalConfig) -> HttpFetcher:
        """Build a fetcher and its own :class:`httpx.AsyncClient` from *config*."""
        request = config.request
        headers = {"User-Agent": request.user_agent} if request.user_agent else None
        client = httpx.AsyncClient(
            timeout=request.timeout,
            verify=request.verify_ssl,
            follow_redirects=True,
            headers=headers,
        )
        fetcher = cls(
            client,
            default_ttl=config.cache.default_ttl_seconds,
            max_retries=request.max_retries,
        )
        fetcher._owns_client = True
        return fetcher

    # ------------------------------------------------------------------ #
    # Async context manager
    # ------------------------------------------------------------------ #

    async def __aenter__(self) -> HttpFetcher:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # ------------------------------------------------------------------ #
    # Fetching
    # ------------------------------------------------------------------ #

    async def fetch(
        self,
        url: str,
        etag: Optional[str] = None,
        params: Optional[dict[str, Any]] = None,
    ) -> FetchResult:
        """GET *url*, conditionally on *etag* when one is given.

        Returns:
            ``NOT_MODIFIED`` for a 304 answer, ``MODIFIED`` with the body for
            a 2xx answer.

        Raises:
            AuthError: On 401 / 403.
            NotFoundError: On 404.
            ServerError: On other error statuses, or 5xx after all retries.
            ConnectionError_: On network / timeout errors after all retries.
        """
        headers: dict[str, str] = {}
        if etag:
            headers["If-None-Match"] = etag

        response = await self._execute_with_retry(url, headers, params)

        if response.status_code == 304:
            logger.debug("%s not modified", url)
            return FetchResult.not_modified(
                expiry_from_headers(response.headers, self._default_ttl, etag)
            )

        self._map_response_error(response)
        return FetchResult.modified(
            response.content,
            expiry_from_headers(response.headers, self._default_ttl),
        )

    def for_url(
        self,
        url: str,
        params: Optional[dict[str, Any]] = None,
    ) -> Callable[[Optional[str]], Awaitable[FetchResult]]:
        """Return a ``fetch(etag)`` callback bound to *url*."""

        async def _fetch(etag: Optional[str]) -> FetchResult:
            return await self.fetch(url, etag=etag, params=params)

        return _fetch

    async def cached_get(
        self,
        cache: CacheManager,
        key: str,
        url: str,
        policy: CachePolicy = CachePolicy.DEFAULT,
        params: Optional[dict[str, Any]] = None,
    ) -> bytes:
        """Return the bytes of *url*, served from and stored in *cache* under *key*."""
        return await cache.get_or_write(key, policy, self.for_url(url, params))

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    async def _execute_with_retry(
        self,
        url: str,
        headers: dict[str, str],
        params: Optional[dict[str, Any]],
    ) -> httpx.Response:
        """Send the GET request with exponential-backoff retry.

        The delay doubles each attempt: 1 s, 2 s, 4 s, ...
        """
        for attempt in range(self._max_retries + 1):
            try:
                response = await self._client.get(url, headers=headers, params=params)
            except (httpx.ConnectError, httpx.TimeoutException, httpx.NetworkError) as exc:
                if attempt < self._max_retries:
                    delay = 2 ** attempt
                    logger.debug(
                        "Connection error: %s, retrying in %ss (attempt %d/%d)",
                        exc, delay, attempt + 1, self._max_retries,
                    )
                    await asyncio.sleep(delay)
                    continue
                raise ConnectionError_(
                    f"Connection failed after {self._max_retries + 1} attempts: {exc}"
                ) from exc

            if response.status_code >= 500 and attempt < self._max_retries:
                delay = 2 ** attempt
                logger.debug(
                    "Server error %d, retrying in %ss (attempt %d/%d)",
                    response.status_code, delay, attempt + 1, self._max_retries,
                )
                await asyncio.sleep(delay)
                continue

            return response

        raise ServerError("Request failed after all retries")  # pragma: no cover

    @staticmethod
    def _map_response_error(response: httpx.Response) -> None:
        """Raise a typed exception for any status other than 2xx."""
        status = response.status_code
        if 200 <= status < 300:
            return

        msg = response.text[:200] if response.text else ""
        prefix = f"HTTP {status}"
        full_msg = f"{prefix}: {msg}" if msg else prefix

        if status in (401, 403):
            raise AuthError(full_msg)
        if status == 404:
            raise NotFoundError(full_msg)
        raise ServerError(full_msg)
