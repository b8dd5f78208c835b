"""Request managers for fetching catalog pages.

This module provides SyncRequestManager and AsyncRequestManager, the default
fetch collaborators used by the drivers. Each one encapsulates an httpx
client and:

- sends browser-like default headers (the catalog serves reduced markup to
  unknown clients),
- follows redirects, reporting the final URL on the Response,
- turns non-2xx responses, timeouts and transport errors into FetchError
  subclasses,
- optionally throttles outgoing requests with pyrate_limiter rates.

Drivers accept any object with the same ``fetch(url)`` method, so tests and
callers with their own transport can inject one.
"""

from __future__ import annotations

import logging
import ssl
from collections.abc import Awaitable
from typing import Any, Protocol

import httpx
from pyrate_limiter import InMemoryBucket, Limiter, Rate

from audiobook_scraper.common.exceptions import (
    HTMLResponseAssumptionException,
    RequestFailedException,
    RequestTimeoutException,
)
from audiobook_scraper.data_types import Response

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0

SUCCESS_CODES = list(range(200, 300))

DEFAULT_HEADERS = {
    "Accept": (
        "text/html,application/xhtml+xml,application/xml;q=0.9,"
        "image/avif,image/webp,image/apng,*/*;q=0.8,"
        "application/signed-exchange;v=b3;q=0.7"
    ),
    "Accept-Language": "es-ES,es;q=0.9,en;q=0.8",
    "Cache-Control": "max-age=0",
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/93.0.4577.82 Safari/537.36"
    ),
    "Upgrade-Insecure-Requests": "1",
}


class Fetcher(Protocol):
    """Anything that can fetch a page synchronously."""

    def fetch(self, url: str) -> Response: ...


class AsyncFetcher(Protocol):
    """Anything that can fetch a page asynchronously."""

    def fetch(self, url: str) -> Awaitable[Response]: ...


def ensure_success(response: Response) -> Response:
    """Return *response* if it has a 2xx status.

    Raises:
        HTMLResponseAssumptionException: For any other status code.
    """
    if not response.is_success:
        raise HTMLResponseAssumptionException(
            status_code=response.status_code,
            expected_codes=list(SUCCESS_CODES),
            url=response.request_url or response.url,
        )
    return response


def _make_limiter(rates: list[Rate] | None) -> Limiter | None:
    if not rates:
        return None
    logger.info(
        f"Rate limiter initialized with {len(rates)} rate(s): "
        + ", ".join(f"{r.limit}/{r.interval}ms" for r in rates)
    )
    return Limiter(InMemoryBucket(rates))


def _to_response(http_response: httpx.Response, url: str) -> Response:
    return Response(
        status_code=http_response.status_code,
        headers=dict(http_response.headers),
        text=http_response.text,
        url=str(http_response.url),
        request_url=url,
        content=http_response.content,
        encoding=http_response.charset_encoding,
    )


class SyncRequestManager:
    """Fetches pages with a synchronous httpx client.

    Example::

        with SyncRequestManager(timeout=10.0) as manager:
            response = manager.fetch("https://www.audible.es/search?page=1")
    """

    def __init__(
        self,
        headers: dict[str, str] | None = None,
        timeout: float | None = DEFAULT_TIMEOUT,
        rates: list[Rate] | None = None,
        ssl_context: ssl.SSLContext | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize the request manager.

        Args:
            headers: Request headers. Defaults to DEFAULT_HEADERS.
            timeout: Request timeout in seconds. None means no timeout.
            rates: Optional pyrate_limiter rates enforced across fetches.
            ssl_context: Optional SSL context for HTTPS connections.
            transport: Optional httpx transport (e.g. httpx.MockTransport).
        """
        self.timeout = timeout
        self._limiter = _make_limiter(rates)

        client_kwargs: dict[str, Any] = {
            "headers": headers if headers is not None else DEFAULT_HEADERS,
            "timeout": timeout,
            "follow_redirects": True,
        }
        if ssl_context:
            client_kwargs["verify"] = ssl_context
        if transport is not None:
            client_kwargs["transport"] = transport
        self._client = httpx.Client(**client_kwargs)

    def close(self) -> None:
        """Close the HTTP client and release resources."""
        self._client.close()

    def __enter__(self) -> SyncRequestManager:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def fetch(self, url: str) -> Response:
        """Fetch *url* and return its Response.

        Raises:
            HTMLResponseAssumptionException: If the status code is not 2xx.
            RequestTimeoutException: If the request times out.
            RequestFailedException: On any other transport error.
        """
        if self._limiter is not None:
            self._limiter.try_acquire("request")

        logger.debug(f"Fetching {url}", extra={"request_url": url})
        try:
            http_response = self._client.get(url)
        except httpx.TimeoutException as e:
            raise RequestTimeoutException(url, self.timeout) from e
        except httpx.HTTPError as e:
            raise RequestFailedException(
                url, str(e) or type(e).__name__
            ) from e

        return ensure_success(_to_response(http_response, url))


class AsyncRequestManager:
    """Fetches pages with an asynchronous httpx client.

    Example::

        async with AsyncRequestManager(timeout=10.0) as manager:
            response = await manager.fetch("https://www.audible.es/search")
    """

    def __init__(
        self,
        headers: dict[str, str] | None = None,
        timeout: float | None = DEFAULT_TIMEOUT,
        rates: list[Rate] | None = None,
        ssl_context: ssl.SSLContext | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the request manager.

        Args:
            headers: Request headers. Defaults to DEFAULT_HEADERS.
            timeout: Request timeout in seconds. None means no timeout.
            rates: Optional pyrate_limiter rates enforced across fetches.
            ssl_context: Optional SSL context for HTTPS connections.
            transport: Optional httpx transport (e.g. httpx.MockTransport).
        """
        self.timeout = timeout
        self._limiter = _make_limiter(rates)

        client_kwargs: dict[str, Any] = {
            "headers": headers if headers is not None else DEFAULT_HEADERS,
            "timeout": timeout,
            "follow_redirects": True,
        }
        if ssl_context:
            client_kwargs["verify"] = ssl_context
        if transport is not None:
            client_kwargs["transport"] = transport
        self._client = httpx.AsyncClient(**client_kwargs)

    async def close(self) -> None:
        """Close the HTTP client and release resources."""
        await self._client.aclose()

    async def __aenter__(self) -> AsyncRequestManager:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def fetch(self, url: str) -> Response:
        """Fetch *url* and return its Response.

        Raises:
            HTMLResponseAssumptionException: If the status code is not 2xx.
            RequestTimeoutException: If the request times out.
            RequestFailedException: On any other transport error.
        """
        if self._limiter is not None:
            await self._limiter.try_acquire_async("request")

        logger.debug(f"Fetching {url}", extra={"request_url": url})
        try:
            http_response = await self._client.get(url)
        except httpx.TimeoutException as e:
            raise RequestTimeoutException(url, self.timeout) from e
        except httpx.HTTPError as e:
            raise RequestFailedException(
                url, str(e) or type(e).__name__
            ) from e

        return ensure_success(_to_response(http_response, url))
