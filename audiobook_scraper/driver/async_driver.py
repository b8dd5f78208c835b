"""Asynchronous traversal driver.

The AsyncDriver mirrors SyncDriver for callers running inside an event loop.
The only suspension point is the fetch; parsing runs synchronously between
fetches. Pages are still fetched one after the other, since each next URL
comes from the page before it.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from audiobook_scraper.common.extraction_rules import (
    DEFAULT_RULES,
    ExtractionRules,
)
from audiobook_scraper.common.param_models import SearchQuery
from audiobook_scraper.common.query import DEFAULT_BASE_URL, build_url
from audiobook_scraper.common.request_manager import (
    AsyncFetcher,
    AsyncRequestManager,
    ensure_success,
)
from audiobook_scraper.data_types import PageResult
from audiobook_scraper.driver.sync_driver import (
    DEFAULT_MAX_PAGES,
    TraversalGuard,
)

logger = logging.getLogger(__name__)


async def _notify(callback: Callable[..., Any] | None, *args: Any) -> None:
    if callback is None:
        return
    outcome = callback(*args)
    if inspect.isawaitable(outcome):
        await outcome


class AsyncDriver:
    """Asynchronous driver crawling every page of a search.

    Example usage::

        async with AsyncDriver(SearchQuery(keywords="dune")) as driver:
            pages = await driver.run()
    """

    def __init__(
        self,
        query: SearchQuery,
        request_manager: AsyncFetcher | None = None,
        base_url: str = DEFAULT_BASE_URL,
        rules: ExtractionRules = DEFAULT_RULES,
        max_pages: int | None = DEFAULT_MAX_PAGES,
        on_page: Callable[[PageResult], Awaitable[None] | None] | None = None,
        on_run_start: Callable[[str], Awaitable[None] | None] | None = None,
        on_run_complete: Callable[
            [str, Exception | None], Awaitable[None] | None
        ]
        | None = None,
    ) -> None:
        """Initialize the driver.

        Args:
            query: Search criteria the crawl starts from.
            request_manager: Async fetch collaborator. If None, an
                AsyncRequestManager is created and owned by the driver.
            base_url: Catalog search URL the first page URL is built on.
            rules: Extraction rules for the catalog's markup.
            max_pages: Maximum number of pages to fetch. None disables the cap.
            on_page: Optional callback, sync or async, invoked with each
                PageResult as soon as it is fetched and parsed.
            on_run_start: Optional callback, sync or async, invoked with the
                start URL when the run starts.
            on_run_complete: Optional callback, sync or async, invoked when
                the run ends with status ("completed" | "error") and the
                error (Exception | None).
        """
        self.query = query
        self.base_url = base_url
        self.rules = rules
        self.max_pages = max_pages
        self.on_page = on_page
        self.on_run_start = on_run_start
        self.on_run_complete = on_run_complete

        if request_manager is not None:
            self.request_manager = request_manager
            self._owns_request_manager = False
        else:
            self.request_manager = AsyncRequestManager()
            self._owns_request_manager = True

    async def close(self) -> None:
        """Close the request manager if the driver created it."""
        if self._owns_request_manager:
            await self.request_manager.close()  # type: ignore[attr-defined]

    async def __aenter__(self) -> AsyncDriver:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    def start_url(self) -> str:
        return build_url(self.query, self.base_url)

    async def fetch_page(self, url: str) -> PageResult:
        """Fetch and parse a single results page."""
        response = ensure_success(await self.request_manager.fetch(url))
        return PageResult.from_response(response, self.rules)

    async def run(self) -> list[PageResult]:
        """Crawl all pages, following next links until none remains.

        Returns:
            Page results in fetch order.

        Raises:
            ScraperAssumptionException: On any markup or pagination
                assumption violation.
            TransientException: On any fetch failure.
        """
        start = self.start_url()
        guard = TraversalGuard(self.max_pages)
        results: list[PageResult] = []

        logger.info(
            f"Starting async crawl at {start}",
            extra={"request_url": start, "max_pages": self.max_pages},
        )
        await _notify(self.on_run_start, start)

        try:
            url: str | None = start
            linked_from: str | None = None
            while url is not None:
                guard.admit(url, linked_from)
                result = await self.fetch_page(url)
                results.append(result)
                logger.info(
                    f"Fetched page {result.page} ({result.url})",
                    extra={
                        "request_url": result.url,
                        "page": result.page,
                        "has_next": result.has_next,
                    },
                )
                await _notify(self.on_page, result)
                linked_from, url = result.url, result.next_url
        except Exception as e:
            logger.error(
                f"Crawl aborted after {len(results)} page(s): "
                f"{type(e).__name__}",
                extra={"request_url": start, "pages": len(results)},
            )
            await _notify(self.on_run_complete, "error", e)
            raise

        logger.info(
            f"Crawl completed: {len(results)} page(s)",
            extra={"request_url": start, "pages": len(results)},
        )
        await _notify(self.on_run_complete, "completed", None)
        return results
