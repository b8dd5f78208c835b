"""Synchronous traversal driver.

The driver walks a search-results listing page by page:

1. Build the start URL from the SearchQuery.
2. Fetch it and parse the PageState.
3. While the page has a next link, fetch that URL verbatim. The catalog's
   own pagination links already carry the right page and sort state, so
   the query builder is only used for the first page.

Fetching is strictly sequential because each next URL is only known once the
current page is parsed. Any fetch or extraction failure aborts the whole
run; no partial result list is returned and nothing is retried.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from audiobook_scraper.common.exceptions import (
    PageLimitExceeded,
    PaginationLoopException,
)
from audiobook_scraper.common.extraction_rules import (
    DEFAULT_RULES,
    ExtractionRules,
)
from audiobook_scraper.common.param_models import SearchQuery
from audiobook_scraper.common.query import DEFAULT_BASE_URL, build_url
from audiobook_scraper.common.request_manager import (
    Fetcher,
    SyncRequestManager,
    ensure_success,
)
from audiobook_scraper.data_types import PageResult

logger = logging.getLogger(__name__)

# Hard cap against pagination that never ends (e.g. redirect loops)
DEFAULT_MAX_PAGES = 500


class TraversalGuard:
    """Tracks visited URLs and the page count for one run.

    Shared by the sync and async drivers.
    """

    def __init__(self, max_pages: int | None) -> None:
        self.max_pages = max_pages
        self._visited: set[str] = set()

    @property
    def pages_fetched(self) -> int:
        return len(self._visited)

    def admit(self, url: str, linked_from: str | None = None) -> None:
        """Record that *url* is about to be fetched.

        Raises:
            PaginationLoopException: If *url* was already fetched this run.
            PageLimitExceeded: If fetching *url* would exceed max_pages.
        """
        if url in self._visited:
            raise PaginationLoopException(url, linked_from or "")
        if self.max_pages is not None and len(self._visited) >= self.max_pages:
            raise PageLimitExceeded(self.max_pages, url)
        self._visited.add(url)


class SyncDriver:
    """Synchronous driver crawling every page of a search.

    Example usage::

        driver = SyncDriver(SearchQuery(narrator="Juan Magraner"))
        with driver:
            pages = driver.run()
        books = [book for page in pages for book in page.records()]
    """

    def __init__(
        self,
        query: SearchQuery,
        request_manager: Fetcher | None = None,
        base_url: str = DEFAULT_BASE_URL,
        rules: ExtractionRules = DEFAULT_RULES,
        max_pages: int | None = DEFAULT_MAX_PAGES,
        on_page: Callable[[PageResult], None] | None = None,
        on_run_start: Callable[[str], None] | None = None,
        on_run_complete: Callable[[str, Exception | None], None]
        | None = None,
    ) -> None:
        """Initialize the driver.

        Args:
            query: Search criteria the crawl starts from.
            request_manager: Fetch collaborator. If None, a SyncRequestManager
                with default settings is created and owned by the driver.
            base_url: Catalog search URL the first page URL is built on.
            rules: Extraction rules for the catalog's markup.
            max_pages: Maximum number of pages to fetch. None disables the cap.
            on_page: Optional callback invoked with each PageResult as soon as
                it is fetched and parsed.
            on_run_start: Optional callback invoked with the start URL when
                the run starts.
            on_run_complete: Optional callback invoked when the run ends.
                Receives status ("completed" | "error") and the error
                (Exception | None).
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
            self.request_manager = SyncRequestManager()
            self._owns_request_manager = True

    def close(self) -> None:
        """Close the request manager if the driver created it."""
        if self._owns_request_manager:
            self.request_manager.close()  # type: ignore[attr-defined]

    def __enter__(self) -> SyncDriver:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def start_url(self) -> str:
        """URL of the first page, built from the query."""
        return build_url(self.query, self.base_url)

    def fetch_page(self, url: str) -> PageResult:
        """Fetch and parse a single results page.

        Raises:
            FetchError: If the page could not be fetched or was not 2xx.
            EmptyDocumentException: If the body is not parseable HTML.
        """
        response = ensure_success(self.request_manager.fetch(url))
        return PageResult.from_response(response, self.rules)

    def run(self) -> list[PageResult]:
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
            f"Starting crawl at {start}",
            extra={"request_url": start, "max_pages": self.max_pages},
        )
        if self.on_run_start:
            self.on_run_start(start)

        try:
            url: str | None = start
            linked_from: str | None = None
            while url is not None:
                guard.admit(url, linked_from)
                result = self.fetch_page(url)
                results.append(result)
                logger.info(
                    f"Fetched page {result.page} ({result.url})",
                    extra={
                        "request_url": result.url,
                        "page": result.page,
                        "has_next": result.has_next,
                    },
                )
                if self.on_page:
                    self.on_page(result)
                linked_from, url = result.url, result.next_url
        except Exception as e:
            logger.error(
                f"Crawl aborted after {len(results)} page(s): "
                f"{type(e).__name__}",
                extra={"request_url": start, "pages": len(results)},
            )
            if self.on_run_complete:
                self.on_run_complete("error", e)
            raise

        logger.info(
            f"Crawl completed: {len(results)} page(s)",
            extra={"request_url": start, "pages": len(results)},
        )
        if self.on_run_complete:
            self.on_run_complete("completed", None)
        return results


def crawl_all(query: SearchQuery, **driver_kwargs: Any) -> list[PageResult]:
    """Crawl every results page for *query* with a SyncDriver.

    Args:
        query: Search criteria.
        **driver_kwargs: Forwarded to SyncDriver.

    Returns:
        Page results in order, the last one without a next page.
    """
    with SyncDriver(query, **driver_kwargs) as driver:
        return driver.run()
