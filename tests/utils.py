"""Test utilities for the crawler tests.

This module provides a scripted fetcher standing in for the request
managers, plus callbacks collecting what the drivers hand out.
"""

import socket
from collections.abc import Awaitable, Callable
from contextlib import closing
from typing import Any

from audiobook_scraper.common.param_models import SearchQuery
from audiobook_scraper.common.query import build_url
from audiobook_scraper.data_types import Response
from tests.mock_server import render_item, render_page, render_pagination


class ScriptedFetcher:
    """Fetcher serving canned pages from a dict of URL to markup.

    Markup is served as UTF-8 bytes with a matching charset, the way the
    request managers hand it over. A value may also be an ``int`` status
    code, which is served with an empty body. Unknown URLs get a 404.
    Status codes are returned as-is, leaving the status check to the
    driver. Every requested URL is recorded in ``requested``.

    Example:
        fetcher = ScriptedFetcher({"https://example.com/search?page=1": html})
        driver = SyncDriver(query, request_manager=fetcher)
    """

    def __init__(self, pages: dict[str, str | int]) -> None:
        self.pages = pages
        self.requested: list[str] = []

    def fetch(self, url: str) -> Response:
        self.requested.append(url)
        page = self.pages.get(url, 404)
        if isinstance(page, int):
            response = Response(
                status_code=page, headers={}, text="", url=url, request_url=url
            )
        else:
            response = Response(
                status_code=200,
                headers={"content-type": "text/html; charset=utf-8"},
                text=page,
                url=url,
                request_url=url,
                content=page.encode("utf-8"),
                encoding="utf-8",
            )
        return response


class AsyncScriptedFetcher(ScriptedFetcher):
    """Async version of ScriptedFetcher for the AsyncDriver."""

    async def fetch(self, url: str) -> Response:  # type: ignore[override]
        return super().fetch(url)


def collect_results() -> tuple[Callable[[Any], None], list[Any]]:
    """Create a callback that collects results in a list.

    Pass the callback to the driver's on_page parameter and check the
    results list after running.

    Returns:
        A tuple of (callback_function, results_list).

    Example:
        callback, results = collect_results()
        driver = SyncDriver(query, on_page=callback)
        driver.run()
        assert len(results) > 0
    """
    results: list[Any] = []

    def callback(data: Any) -> None:
        results.append(data)

    return callback, results


def collect_results_async() -> tuple[
    Callable[[Any], Awaitable[None]], list[Any]
]:
    """Create an async callback that collects results in a list.

    Returns:
        A tuple of (async_callback_function, results_list).
    """
    results: list[Any] = []

    async def callback(data: Any) -> None:
        results.append(data)

    return callback, results


# =============================================================================
# Scripted three-page listing
# =============================================================================

BASE_URL = "https://example.com/search"
QUERY = SearchQuery(narrator="Juan Magraner", page_size=2)
START_URL = build_url(QUERY, BASE_URL)
PAGE_2 = "https://example.com/search?page=2"
PAGE_3 = "https://example.com/search?page=3"


def first_page(next_href: str = "?page=2") -> str:
    """Page 1: no page indicator, previous control disabled."""
    return render_page(
        [render_item(title="A"), render_item(title="B")],
        render_pagination(
            prev_href="?page=1",
            prev_disabled=True,
            next_href=next_href,
        ),
    )


def middle_page(next_href: str = "?page=3") -> str:
    return render_page(
        [render_item(title="C"), render_item(title="D")],
        render_pagination(
            page_number=2, prev_href="?page=1", next_href=next_href
        ),
    )


def last_page() -> str:
    """Page 3: next control disabled."""
    return render_page(
        [render_item(title="E")],
        render_pagination(
            page_number=3,
            prev_href="?page=2",
            next_href="?page=3",
            next_disabled=True,
        ),
    )


def find_free_port() -> int:
    """Find a free port on localhost.

    Returns:
        An available port number.
    """
    with closing(socket.socket(socket.AF_INET, socket.SOCK_STREAM)) as s:
        s.bind(("", 0))
        s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        return s.getsockname()[1]
