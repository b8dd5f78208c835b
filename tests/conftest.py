"""Shared fixtures for the crawler tests."""

import asyncio
import threading
from collections.abc import Coroutine, Generator
from typing import Any

import pytest
from aiohttp import web

from tests.mock_server import (
    BOOKS,
    create_app,
    render_item,
    render_page,
    render_pagination,
)
from tests.utils import find_free_port


@pytest.fixture
def item_html() -> str:
    """A single well-formed audio product item."""
    return render_item()


@pytest.fixture
def middle_page_html() -> str:
    """A results page in the middle of a listing (page 2, both links live).

    Returns:
        HTML string with two audio items and one non-audio item.
    """
    items = [
        render_item(title="Dune", release="Se publicó originalmente el 03-11-20"),
        render_item(
            title="Guía de viaje",
            with_sample_button=False,
        ),
        render_item(
            title="Cien años de soledad",
            narrator="Ana Pérez",
            release=None,
            sample_url="https://samples.example.com/cien-anos.mp3",
        ),
    ]
    pagination = render_pagination(
        page_number=2,
        prev_href="?page=1",
        next_href="?page=3",
    )
    return render_page(items, pagination)


@pytest.fixture
def expected_book_count() -> int:
    """Number of audiobooks with a sample in the mock catalog."""
    return sum(1 for book in BOOKS if book.sample_url is not None)


# =============================================================================
# Mock catalog server
# =============================================================================


class CatalogServer:
    """Serves an aiohttp app from an event loop on a daemon thread.

    The loop is started first; the app is then set up and torn down by
    submitting coroutines to it from the test thread, so both start() and
    stop() return only once the socket is actually open or closed.
    """

    host = "127.0.0.1"

    def __init__(self, app: web.Application, port: int) -> None:
        self.app = app
        self.port = port
        self._loop = asyncio.new_event_loop()
        self._thread = threading.Thread(
            target=self._loop.run_forever, daemon=True
        )
        self._runner = web.AppRunner(self.app)

    @property
    def url(self) -> str:
        return f"http://{self.host}:{self.port}"

    def _submit(self, coro: Coroutine[Any, Any, None]) -> None:
        asyncio.run_coroutine_threadsafe(coro, self._loop).result(timeout=5.0)

    async def _open(self) -> None:
        await self._runner.setup()
        await web.TCPSite(self._runner, self.host, self.port).start()

    def start(self) -> None:
        self._thread.start()
        self._submit(self._open())

    def stop(self) -> None:
        try:
            self._submit(self._runner.cleanup())
        finally:
            self._loop.call_soon_threadsafe(self._loop.stop)
            self._thread.join(timeout=5.0)
            self._loop.close()


@pytest.fixture
def catalog_server() -> Generator[CatalogServer, None, None]:
    """Run the mock catalog on a free local port for the test.

    Yields:
        The running CatalogServer.
    """
    server = CatalogServer(create_app(), find_free_port())
    server.start()
    yield server
    server.stop()


@pytest.fixture
def server_url(catalog_server: CatalogServer) -> str:
    """Root URL of the running mock catalog, e.g. ``http://127.0.0.1:8080``."""
    return catalog_server.url
