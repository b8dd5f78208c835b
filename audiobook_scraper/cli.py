"""audiobook-scraper CLI: crawl a catalog search and print its audiobooks.

Usage:
    audiobook-scraper crawl --narrator "Juan Magraner"
    audiobook-scraper crawl --keywords dune --format csv > dune.csv
    audiobook-scraper crawl -n "Ana Pérez" -f jsonl --max-pages 5 -v
"""

from __future__ import annotations

import logging
import sys

import click
from pyrate_limiter import Duration, Rate

from audiobook_scraper.common.exceptions import (
    ScraperAssumptionException,
    TransientException,
)
from audiobook_scraper.common.param_models import (
    DEFAULT_PAGE_SIZE,
    DEFAULT_SORT,
    SearchQuery,
)
from audiobook_scraper.common.query import DEFAULT_BASE_URL
from audiobook_scraper.common.request_manager import (
    DEFAULT_TIMEOUT,
    SyncRequestManager,
)
from audiobook_scraper.driver.callbacks import WRITERS
from audiobook_scraper.driver.sync_driver import DEFAULT_MAX_PAGES, SyncDriver


@click.group()
@click.version_option(package_name="audiobook-scraper")
def cli() -> None:
    """audiobook-scraper: catalog search crawler CLI."""


@cli.command()
@click.option("-n", "--narrator", default=None, help="Filter by narrator.")
@click.option("-k", "--keywords", default=None, help="Search keywords.")
@click.option(
    "--sort", default=DEFAULT_SORT, show_default=True, help="Sort key."
)
@click.option(
    "--page-size",
    type=click.IntRange(min=1),
    default=DEFAULT_PAGE_SIZE,
    show_default=True,
    help="Results per page.",
)
@click.option(
    "-f",
    "--format",
    "output_format",
    type=click.Choice(sorted(WRITERS)),
    default="json",
    show_default=True,
    help="Output format.",
)
@click.option(
    "--base-url",
    default=DEFAULT_BASE_URL,
    show_default=True,
    help="Catalog search URL.",
)
@click.option(
    "--max-pages",
    type=click.IntRange(min=1),
    default=DEFAULT_MAX_PAGES,
    show_default=True,
    help="Abort if pagination runs longer than this.",
)
@click.option(
    "--timeout",
    type=float,
    default=DEFAULT_TIMEOUT,
    show_default=True,
    help="Request timeout in seconds.",
)
@click.option(
    "--rate",
    type=click.IntRange(min=1),
    default=None,
    help="Maximum requests per second.",
)
@click.option("-v", "--verbose", is_flag=True, help="Verbose logging.")
def crawl(
    narrator: str | None,
    keywords: str | None,
    sort: str,
    page_size: int,
    output_format: str,
    base_url: str,
    max_pages: int,
    timeout: float,
    rate: int | None,
    verbose: bool,
) -> None:
    """Crawl every results page of a search and print its audiobooks.

    Records go to stdout, logs to stderr.

    \b
    Examples:
        audiobook-scraper crawl --narrator "Juan Magraner"
        audiobook-scraper crawl -k dune -f csv --rate 1
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    query = SearchQuery(
        narrator=narrator,
        keywords=keywords,
        sort=sort,
        page_size=page_size,
    )
    rates = [Rate(rate, Duration.SECOND)] if rate else None

    try:
        with SyncRequestManager(timeout=timeout, rates=rates) as manager:
            driver = SyncDriver(
                query,
                request_manager=manager,
                base_url=base_url,
                max_pages=max_pages,
            )
            pages = driver.run()
            books = [book for page in pages for book in page.records()]
    except (ScraperAssumptionException, TransientException) as e:
        raise click.ClickException(str(e)) from e

    WRITERS[output_format](books, sys.stdout)


if __name__ == "__main__":
    cli()
