"""Count-validated selector queries over lxml elements.

The page parser never calls ``cssselect`` on raw lxml elements. It goes
through CheckedHtmlElement, which compares the number of matches against
the number the extraction rules expect. When the catalog's markup
drifts, the crawl then stops with an HTMLStructuralAssumptionException that
names the selector and page, rather than quietly extracting nothing.
"""

from __future__ import annotations

from cssselect import SelectorError
from lxml.html import HtmlElement

from audiobook_scraper.common.exceptions import (
    HTMLStructuralAssumptionException,
)


class CheckedHtmlElement:
    """An lxml element whose queries enforce expected match counts.

    Matches come back wrapped again, so nested lookups inside a product
    item are checked the same way and keep the page URL for error context.
    Any attribute not defined here (``tag``, ``get``, ``text_content`` ...)
    is read from the wrapped element.
    """

    def __init__(self, element: HtmlElement, request_url: str = "") -> None:
        self._element = element
        self._request_url = request_url

    @property
    def element(self) -> HtmlElement:
        """The wrapped lxml element."""
        return self._element

    @property
    def request_url(self) -> str:
        return self._request_url

    def _wrap(self, matches: list) -> list[CheckedHtmlElement]:
        return [
            CheckedHtmlElement(match, self._request_url)
            for match in matches
            if isinstance(match, HtmlElement)
        ]

    def _expect(
        self,
        selector: str,
        description: str,
        found: int,
        min_count: int,
        max_count: int | None,
    ) -> None:
        too_many = max_count is not None and found > max_count
        if found >= min_count and not too_many:
            return
        raise HTMLStructuralAssumptionException(
            selector=selector,
            selector_type="css",
            description=description,
            expected_min=min_count,
            expected_max=max_count,
            actual_count=found,
            request_url=self._request_url,
        )

    def checked_css(
        self,
        selector: str,
        description: str,
        min_count: int = 1,
        max_count: int | None = None,
    ) -> list[CheckedHtmlElement]:
        """Run a CSS query and check how many elements it matched.

        A selector cssselect cannot compile is reported the same way as a
        count mismatch, with zero matches.

        Raises:
            HTMLStructuralAssumptionException: If the selector is invalid or
                the number of matches is outside ``[min_count, max_count]``.

        Example::

            items = page.checked_css("li.productListItem", "products", 0)
            for item in items:
                item.checked_css("button[data-mp3]", "sample", max_count=1)
        """
        try:
            matches = self._element.cssselect(selector)
        except SelectorError as e:
            raise HTMLStructuralAssumptionException(
                selector=selector,
                selector_type="css",
                description=description,
                expected_min=min_count,
                expected_max=max_count,
                actual_count=0,
                request_url=self._request_url,
            ) from e

        self._expect(
            selector, description, len(matches), min_count, max_count
        )
        return self._wrap(matches)

    def __getattr__(self, name: str):
        return getattr(self._element, name)
