"""Page elements for the results-page parser.

LxmlPageElement sits on top of CheckedHtmlElement. It carries the page URL
so links can be resolved where they are found, and adds the small helpers
the parser needs: single-match lookups, stripped text, attribute presence.

``from_markup`` builds a fresh lxml tree on every call, so elements of
different pages never share parser state. Raw bytes are the preferred
input: lxml then honours the document's own encoding declaration (BOM,
XML declaration or ``<meta charset>``) unless the caller passes the
charset the server announced.
"""

from __future__ import annotations

from urllib.parse import urljoin, urlsplit

from lxml import etree, html

from audiobook_scraper.common.checked_html import CheckedHtmlElement
from audiobook_scraper.common.exceptions import EmptyDocumentException


class LxmlPageElement:
    """One node of a fetched page, bound to the page URL.

    All queries return further LxmlPageElements bound to the same URL and
    raise HTMLStructuralAssumptionException when the match count is outside
    the requested bounds.
    """

    def __init__(self, element: CheckedHtmlElement, url: str = ""):
        self._element = element
        self._url = url

    @classmethod
    def from_markup(
        cls,
        markup: str | bytes,
        url: str = "",
        encoding: str | None = None,
    ) -> LxmlPageElement:
        """Parse a complete HTML document.

        Args:
            markup: Page body as fetched, preferably the raw bytes.
            url: URL the body was fetched from.
            encoding: Charset announced by the server for *markup*. Takes
                precedence over the declaration inside the document.
                Ignored for ``str`` input, which is already decoded.

        Returns:
            Element for the document's ``<html>`` root.

        Raises:
            EmptyDocumentException: If lxml cannot build a document from
                *markup* (empty or whitespace-only bodies, an unknown
                encoding name, for instance).
        """
        if isinstance(markup, str):
            # decoded text: re-encode so an in-document declaration is ignored
            markup, encoding = markup.encode("utf-8"), "utf-8"
        try:
            parser = html.HTMLParser(encoding=encoding) if encoding else None
            root = html.document_fromstring(markup, parser=parser)
        except (etree.LxmlError, LookupError, ValueError) as e:
            raise EmptyDocumentException(url, str(e)) from e
        return cls(CheckedHtmlElement(root, url), url)

    @property
    def url(self) -> str:
        return self._url

    def _bind(
        self, elements: list[CheckedHtmlElement]
    ) -> list[LxmlPageElement]:
        return [LxmlPageElement(element, self._url) for element in elements]

    def query_css(
        self,
        selector: str,
        description: str,
        min_count: int = 1,
        max_count: int | None = None,
    ) -> list[LxmlPageElement]:
        """Elements matching a CSS selector, between min_count and max_count.

        Raises:
            HTMLStructuralAssumptionException: On a count outside the bounds.
        """
        return self._bind(
            self._element.checked_css(
                selector, description, min_count, max_count
            )
        )

    def first_css(
        self, selector: str, description: str
    ) -> LxmlPageElement | None:
        """First element matching a CSS selector, or None if nothing does."""
        matches = self.query_css(selector, description, min_count=0)
        return matches[0] if matches else None

    def single_css(
        self, selector: str, description: str
    ) -> LxmlPageElement | None:
        """The element matching a CSS selector, or None if nothing does.

        Raises:
            HTMLStructuralAssumptionException: If more than one element
                matches.
        """
        matches = self.query_css(
            selector, description, min_count=0, max_count=1
        )
        return matches[0] if matches else None

    def text_content(self) -> str:
        return self._element.text_content()

    def stripped_text(self) -> str:
        """Text content without surrounding whitespace."""
        return self.text_content().strip()

    def get_attribute(self, name: str) -> str | None:
        return self._element.get(name)

    def has_attribute(self, name: str) -> bool:
        """True if the attribute is present, even with an empty value."""
        return name in self._element.element.attrib

    def resolve_url(self, href: str | None) -> str | None:
        """Resolve a link reference against the page URL.

        Args:
            href: Raw ``href`` value, possibly relative.

        Returns:
            Absolute http(s) URL, or None when ``href`` is missing, blank,
            or does not resolve to an absolute http(s) URL.
        """
        if href is None or not href.strip():
            return None
        try:
            resolved = urljoin(self._url, href.strip())
            parts = urlsplit(resolved)
        except ValueError:
            return None
        if parts.scheme not in ("http", "https") or not parts.netloc:
            return None
        return resolved
