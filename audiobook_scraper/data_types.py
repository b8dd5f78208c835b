"""Core data types for the crawler.

- ``Response``: what the fetch collaborator hands back for one URL.
- ``PageState``: pagination state recovered from a results page.
- ``PageResult``: one fetched results page; owns its PageState and the raw
  body records are extracted from on demand.

All three are produced once per fetch and never mutated afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from audiobook_scraper.common.extraction_rules import (
    DEFAULT_RULES,
    ExtractionRules,
)

if TYPE_CHECKING:
    from audiobook_scraper.common.data_models import AudioBook


@dataclass(frozen=True)
class Response:
    """HTTP response from fetching a page.

    Modeled after httpx.Response to provide a familiar interface.

    Attributes:
        status_code: HTTP status code (200, 404, etc.).
        headers: Response headers.
        text: Decoded response body.
        url: Final URL after any redirects.
        request_url: URL that was requested.
        content: Raw response bytes. Empty when only text is available.
        encoding: Charset from the Content-Type header, if one was sent.
    """

    status_code: int
    headers: dict[str, str]
    text: str
    url: str
    request_url: str = ""
    content: bytes = b""
    encoding: str | None = None

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300


@dataclass(frozen=True)
class PageState:
    """Pagination state of one results page.

    ``has_next`` and ``has_prev`` are derived from the resolved URLs. The
    parser only resolves a URL for an enabled control, so "has a next page"
    always means "has an enabled next control with a usable link".

    Attributes:
        page: Page index rendered by the page itself.
        url: URL the page was fetched from.
        next_url: Absolute URL of the next page, if any.
        prev_url: Absolute URL of the previous page, if any.
    """

    page: int
    url: str
    next_url: str | None = None
    prev_url: str | None = None

    @property
    def has_next(self) -> bool:
        return self.next_url is not None

    @property
    def has_prev(self) -> bool:
        return self.prev_url is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            "page": self.page,
            "hasNext": self.has_next,
            "hasPrev": self.has_prev,
            "nextPageUrl": self.next_url,
            "prevPageUrl": self.prev_url,
            "url": self.url,
        }


@dataclass(frozen=True)
class PageResult:
    """One fetched results page.

    The body (raw bytes when the fetcher supplied them) and its announced
    encoding are kept only so records can be extracted on demand. They are
    not part of the page's identity: both are excluded from equality,
    ``repr`` and ``to_dict()``.

    Example::

        result = PageResult.parse(url, html)
        if result.has_next:
            ...
        for book in result.records():
            print(book.title)
    """

    state: PageState
    body: str | bytes = field(repr=False, compare=False)
    encoding: str | None = field(default=None, repr=False, compare=False)
    rules: ExtractionRules = field(
        default=DEFAULT_RULES, repr=False, compare=False
    )

    @classmethod
    def parse(
        cls,
        url: str,
        body: str | bytes,
        rules: ExtractionRules = DEFAULT_RULES,
        encoding: str | None = None,
    ) -> PageResult:
        """Build a PageResult from a page URL and its markup.

        Raises:
            EmptyDocumentException: If the body is not parseable HTML.
        """
        from audiobook_scraper.common.page_parser import parse_page_state

        return cls(
            state=parse_page_state(url, body, rules, encoding),
            body=body,
            encoding=encoding,
            rules=rules,
        )

    @classmethod
    def from_response(
        cls,
        response: Response,
        rules: ExtractionRules = DEFAULT_RULES,
    ) -> PageResult:
        """Build a PageResult from a fetched Response.

        The raw bytes are parsed when present, so the document's own
        encoding declaration is honoured. Relative pagination links resolve
        against the final URL.
        """
        if response.content:
            return cls.parse(
                response.url, response.content, rules, response.encoding
            )
        return cls.parse(response.url, response.text, rules)

    @property
    def page(self) -> int:
        return self.state.page

    @property
    def url(self) -> str:
        return self.state.url

    @property
    def has_next(self) -> bool:
        return self.state.has_next

    @property
    def has_prev(self) -> bool:
        return self.state.has_prev

    @property
    def next_url(self) -> str | None:
        return self.state.next_url

    @property
    def prev_url(self) -> str | None:
        return self.state.prev_url

    def records(self) -> list[AudioBook]:
        """Extract the audiobooks listed on this page.

        The stored body is re-parsed on every call.

        Raises:
            NoItemsFound: If the page lists no product items.
            HTMLStructuralAssumptionException: If an item repeats a
                single-valued control.
            FieldMissing: If an audio item lacks a required field.
            DateExtractionException: If a release-date label is unparseable.
            DataFormatAssumptionException: If extracted values fail validation.
        """
        from audiobook_scraper.common.page_parser import extract_records

        return extract_records(
            self.body, self.url, self.rules, self.encoding
        )

    def to_dict(self) -> dict[str, Any]:
        return self.state.to_dict()
