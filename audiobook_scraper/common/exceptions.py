"""Exceptions raised by the crawler.

Two families, never mixed:

- ``ScraperAssumptionException`` and its subclasses: the catalog no longer
  looks the way the extraction rules expect (markup, data formats or
  pagination). Retrying cannot help; the rules need updating.
- ``TransientException`` and its subclasses: the page could not be fetched
  (non-2xx status, timeout, connection failure).

Every exception records the URL of the page it concerns.
"""

from typing import Any


def _expected_range(expected_min: int, expected_max: int | None) -> str:
    if expected_max is None:
        return f"at least {expected_min}"
    if expected_min == expected_max:
        return f"exactly {expected_min}"
    return f"between {expected_min} and {expected_max}"


class ScraperAssumptionException(Exception):
    """A page broke an assumption the crawler makes about the catalog.

    ``str(exc)`` renders the message, the page URL and each ``context``
    entry on its own line, so a failed crawl log is enough to see which
    selector or field stopped matching.

    Attributes:
        message: What went wrong, without the URL or context.
        request_url: URL of the page being processed.
        context: Extra diagnostic values (selector, counts, field, ...).
    """

    def __init__(
        self,
        message: str,
        request_url: str,
        context: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        self.request_url = request_url
        self.context = context or {}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        lines = [self.message, f"URL: {self.request_url}"]
        if self.context:
            lines.append("Context:")
            lines.extend(
                f"  {key}: {value}" for key, value in self.context.items()
            )
        return "\n".join(lines)


class HTMLStructuralAssumptionException(ScraperAssumptionException):
    """A selector matched an unexpected number of nodes.

    Raised by CheckedHtmlElement queries. On a catalog page this nearly
    always means the site changed its markup.

    Attributes:
        selector: The CSS selector.
        selector_type: Selector language, ``"css"``.
        description: What the selector was meant to find.
        expected_min: Fewest acceptable matches.
        expected_max: Most acceptable matches (None for no limit).
        actual_count: Matches actually found.
    """

    def __init__(
        self,
        selector: str,
        selector_type: str,
        description: str,
        expected_min: int,
        expected_max: int | None,
        actual_count: int,
        request_url: str,
    ) -> None:
        self.selector = selector
        self.selector_type = selector_type
        self.description = description
        self.expected_min = expected_min
        self.expected_max = expected_max
        self.actual_count = actual_count

        super().__init__(
            f"HTML structure mismatch: Expected "
            f"{_expected_range(expected_min, expected_max)} elements for "
            f"'{description}', but found {actual_count}",
            request_url,
            {
                "selector": selector,
                "selector_type": selector_type,
                "expected_min": expected_min,
                "expected_max": (
                    "unlimited" if expected_max is None else expected_max
                ),
                "actual_count": actual_count,
            },
        )


class NoItemsFound(HTMLStructuralAssumptionException):
    """Raised when a results page contains no product list items.

    A rendered page without any product entries means either the catalog
    layout changed or the crawl walked past the last real page. Both must
    be surfaced instead of being returned as an empty page.
    """

    def __init__(self, selector: str, request_url: str) -> None:
        super().__init__(
            selector=selector,
            selector_type="css",
            description="product list items",
            expected_min=1,
            expected_max=None,
            actual_count=0,
            request_url=request_url,
        )


class EmptyDocumentException(ScraperAssumptionException):
    """Raised when a response body cannot be parsed into an HTML document."""

    def __init__(self, request_url: str, reason: str) -> None:
        self.reason = reason
        super().__init__(
            "Response body is not a parseable HTML document",
            request_url,
            {"reason": reason},
        )


class FieldMissing(ScraperAssumptionException):
    """Raised when a required field is absent on an audio product item.

    Attributes:
        field: Name of the missing field ("title", "narrator", "language"
            or "sample_url").
        selector: Selector or attribute name that was expected to hold it.
        item_index: Zero-based position of the item on the page.
    """

    def __init__(
        self,
        field: str,
        selector: str,
        item_index: int,
        request_url: str,
    ) -> None:
        self.field = field
        self.selector = selector
        self.item_index = item_index
        super().__init__(
            f"Required field '{field}' missing on product item {item_index}",
            request_url,
            {
                "field": field,
                "selector": selector,
                "item_index": item_index,
            },
        )


class DateExtractionException(ScraperAssumptionException):
    """Base class for release-date label failures.

    Attributes:
        text: The full label text that was scanned.
    """


class DateNotFound(DateExtractionException):
    """Raised when a release-date label holds no dd-mm-yy token."""

    def __init__(self, text: str, request_url: str = "") -> None:
        self.text = text
        super().__init__(
            "No dd-mm-yy date found in release date label",
            request_url,
            {"text": text},
        )


class DateParseError(DateExtractionException):
    """Raised when a dd-mm-yy token is not a valid calendar date.

    Attributes:
        date_text: The matched dd-mm-yy token.
    """

    def __init__(
        self, date_text: str, text: str, request_url: str = ""
    ) -> None:
        self.date_text = date_text
        self.text = text
        super().__init__(
            f"'{date_text}' is not a valid dd-mm-yy calendar date",
            request_url,
            {"date_text": date_text, "text": text},
        )


class DataFormatAssumptionException(ScraperAssumptionException):
    """Extracted values did not validate against a pydantic model.

    Typical cause: a sample-audio attribute that is no longer an absolute
    URL.

    Attributes:
        errors: pydantic's error list (``ValidationError.errors()``).
        failed_doc: The values that were validated.
        model_name: Name of the model they were validated against.
    """

    def __init__(
        self,
        errors: list[dict[str, Any]],
        failed_doc: dict[str, Any],
        model_name: str,
        request_url: str,
    ) -> None:
        self.errors = errors
        self.failed_doc = failed_doc
        self.model_name = model_name

        problems = ", ".join(
            f"{'.'.join(str(part) for part in err['loc']) or '__root__'}: "
            f"{err['msg']}"
            for err in errors
        )
        super().__init__(
            f"Data validation failed for model '{model_name}': {problems}",
            request_url,
            {
                "model": model_name,
                "error_count": len(errors),
                "errors": errors,
                "failed_doc": failed_doc,
            },
        )


class UrlBuildError(ScraperAssumptionException):
    """Raised when the configured base URL cannot be used to build a query.

    This is a configuration failure: it depends only on the base URL, never
    on the search criteria.
    """

    def __init__(self, base_url: str, reason: str) -> None:
        self.base_url = base_url
        self.reason = reason
        super().__init__(
            f"Cannot build search URL: {reason}",
            base_url,
            {"base_url": base_url},
        )


class PageLimitExceeded(ScraperAssumptionException):
    """Raised when a crawl would fetch more pages than allowed.

    Attributes:
        max_pages: The configured page cap.
    """

    def __init__(self, max_pages: int, request_url: str) -> None:
        self.max_pages = max_pages
        super().__init__(
            f"Pagination did not end within {max_pages} pages",
            request_url,
            {"max_pages": max_pages},
        )


class PaginationLoopException(ScraperAssumptionException):
    """Raised when a "next" link points at a page already fetched."""

    def __init__(self, request_url: str, visited_from: str) -> None:
        self.visited_from = visited_from
        super().__init__(
            "Next page link points to an already visited page",
            request_url,
            {"linked_from": visited_from},
        )


# =============================================================================
# Fetch failures
# =============================================================================


class TransientException(Exception):
    """A page could not be fetched.

    Says nothing about the markup contract. The crawler never retries;
    whether a later attempt may succeed is for the caller to decide.
    """


class FetchError(TransientException):
    """Base for failures tied to one URL.

    Attributes:
        url: The URL that was requested.
        message: Description of the failure.
    """

    def __init__(self, url: str, message: str) -> None:
        self.url = url
        self.message = message
        super().__init__(message)


class HTMLResponseAssumptionException(FetchError):
    """The server answered with a status the crawler does not accept.

    Attributes:
        status_code: Status code received.
        expected_codes: Status codes that would have been accepted.
    """

    def __init__(
        self,
        status_code: int,
        expected_codes: list[int],
        url: str,
    ) -> None:
        self.status_code = status_code
        self.expected_codes = expected_codes

        codes = sorted(expected_codes)
        if len(codes) > 2 and codes == list(range(codes[0], codes[-1] + 1)):
            accepted = f"{codes[0]}-{codes[-1]}"
        else:
            accepted = "one of: " + ", ".join(map(str, codes))
        super().__init__(
            url, f"HTTP {status_code} from {url} (expected {accepted})"
        )


class RequestTimeoutException(FetchError):
    """No response arrived within the request manager's timeout.

    Attributes:
        timeout_seconds: The configured timeout, or None if unbounded.
    """

    def __init__(self, url: str, timeout_seconds: float | None) -> None:
        self.timeout_seconds = timeout_seconds
        super().__init__(
            url, f"Request to {url} timed out after {timeout_seconds}s"
        )


class RequestFailedException(FetchError):
    """Raised when the transport fails before a response is received."""

    def __init__(self, url: str, reason: str) -> None:
        self.reason = reason
        super().__init__(url, f"Request to {url} failed: {reason}")
