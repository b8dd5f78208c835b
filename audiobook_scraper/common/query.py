"""Search URL construction.

``build_url`` turns a ``SearchQuery`` into the catalog's search URL. The
query string order is fixed so identical queries always produce identical
URLs: ``searchNarrator`` and ``keywords`` (each only when set), then
``sort``, ``pageSize`` and ``page``.
"""

from urllib.parse import urlencode, urlsplit, urlunsplit

from audiobook_scraper.common.exceptions import UrlBuildError
from audiobook_scraper.common.param_models import SearchQuery

DEFAULT_BASE_URL = "https://www.audible.es/search"


def _query_pairs(query: SearchQuery) -> list[tuple[str, str]]:
    pairs: list[tuple[str, str]] = []
    if query.narrator is not None:
        pairs.append(("searchNarrator", query.narrator))
    if query.keywords is not None:
        pairs.append(("keywords", query.keywords))
    pairs.extend(
        [
            ("sort", query.sort),
            ("pageSize", str(query.page_size)),
            ("page", str(query.page)),
        ]
    )
    return pairs


def build_url(query: SearchQuery, base_url: str = DEFAULT_BASE_URL) -> str:
    """Build the search URL for *query*.

    Query parameters already present on *base_url* are kept in front of
    the ones derived from *query*. Values are form-encoded (spaces become
    ``+``).

    Args:
        query: Search criteria.
        base_url: Absolute http(s) URL of the catalog's search page.

    Returns:
        The absolute search URL.

    Raises:
        UrlBuildError: If *base_url* is not an absolute http(s) URL.

    Example::

        >>> build_url(SearchQuery(narrator="Ana Pérez"))
        'https://www.audible.es/search?searchNarrator=Ana+P%C3%A9rez&sort=title-asc-rank&pageSize=50&page=1'
    """
    try:
        parts = urlsplit(base_url)
    except ValueError as e:
        raise UrlBuildError(base_url, str(e)) from e

    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise UrlBuildError(base_url, "base URL must be absolute http(s)")

    encoded = urlencode(_query_pairs(query))
    existing = parts.query
    full_query = f"{existing}&{encoded}" if existing else encoded

    return urlunsplit(
        (parts.scheme, parts.netloc, parts.path, full_query, "")
    )
