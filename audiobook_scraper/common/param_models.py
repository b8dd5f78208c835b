"""Search parameter model for catalog crawls.

``SearchQuery`` is the immutable set of search criteria a crawl starts from.
Advancing to another page produces a new value; a query is never mutated.

Example::

    from audiobook_scraper.common.param_models import SearchQuery

    query = SearchQuery(narrator="Juan Magraner")
    second = query.next_page()
"""

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_SORT = "title-asc-rank"
DEFAULT_PAGE_SIZE = 50


class SearchQuery(BaseModel):
    """Search criteria for one crawl of the catalog.

    Attributes:
        narrator: Only list titles read by this narrator.
        keywords: Free-text search keywords.
        sort: Catalog sort key.
        page_size: Number of results per page, greater than zero.
        page: One-based page index.
    """

    model_config = ConfigDict(frozen=True)

    narrator: str | None = None
    keywords: str | None = None
    sort: str = DEFAULT_SORT
    page_size: int = Field(DEFAULT_PAGE_SIZE, gt=0)
    page: int = Field(1, ge=1)

    def with_page(self, page: int) -> "SearchQuery":
        """Return a copy of this query pointing at *page*.

        Raises:
            pydantic.ValidationError: If *page* is lower than 1.
        """
        return SearchQuery.model_validate({**self.model_dump(), "page": page})

    def next_page(self) -> "SearchQuery":
        return self.with_page(self.page + 1)
