"""Results-page parsing: pagination state and audiobook records.

Both entry points are pure functions of the markup: each call parses the
body into a fresh lxml tree, so they are safe to call repeatedly and from
several threads on already-fetched pages.

- ``parse_page_state`` never fails over navigation ambiguity. A missing,
  disabled or unusable pagination control just means "no such page".
- ``extract_records`` is all-or-nothing. Any audio item missing a required
  field, or carrying more than one sample button, language label or
  release-date label, aborts the whole page with an exception.
"""

from __future__ import annotations

import logging
from html import unescape

from audiobook_scraper.common.data_models import AudioBook
from audiobook_scraper.common.dates import extract_date
from audiobook_scraper.common.exceptions import FieldMissing, NoItemsFound
from audiobook_scraper.common.extraction_rules import (
    DEFAULT_PAGE,
    DEFAULT_RULES,
    ExtractionRules,
)
from audiobook_scraper.common.lxml_page_element import LxmlPageElement
from audiobook_scraper.data_types import PageState

logger = logging.getLogger(__name__)


def _current_page(page: LxmlPageElement, rules: ExtractionRules) -> int:
    indicators = page.query_css(
        rules.current_page, "current page indicator", min_count=0
    )
    for indicator in indicators:
        try:
            number = int(indicator.stripped_text())
        except ValueError:
            continue
        if number >= 1:
            return number
    return DEFAULT_PAGE


def _control_url(
    page: LxmlPageElement,
    selector: str,
    description: str,
    rules: ExtractionRules,
) -> str | None:
    control = page.first_css(selector, description)
    if control is None:
        return None
    if control.has_attribute(rules.disabled_attribute):
        flag = control.get_attribute(rules.disabled_attribute) or ""
        if flag.strip().lower() != "false":
            return None
    return control.resolve_url(control.get_attribute("href"))


def parse_page_state(
    page_url: str,
    markup: str | bytes,
    rules: ExtractionRules = DEFAULT_RULES,
    encoding: str | None = None,
) -> PageState:
    """Recover the pagination state of a results page.

    Args:
        page_url: URL the page was fetched from. Relative pagination links
            are resolved against it.
        markup: Raw HTML of the page.
        rules: Extraction rules for the catalog's markup.
        encoding: Charset announced by the server, if any.

    Returns:
        PageState for the page. The page index defaults to 1 when the page
        renders no indicator.

    Raises:
        EmptyDocumentException: If the markup is empty or unparseable.
    """
    page = LxmlPageElement.from_markup(markup, page_url, encoding)

    state = PageState(
        page=_current_page(page, rules),
        url=page_url,
        next_url=_control_url(
            page, rules.next_link, "next page link", rules
        ),
        prev_url=_control_url(
            page, rules.prev_link, "previous page link", rules
        ),
    )
    logger.debug(
        f"Parsed page state for {page_url}: page={state.page} "
        f"has_next={state.has_next} has_prev={state.has_prev}",
        extra={"request_url": page_url, "page": state.page},
    )
    return state


def _required_text(
    element: LxmlPageElement | None,
    selector: str,
    field: str,
    index: int,
    request_url: str,
) -> str:
    text = element.stripped_text() if element is not None else ""
    if not text:
        raise FieldMissing(field, selector, index, request_url)
    return text


def _extract_item(
    item: LxmlPageElement,
    button: LxmlPageElement,
    index: int,
    request_url: str,
    rules: ExtractionRules,
) -> AudioBook:
    sample_url = (button.get_attribute(rules.sample_attribute) or "").strip()
    if not sample_url:
        raise FieldMissing(
            "sample_url", rules.sample_attribute, index, request_url
        )

    # lxml decodes attribute entities once; the catalog double-encodes some
    title = unescape(item.get_attribute(rules.title_attribute) or "").strip()
    if not title:
        raise FieldMissing("title", rules.title_attribute, index, request_url)

    # several narrators render one link each; the first is the lead
    narrator = _required_text(
        item.first_css(rules.narrator, "narrator"),
        rules.narrator,
        "narrator",
        index,
        request_url,
    )
    language = _required_text(
        item.single_css(rules.language, "language label"),
        rules.language,
        "language",
        index,
        request_url,
    )

    release_label = item.single_css(
        rules.release_date, "release date label"
    )
    release_date = (
        extract_date(release_label.text_content(), request_url)
        if release_label is not None
        else None
    )

    return AudioBook.from_extracted(
        request_url=request_url,
        title=title,
        narrator=narrator,
        language=language,
        release_date=release_date,
        sample_url=sample_url,
    )


def extract_records(
    markup: str | bytes,
    request_url: str = "",
    rules: ExtractionRules = DEFAULT_RULES,
    encoding: str | None = None,
) -> list[AudioBook]:
    """Extract the audiobooks listed on a results page.

    Items without a sample-audio control (non-audio products) are skipped
    and counted in the log.

    Args:
        markup: Raw HTML of the page.
        request_url: URL of the page, for error context.
        rules: Extraction rules for the catalog's markup.
        encoding: Charset announced by the server, if any.

    Returns:
        Audiobooks in page order.

    Raises:
        EmptyDocumentException: If the markup is empty or unparseable.
        NoItemsFound: If the page lists no product items at all.
        HTMLStructuralAssumptionException: If an item repeats its sample
            button, language label or release-date label.
        FieldMissing: If an audio item lacks title, narrator, language or
            sample URL.
        DateExtractionException: If a release-date label is unparseable.
        DataFormatAssumptionException: If extracted values fail validation.
    """
    page = LxmlPageElement.from_markup(markup, request_url, encoding)

    items = page.query_css(rules.item, "product list items", min_count=0)
    if not items:
        raise NoItemsFound(rules.item, request_url)

    books: list[AudioBook] = []
    skipped = 0
    for index, item in enumerate(items):
        button = item.single_css(rules.sample_button, "sample audio button")
        if button is None:
            skipped += 1
            logger.debug(
                f"Skipping product item {index} without sample audio",
                extra={"request_url": request_url, "item_index": index},
            )
            continue
        books.append(_extract_item(item, button, index, request_url, rules))

    if skipped:
        logger.info(
            f"Skipped {skipped} of {len(items)} product items without "
            f"sample audio on {request_url}",
            extra={
                "request_url": request_url,
                "skipped": skipped,
                "items": len(items),
            },
        )
    return books
