"""Extraction rules: the catalog site's markup contract.

All selectors and attribute names the page parser depends on live in one
``ExtractionRules`` value. When the catalog changes its markup, a new rule
set is all that needs to change; the traversal and parsing algorithms stay
the same.

Example::

    from dataclasses import replace

    from audiobook_scraper.common.extraction_rules import DEFAULT_RULES

    rules = replace(DEFAULT_RULES, item="li.searchResultItem")
"""

from dataclasses import dataclass

# The first results page renders no page-number indicator. This is a quirk
# of the catalog's markup, so a missing indicator means page 1.
DEFAULT_PAGE = 1


@dataclass(frozen=True)
class ExtractionRules:
    """Named CSS selectors and attribute names for one catalog's markup.

    Attributes:
        item: Selects each product entry on a results page.
        sample_button: Selects, inside an item, the sample-audio control.
            Items without one (non-audio products) are skipped.
        sample_attribute: Attribute of the sample button holding the
            sample-audio URL.
        title_attribute: Attribute of the item holding its accessible label,
            used as the title.
        narrator: Selects, inside an item, the narrator link.
        language: Selects, inside an item, the language label.
        release_date: Selects, inside an item, the release-date label.
        current_page: Selects the rendered current-page indicator.
        next_link: Selects the link of the "next page" control.
        prev_link: Selects the link of the "previous page" control.
        disabled_attribute: Attribute marking a pagination control disabled.
    """

    item: str = "li.productListItem"
    sample_button: str = "button[data-mp3]"
    sample_attribute: str = "data-mp3"
    title_attribute: str = "aria-label"
    narrator: str = "li.narratorLabel span.bc-text a"
    language: str = "li.languageLabel span.bc-text"
    release_date: str = "li.releaseDateLabel span.bc-text"
    current_page: str = "span.pageNumberElement"
    next_link: str = ".nextButton a"
    prev_link: str = ".previousButton a"
    disabled_attribute: str = "aria-disabled"


DEFAULT_RULES = ExtractionRules()
