"""Release-date label parsing.

The catalog renders release dates as free text around a ``dd-mm-yy`` token,
e.g. ``"Se publicó originalmente el 12-05-21"``. The token order and the
two-digit year are specific to the Spanish storefront.
"""

import re
from datetime import date, datetime

from audiobook_scraper.common.exceptions import DateNotFound, DateParseError

_DATE_TOKEN = re.compile(r"(?<!\d)(\d{2}-\d{2}-\d{2})(?!\d)")
DATE_FORMAT = "%d-%m-%y"


def extract_date(text: str, request_url: str = "") -> date:
    """Extract a day-month-year date in ``dd-mm-yy`` format from *text*.

    Two-digit years follow Python's ``%y`` pivot (00-68 map to 2000-2068,
    69-99 to 1969-1999).

    Args:
        text: Label text containing the date.
        request_url: URL of the page, for error context.

    Returns:
        The parsed calendar date.

    Raises:
        DateNotFound: If no ``dd-mm-yy`` token is present.
        DateParseError: If the token is not a valid calendar date.

    Example::

        >>> extract_date("Se publicó originalmente el 12-05-21")
        datetime.date(2021, 5, 12)
    """
    match = _DATE_TOKEN.search(text)
    if match is None:
        raise DateNotFound(text, request_url)

    date_text = match.group(1)
    try:
        return datetime.strptime(date_text, DATE_FORMAT).date()
    except ValueError as e:
        raise DateParseError(date_text, text, request_url) from e
