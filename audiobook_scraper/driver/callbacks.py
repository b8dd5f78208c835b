"""Callbacks and writers for crawl output.

``save_to_jsonl_file`` builds an ``on_page`` callback that streams each
page's records as they are fetched. The ``write_*`` functions serialize a
finished list of audiobooks.

Example::

    from audiobook_scraper.driver.callbacks import save_to_jsonl_file
    from audiobook_scraper.driver.sync_driver import SyncDriver

    with open("books.jsonl", "w") as f:
        SyncDriver(query, on_page=save_to_jsonl_file(f)).run()
"""

import csv
import json
from collections.abc import Callable, Iterable
from typing import TextIO

from audiobook_scraper.common.data_models import AudioBook
from audiobook_scraper.data_types import PageResult

CSV_FIELDS = ["title", "narrator", "language", "releaseDate", "sampleUrl"]


def save_to_jsonl_file(file_handle: TextIO) -> Callable[[PageResult], None]:
    """Create an on_page callback writing each page's records as JSON lines.

    Records are extracted when the page arrives, so an extraction error
    aborts the crawl at that page.

    Args:
        file_handle: An open file handle to write JSON lines to.
            The caller is responsible for opening and closing the file.

    Returns:
        A callback for the driver's on_page parameter.
    """

    def callback(page: PageResult) -> None:
        write_jsonl(page.records(), file_handle)
        file_handle.flush()

    return callback


def write_jsonl(books: Iterable[AudioBook], file_handle: TextIO) -> None:
    """Write one JSON object per line."""
    for book in books:
        json.dump(book.to_dict(), file_handle, ensure_ascii=False)
        file_handle.write("\n")


def write_json(books: Iterable[AudioBook], file_handle: TextIO) -> None:
    """Write a pretty-printed JSON array."""
    json.dump(
        [book.to_dict() for book in books],
        file_handle,
        ensure_ascii=False,
        indent=2,
    )
    file_handle.write("\n")


def write_csv(books: Iterable[AudioBook], file_handle: TextIO) -> None:
    """Write a CSV table with a header row; missing dates are empty."""
    writer = csv.DictWriter(file_handle, fieldnames=CSV_FIELDS)
    writer.writeheader()
    for book in books:
        row = book.to_dict()
        if row["releaseDate"] is None:
            row["releaseDate"] = ""
        writer.writerow(row)


WRITERS: dict[str, Callable[[Iterable[AudioBook], TextIO], None]] = {
    "json": write_json,
    "jsonl": write_jsonl,
    "csv": write_csv,
}
