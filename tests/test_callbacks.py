"""Tests for output callbacks and writers."""

import csv
import io
import json
from datetime import date

import pytest

from audiobook_scraper.common.data_models import AudioBook
from audiobook_scraper.data_types import PageResult
from audiobook_scraper.driver.callbacks import (
    CSV_FIELDS,
    WRITERS,
    save_to_jsonl_file,
    write_csv,
    write_json,
    write_jsonl,
)
from audiobook_scraper.driver.sync_driver import SyncDriver
from tests.utils import (
    BASE_URL,
    PAGE_2,
    PAGE_3,
    QUERY,
    START_URL,
    ScriptedFetcher,
    first_page,
    last_page,
    middle_page,
)


@pytest.fixture
def books() -> list[AudioBook]:
    return [
        AudioBook(
            title="El nombre del viento",
            narrator="Juan Magraner",
            language="Español",
            release_date=date(2021, 5, 12),
            sample_url="https://samples.example.com/nombre-del-viento.mp3",
        ),
        AudioBook(
            title="Tom & Jerry",
            narrator="Ana Pérez",
            language="Español",
            release_date=None,
            sample_url="https://samples.example.com/tom-jerry.mp3",
        ),
    ]


class TestWriters:
    """Tests for the batch writers."""

    def test_write_json(self, books):
        """write_json shall write a JSON array of camelCase records."""
        out = io.StringIO()

        write_json(books, out)

        data = json.loads(out.getvalue())
        assert [row["title"] for row in data] == [
            "El nombre del viento",
            "Tom & Jerry",
        ]
        assert data[0]["releaseDate"] == "2021-05-12"
        assert data[1]["releaseDate"] is None

    def test_write_json_keeps_non_ascii(self, books):
        """Non-ASCII text shall be written as-is, not escaped."""
        out = io.StringIO()

        write_json(books, out)

        assert "Pérez" in out.getvalue()

    def test_write_json_empty(self):
        """An empty crawl shall produce an empty JSON array."""
        out = io.StringIO()

        write_json([], out)

        assert json.loads(out.getvalue()) == []

    def test_write_jsonl(self, books):
        """write_jsonl shall write one JSON object per line."""
        out = io.StringIO()

        write_jsonl(books, out)

        lines = out.getvalue().splitlines()
        assert len(lines) == 2
        assert json.loads(lines[1])["sampleUrl"] == (
            "https://samples.example.com/tom-jerry.mp3"
        )

    def test_write_csv(self, books):
        """write_csv shall write a header and one row per record."""
        out = io.StringIO()

        write_csv(books, out)

        rows = list(csv.DictReader(io.StringIO(out.getvalue())))
        assert list(rows[0]) == CSV_FIELDS
        assert rows[0]["releaseDate"] == "2021-05-12"
        assert rows[1]["releaseDate"] == ""
        assert rows[1]["title"] == "Tom & Jerry"

    def test_writer_registry(self):
        """WRITERS shall map each output format to its writer."""
        assert WRITERS == {
            "json": write_json,
            "jsonl": write_jsonl,
            "csv": write_csv,
        }


class TestSaveToJsonlFile:
    """Tests for the streaming on_page callback."""

    def test_writes_each_page(self):
        """The callback shall append every page's records as they arrive."""
        fetcher = ScriptedFetcher(
            {START_URL: first_page(), PAGE_2: middle_page(), PAGE_3: last_page()}
        )
        out = io.StringIO()

        SyncDriver(
            QUERY,
            request_manager=fetcher,
            base_url=BASE_URL,
            on_page=save_to_jsonl_file(out),
        ).run()

        titles = [json.loads(line)["title"] for line in out.getvalue().splitlines()]
        assert titles == ["A", "B", "C", "D", "E"]

    def test_single_page(self):
        """The callback shall work on a PageResult directly."""
        out = io.StringIO()
        callback = save_to_jsonl_file(out)

        callback(PageResult.parse(START_URL, first_page()))

        assert len(out.getvalue().splitlines()) == 2
