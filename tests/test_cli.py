"""Tests for the audiobook-scraper CLI.

The crawl command is run with click's CliRunner against the mock catalog
server, so every test exercises real HTTP, parsing and output writing.
"""

import csv
import io
import json

import pytest
from click.testing import CliRunner

from audiobook_scraper.cli import cli
from tests.mock_server import BOOKS


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


def crawl(runner, server_url, *args, path="/search"):
    return runner.invoke(
        cli, ["crawl", "--base-url", f"{server_url}{path}", *args]
    )


def expected_titles(narrator=None):
    return [
        book.title
        for book in BOOKS
        if book.sample_url is not None
        and (narrator is None or book.narrator == narrator)
    ]


class TestCrawlCommand:
    """Tests for a successful crawl."""

    def test_json_output(self, runner, server_url, expected_book_count):
        """crawl shall print every audiobook as a JSON array."""
        result = crawl(runner, server_url)

        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert len(data) == expected_book_count
        assert [row["title"] for row in data] == expected_titles()

    def test_multiple_pages(self, runner, server_url):
        """Small pages shall be followed to the end of the listing."""
        result = crawl(runner, server_url, "--page-size", "2")

        assert result.exit_code == 0, result.output
        titles = [row["title"] for row in json.loads(result.stdout)]
        assert titles == expected_titles()

    def test_narrator_filter(self, runner, server_url):
        """--narrator shall restrict the crawl to one narrator."""
        result = crawl(
            runner,
            server_url,
            "--narrator",
            "Juan Magraner",
            "--page-size",
            "2",
        )

        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert [row["title"] for row in data] == expected_titles(
            "Juan Magraner"
        )
        assert {row["narrator"] for row in data} == {"Juan Magraner"}

    def test_record_fields(self, runner, server_url):
        """Records shall carry decoded titles and ISO release dates."""
        result = crawl(runner, server_url)

        by_title = {row["title"]: row for row in json.loads(result.stdout)}
        assert by_title["El nombre del viento"]["releaseDate"] == "2021-05-12"
        assert by_title["Cien años de soledad"]["releaseDate"] is None
        assert "Tom & Jerry: La aventura" in by_title
        assert by_title["Dune"]["sampleUrl"] == (
            "https://samples.example.com/dune.mp3"
        )

    def test_jsonl_output(self, runner, server_url, expected_book_count):
        """--format jsonl shall print one record per line."""
        result = crawl(runner, server_url, "--format", "jsonl")

        assert result.exit_code == 0, result.output
        lines = result.stdout.splitlines()
        assert len(lines) == expected_book_count
        assert json.loads(lines[0])["title"] == "El nombre del viento"

    def test_csv_output(self, runner, server_url, expected_book_count):
        """--format csv shall print a CSV table with a header row."""
        result = crawl(runner, server_url, "-f", "csv")

        assert result.exit_code == 0, result.output
        rows = list(csv.DictReader(io.StringIO(result.stdout)))
        assert len(rows) == expected_book_count
        assert rows[0]["language"] == "Español"

    def test_redirected_base_url(self, runner, server_url):
        """A moved search page shall be followed and crawled."""
        result = crawl(
            runner, server_url, "--page-size", "3", path="/old-search"
        )

        assert result.exit_code == 0, result.output
        titles = [row["title"] for row in json.loads(result.stdout)]
        assert titles == expected_titles()

    def test_rate_option(self, runner, server_url):
        """--rate shall be accepted and the crawl still complete."""
        result = crawl(runner, server_url, "--rate", "10", "--page-size", "3")

        assert result.exit_code == 0, result.output


class TestCrawlCommandErrors:
    """Tests for crawls that abort."""

    def test_server_error(self, runner, server_url):
        """A 500 shall abort with a non-zero exit code and the status."""
        result = crawl(runner, server_url, path="/server-error")

        assert result.exit_code == 1
        assert "HTTP 500" in result.output
        assert result.stdout == ""

    def test_page_without_items(self, runner, server_url):
        """A page without product items shall abort the crawl."""
        result = crawl(runner, server_url, path="/empty-search")

        assert result.exit_code == 1
        assert "product list items" in result.output

    def test_pagination_loop(self, runner, server_url):
        """A self-referencing next link shall abort the crawl."""
        result = crawl(runner, server_url, path="/loop")

        assert result.exit_code == 1
        assert "already visited" in result.output

    def test_page_cap(self, runner, server_url):
        """--max-pages shall cap the crawl."""
        result = crawl(
            runner, server_url, "--page-size", "1", "--max-pages", "2"
        )

        assert result.exit_code == 1
        assert "within 2 pages" in result.output

    def test_bad_base_url(self, runner):
        """A relative base URL shall be rejected."""
        result = runner.invoke(cli, ["crawl", "--base-url", "/search"])

        assert result.exit_code == 1
        assert "Cannot build search URL" in result.output

    def test_invalid_page_size(self, runner, server_url):
        """A page size below 1 shall be a usage error."""
        result = crawl(runner, server_url, "--page-size", "0")

        assert result.exit_code == 2

    def test_unknown_format(self, runner, server_url):
        """An unsupported output format shall be a usage error."""
        result = crawl(runner, server_url, "--format", "toml")

        assert result.exit_code == 2
