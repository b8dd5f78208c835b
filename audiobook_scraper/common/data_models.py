"""Pydantic data models for scraped catalog records.

These models define the schema extracted records must satisfy. Construction
validates immediately; ``AudioBook.from_extracted`` turns a validation failure
into a DataFormatAssumptionException carrying the page URL.
"""

from __future__ import annotations

from datetime import date
from typing import Any
from urllib.parse import urlsplit

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
)
from pydantic.alias_generators import to_camel

from audiobook_scraper.common.exceptions import (
    DataFormatAssumptionException,
)


class AudioBook(BaseModel):
    """An audiobook entry from a catalog results page.

    Serializes with camelCase keys: ``title``, ``narrator``, ``language``,
    ``releaseDate`` and ``sampleUrl``.
    """

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    title: str = Field(..., min_length=1, description="Entity-decoded title")
    narrator: str = Field(..., min_length=1, description="Narrator name")
    language: str = Field(..., min_length=1, description="Language label")
    release_date: date | None = Field(
        None, description="Original release date, when the catalog shows one"
    )
    sample_url: str = Field(..., description="Absolute sample-audio URL")

    @field_validator("sample_url")
    @classmethod
    def _sample_url_is_absolute(cls, value: str) -> str:
        parts = urlsplit(value)
        if parts.scheme not in ("http", "https") or not parts.netloc:
            raise ValueError("sample URL must be an absolute http(s) URL")
        return value

    @classmethod
    def from_extracted(cls, request_url: str = "", **data: Any) -> AudioBook:
        """Validate extracted field values into an AudioBook.

        Args:
            request_url: URL of the page the values came from.
            **data: Field values keyed by field name.

        Raises:
            DataFormatAssumptionException: If the values fail validation.
        """
        try:
            return cls(**data)
        except ValidationError as e:
            raise DataFormatAssumptionException(
                errors=e.errors(include_url=False, include_context=False),
                failed_doc=data,
                model_name=cls.__name__,
                request_url=request_url,
            ) from e

    def to_dict(self) -> dict[str, Any]:
        """JSON-compatible dict with camelCase keys and ISO dates."""
        return self.model_dump(mode="json", by_alias=True)
