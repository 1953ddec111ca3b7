"""Pydantic models describing book payloads reported by upstream sites."""

from __future__ import annotations

import re
from collections.abc import Mapping
from datetime import date, datetime
from typing import ClassVar

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

_DASHED_DATE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
_COMPACT_DATE = re.compile(r"^(\d{4})(\d{2})(\d{2})$")


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


def _stringify_number(value: object) -> object:
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return _blank_to_none(value)


def _parse_date(value: object) -> object:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date) or value is None:
        return value
    if isinstance(value, int) and not isinstance(value, bool):
        value = str(value)
    if not isinstance(value, str):
        return value
    text = value.strip()
    if not text:
        return None
    match = _DASHED_DATE.match(text) or _COMPACT_DATE.match(text)
    if match is None:
        raise ValueError(f"unsupported date {text!r}, expected YYYY-MM-DD or YYYYMMDD")
    year, month, day = (int(part) for part in match.groups())
    return date(year, month, day)


class SiteBookPayload(BaseModel):
    """One book as a site reports it; unknown keys are kept as extras."""

    model_config = ConfigDict(extra="allow", populate_by_name=True, str_strip_whitespace=True)

    title: str = Field(validation_alias=AliasChoices("title", "name", "itemName"))
    publisher: str = Field(
        validation_alias=AliasChoices("publisher", "publisherText", "publisherName")
    )
    publisher_name: str | None = Field(
        default=None,
        validation_alias=AliasChoices("publisher_name", "canonicalPublisher"),
    )
    isbn: str | None = Field(
        default=None, validation_alias=AliasChoices("isbn", "isbn13", "ean")
    )
    series_name: str | None = Field(
        default=None, validation_alias=AliasChoices("series_name", "series", "seriesName")
    )
    series_isbn: str | None = Field(
        default=None, validation_alias=AliasChoices("series_isbn", "seriesIsbn")
    )
    scheduled_pub_date: date | None = Field(
        default=None,
        validation_alias=AliasChoices("scheduled_pub_date", "pubDate", "releaseDate"),
    )
    actual_pub_date: date | None = Field(
        default=None,
        validation_alias=AliasChoices("actual_pub_date", "salesDate", "actualPubDate"),
    )

    KNOWN_KEYS: ClassVar[frozenset[str]] = frozenset(
        {
            "title",
            "name",
            "itemName",
            "publisher",
            "publisherText",
            "publisherName",
            "publisher_name",
            "canonicalPublisher",
            "isbn",
            "isbn13",
            "ean",
            "series_name",
            "series",
            "seriesName",
            "series_isbn",
            "seriesIsbn",
            "scheduled_pub_date",
            "pubDate",
            "releaseDate",
            "actual_pub_date",
            "salesDate",
            "actualPubDate",
        }
    )

    _normalize_optional = field_validator(
        "publisher_name", "series_name", mode="before"
    )(_blank_to_none)
    _normalize_codes = field_validator("isbn", "series_isbn", mode="before")(_stringify_number)
    _normalize_dates = field_validator(
        "scheduled_pub_date", "actual_pub_date", mode="before"
    )(_parse_date)

    @property
    def extras(self) -> Mapping[str, object]:
        return self.model_extra or {}


type SiteBookPayloadInput = SiteBookPayload | Mapping[str, object]
