"""Public domain model surface."""

from __future__ import annotations

from bookcatalog.domain.model.catalog import (
    Book,
    BookOriginData,
    Publisher,
    PublisherKeyword,
    Series,
)
from bookcatalog.domain.model.entity import Entity
from bookcatalog.domain.model.enums import FilterOperator, KeywordMatch, RegexMode
from bookcatalog.domain.model.filters import OriginFilter
from bookcatalog.domain.model.primitives import (
    Candidate,
    Isbn,
    PropertyName,
    Site,
    normalize_isbn,
    normalize_optional_isbn,
    utcnow,
)

__all__ = [  # noqa: RUF022
    # base
    "Entity",
    # catalog
    "Publisher",
    "PublisherKeyword",
    "Series",
    "Book",
    "BookOriginData",
    # filters
    "OriginFilter",
    # enums
    "FilterOperator",
    "KeywordMatch",
    "RegexMode",
    # primitives
    "Candidate",
    "Isbn",
    "PropertyName",
    "Site",
    "normalize_isbn",
    "normalize_optional_isbn",
    "utcnow",
]
