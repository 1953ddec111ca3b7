"""Inputs and outcomes of identity reconciliation."""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING

from bookcatalog.domain.errors import DeadlineExceededError, ValidationError
from bookcatalog.domain.model import normalize_optional_isbn

if TYPE_CHECKING:
    from datetime import date

    from bookcatalog.domain.errors import CatalogError
    from bookcatalog.domain.model import Candidate, PropertyName, Site

TITLE_PROPERTY = "title"
PUBLISHER_PROPERTY = "publisherText"
ISBN_PROPERTY = "isbn"


def _empty_properties() -> dict[PropertyName, str]:
    return {}


@dataclass(frozen=True, slots=True, kw_only=True)
class RawBookRecord:
    """One book observation as produced by an upstream site adapter.

    ``properties`` holds whatever else the site reported; filters may inspect any
    of them and they are stored as the book's origin data for ``site``.
    """

    site: Site
    title: str
    publisher_keyword: str
    isbn: str | None = None
    publisher_name: str | None = None
    series_name: str | None = None
    series_isbn: str | None = None
    scheduled_pub_date: date | None = None
    actual_pub_date: date | None = None
    properties: dict[PropertyName, str] = field(default_factory=_empty_properties)

    @property
    def has_series(self) -> bool:
        return bool(self.series_name or self.series_isbn)

    def candidate(self) -> Candidate:
        """Property mapping seen by the origin filters."""
        candidate: Candidate = dict(self.properties)
        candidate[TITLE_PROPERTY] = self.title
        candidate[PUBLISHER_PROPERTY] = self.publisher_keyword
        if self.isbn:
            candidate[ISBN_PROPERTY] = self.isbn
        return candidate

    def validated(self, *, require_isbn: bool) -> RawBookRecord:
        """Return a copy with normalised identifiers; raises ``ValidationError``."""
        if not self.site.strip():
            raise ValidationError("record has no site")
        title = self.title.strip()
        if not title:
            raise ValidationError(f"record from {self.site} has a blank title")
        if not self.publisher_keyword.strip():
            raise ValidationError(f"record {title!r} from {self.site} has no publisher")
        isbn = normalize_optional_isbn(self.isbn)
        if isbn is None and require_isbn:
            raise ValidationError(f"record {title!r} from {self.site} has no ISBN")
        series_name = (self.series_name or "").strip() or None
        return replace(
            self,
            title=title,
            isbn=isbn,
            publisher_name=(self.publisher_name or "").strip() or None,
            series_name=series_name,
            series_isbn=normalize_optional_isbn(self.series_isbn),
        )


@dataclass(frozen=True, slots=True)
class Admitted:
    book_id: int
    publisher_id: int
    series_id: int | None
    created: bool
    updated: bool = False


@dataclass(frozen=True, slots=True)
class Rejected:
    """Normal outcome: the site's filters did not admit the record."""

    site: Site
    reason: str
    matched_leaves: frozenset[int] = frozenset()


type IngestOutcome = Admitted | Rejected


@dataclass(slots=True)
class IngestReport:
    """Summary of a batch ingestion."""

    created: list[int] = field(default_factory=list[int])
    updated: list[int] = field(default_factory=list[int])
    unchanged: list[int] = field(default_factory=list[int])
    rejected: list[RawBookRecord] = field(default_factory=list["RawBookRecord"])
    failed: list[tuple[RawBookRecord, CatalogError]] = field(
        default_factory=list[tuple["RawBookRecord", "CatalogError"]]
    )
    # inputs that never became a record, e.g. unparseable payloads
    invalid: list[CatalogError] = field(default_factory=list["CatalogError"])

    @property
    def admitted(self) -> int:
        return len(self.created) + len(self.updated) + len(self.unchanged)

    def record(self, record: RawBookRecord, outcome: IngestOutcome) -> None:
        match outcome:
            case Rejected():
                self.rejected.append(record)
            case Admitted(created=True):
                self.created.append(outcome.book_id)
            case Admitted(updated=True):
                self.updated.append(outcome.book_id)
            case Admitted():
                self.unchanged.append(outcome.book_id)


@dataclass(frozen=True, slots=True)
class Deadline:
    """Point on the monotonic clock after which ingestion must give up."""

    expires_at: float | None = None
    clock: Callable[[], float] = time.monotonic

    @classmethod
    def after(cls, seconds: float, *, clock: Callable[[], float] = time.monotonic) -> Deadline:
        return cls(expires_at=clock() + seconds, clock=clock)

    @classmethod
    def never(cls) -> Deadline:
        return cls()

    @property
    def expired(self) -> bool:
        return self.expires_at is not None and self.clock() >= self.expires_at

    def check(self, stage: str) -> None:
        if self.expired:
            raise DeadlineExceededError(f"deadline exceeded before {stage}")
