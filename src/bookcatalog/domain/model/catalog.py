"""Catalog entities: publishers, their per-site keywords, series and books.

Aggregate roots here:
- Publisher owns PublisherKeyword rows
- Book owns BookOriginData rows (one set per site)

References between roots are plain ids; nothing in this module talks to storage.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from bookcatalog.domain.model.entity import Entity

if TYPE_CHECKING:
    from collections.abc import Mapping
    from datetime import date, datetime

    from bookcatalog.domain.model.primitives import Isbn, PropertyName, Site


@dataclass(eq=False, kw_only=True)
class PublisherKeyword:
    """Free-text publisher mention on ``site`` that resolves to ``publisher_id``."""

    publisher_id: int
    site: Site
    keyword: str


@dataclass(eq=False, kw_only=True)
class Publisher(Entity):
    name: str

    _keywords: list[PublisherKeyword] = field(
        default_factory=list["PublisherKeyword"], repr=False
    )

    @property
    def keywords(self) -> tuple[PublisherKeyword, ...]:
        return tuple(self._keywords)

    def keywords_for(self, site: Site) -> tuple[str, ...]:
        return tuple(k.keyword for k in self._keywords if k.site == site)

    def keywords_by_site(self) -> dict[Site, tuple[str, ...]]:
        by_site: dict[Site, list[str]] = {}
        for k in self._keywords:
            by_site.setdefault(k.site, []).append(k.keyword)
        return {site: tuple(words) for site, words in by_site.items()}


@dataclass(eq=False, kw_only=True)
class Series(Entity):
    name: str | None = None
    isbn: Isbn | None = None
    registered_at: datetime | None = None
    modified_at: datetime | None = None

    def fill_missing(self, *, name: str | None, isbn: Isbn | None) -> bool:
        """Complete absent identity fields; never overwrites known values."""
        changed = False
        if name and self.name is None:
            self.name = name
            changed = True
        if isbn and self.isbn is None:
            self.isbn = isbn
            changed = True
        return changed


@dataclass(eq=False, kw_only=True)
class BookOriginData:
    """Raw value ``site`` reported for one property of a book."""

    site: Site
    property_name: PropertyName
    value: str | None
    book_id: int | None = None


@dataclass(eq=False, kw_only=True)
class Book(Entity):
    title: str
    publisher_id: int
    isbn: Isbn | None = None
    series_id: int | None = None
    scheduled_pub_date: date | None = None
    actual_pub_date: date | None = None
    registered_at: datetime | None = None
    modified_at: datetime | None = None

    _origin_data: list[BookOriginData] = field(
        default_factory=list["BookOriginData"], repr=False
    )

    @property
    def origin_data(self) -> tuple[BookOriginData, ...]:
        return tuple(self._origin_data)

    def origin_for(self, site: Site) -> dict[PropertyName, str | None]:
        return {o.property_name: o.value for o in self._origin_data if o.site == site}

    def merge(
        self,
        *,
        title: str | None = None,
        scheduled_pub_date: date | None = None,
        actual_pub_date: date | None = None,
        series_id: int | None = None,
    ) -> bool:
        """Apply an incoming observation of this book.

        Absent values never clear stored ones. Returns whether anything changed.
        """
        changed = False
        if title and title != self.title:
            self.title = title
            changed = True
        if scheduled_pub_date is not None and scheduled_pub_date != self.scheduled_pub_date:
            self.scheduled_pub_date = scheduled_pub_date
            changed = True
        if actual_pub_date is not None and actual_pub_date != self.actual_pub_date:
            self.actual_pub_date = actual_pub_date
            changed = True
        if series_id is not None and series_id != self.series_id:
            self.series_id = series_id
            changed = True
        return changed

    def replace_origin_data(self, site: Site, properties: Mapping[PropertyName, str]) -> bool:
        """Make the stored origin data of ``site`` equal ``properties``.

        Rows are updated in place so the (book, site, property) key is never
        deleted and re-inserted within one flush.
        """
        changed = False
        existing = {o.property_name: o for o in self._origin_data if o.site == site}
        for name, row in existing.items():
            if name not in properties:
                self._origin_data.remove(row)
                changed = True
        for name, value in properties.items():
            row = existing.get(name)
            if row is None:
                self._origin_data.append(
                    BookOriginData(site=site, property_name=name, value=value, book_id=self.id)
                )
                changed = True
            elif row.value != value:
                row.value = value
                changed = True
        return changed

    def touch(self, now: datetime) -> None:
        self.modified_at = now
