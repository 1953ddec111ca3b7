"""Ports for persisting catalog aggregates.

Every ``add`` makes the row visible to later reads in the same unit of work and
raises ``ConflictError`` when a uniqueness constraint rejects it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from bookcatalog.domain.model import (
    Book,
    OriginFilter,
    Publisher,
    PublisherKeyword,
    Series,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from bookcatalog.domain.model import Isbn, Site


@runtime_checkable
class Repository[TEntity](Protocol):
    """Minimal repository contract for a persistent aggregate store."""

    def add(self, entity: TEntity) -> None: ...


@runtime_checkable
class PublisherRepository(Repository[Publisher], Protocol):
    """Persistence contract for publishers."""

    def get(self, publisher_id: int) -> Publisher:
        """Return the publisher or raise ``NotFoundError``."""
        ...

    def find_by_name(self, name: str) -> Publisher | None: ...

    def list_with_keywords(self, site: Site | None = None) -> Sequence[Publisher]:
        """Publishers having at least one keyword (on ``site`` when given)."""
        ...


@runtime_checkable
class PublisherKeywordRepository(Repository[PublisherKeyword], Protocol):
    """Persistence contract for the (site, keyword) -> publisher lookup table."""

    def find(self, site: Site, keyword: str) -> PublisherKeyword | None: ...

    def keywords_for(self, publisher_id: int, site: Site) -> tuple[str, ...]: ...


@runtime_checkable
class SeriesRepository(Repository[Series], Protocol):
    """Persistence contract for book series."""

    def get(self, series_id: int) -> Series: ...

    def find_by_isbn(self, isbn: Isbn) -> Series | None: ...

    def find_by_name(self, name: str) -> Series | None: ...


@runtime_checkable
class BookRepository(Repository[Book], Protocol):
    """Persistence contract for books."""

    def get(self, book_id: int) -> Book: ...

    def find_by_isbn(self, isbn: Isbn) -> Book | None: ...

    def find_many_by_isbn(self, isbns: Iterable[Isbn]) -> dict[Isbn, Book]: ...

    def find_by_title_and_publisher(self, title: str, publisher_id: int) -> Book | None: ...


@runtime_checkable
class OriginFilterRepository(Repository[OriginFilter], Protocol):
    """Read-mostly access to the administrative filter rows."""

    def list_all(self) -> Sequence[OriginFilter]: ...

    def list_for_site(self, site: Site) -> Sequence[OriginFilter]: ...

    def list_sites(self) -> tuple[Site, ...]: ...
