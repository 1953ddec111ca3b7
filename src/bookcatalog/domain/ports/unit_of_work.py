"""Unit-of-work abstractions for coordinating repositories."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from types import TracebackType

    from bookcatalog.domain.ports.persistence import (
        BookRepository,
        OriginFilterRepository,
        PublisherKeywordRepository,
        PublisherRepository,
        SeriesRepository,
    )


@runtime_checkable
class RepositoryCollection(Protocol):
    """Marker protocol for groups of repositories managed together."""


@runtime_checkable
class UnitOfWork[TRepositories: RepositoryCollection](Protocol):
    """Generic unit-of-work boundary around a repository collection.

    Leaving the block with an exception rolls back; nothing is committed implicitly.
    """

    @property
    def repositories(self) -> TRepositories: ...

    def __enter__(self) -> UnitOfWork[TRepositories]: ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> bool: ...

    def commit(self) -> None:
        """Commit the transaction; raises ``ConflictError`` on a uniqueness violation."""
        ...

    def rollback(self) -> None: ...


@dataclass(slots=True)
class CatalogRepositories(RepositoryCollection):
    """Repositories taking part in one catalog transaction."""

    publishers: PublisherRepository
    publisher_keywords: PublisherKeywordRepository
    series: SeriesRepository
    books: BookRepository
    origin_filters: OriginFilterRepository


type CatalogUnitOfWork = UnitOfWork[CatalogRepositories]
