"""Domain port definitions for adapters."""

from __future__ import annotations

from .persistence import (
    BookRepository,
    OriginFilterRepository,
    PublisherKeywordRepository,
    PublisherRepository,
    Repository,
    SeriesRepository,
)
from .unit_of_work import (
    CatalogRepositories,
    CatalogUnitOfWork,
    RepositoryCollection,
    UnitOfWork,
)

__all__ = [
    "BookRepository",
    "CatalogRepositories",
    "CatalogUnitOfWork",
    "OriginFilterRepository",
    "PublisherKeywordRepository",
    "PublisherRepository",
    "Repository",
    "RepositoryCollection",
    "SeriesRepository",
    "UnitOfWork",
]
