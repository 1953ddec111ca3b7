"""SQLAlchemy adapter package for the book catalog."""

from __future__ import annotations

from .mappings import create_all_tables, mapper_registry, start_mappers
from .repositories import (
    SqlAlchemyBookRepository,
    SqlAlchemyOriginFilterRepository,
    SqlAlchemyPublisherKeywordRepository,
    SqlAlchemyPublisherRepository,
    SqlAlchemySeriesRepository,
)
from .unit_of_work import (
    SqlAlchemyCatalogUnitOfWork,
    StartupError,
    configured_engine,
    is_started,
    shutdown,
    startup,
)

__all__ = [
    "SqlAlchemyBookRepository",
    "SqlAlchemyCatalogUnitOfWork",
    "SqlAlchemyOriginFilterRepository",
    "SqlAlchemyPublisherKeywordRepository",
    "SqlAlchemyPublisherRepository",
    "SqlAlchemySeriesRepository",
    "StartupError",
    "configured_engine",
    "create_all_tables",
    "is_started",
    "mapper_registry",
    "shutdown",
    "start_mappers",
    "startup",
]
