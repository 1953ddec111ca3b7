"""SQLAlchemy mapping metadata for the catalog domain model."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from functools import cache
from typing import TYPE_CHECKING

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    Column,
    Date,
    DateTime,
    Dialect,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    TypeDecorator,
    UniqueConstraint,
    func,
    orm,
)
from sqlalchemy.orm import configure_mappers, relationship

from bookcatalog.domain.model import (
    Book,
    BookOriginData,
    OriginFilter,
    Publisher,
    PublisherKeyword,
    Series,
    utcnow,
)

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)

# SQLite only autoincrements INTEGER PRIMARY KEY columns
IdColumnType = BigInteger().with_variant(Integer(), "sqlite")


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

# Catalog tables ----------------------------------------------------------------

publisher_table = Table(
    "publisher",
    mapper_registry.metadata,
    Column("id", IdColumnType, primary_key=True, autoincrement=True),
    Column("name", String(128), nullable=False),
    Index("ix_publisher_name", "name"),
)

publisher_keyword_table = Table(
    "publisher_keyword",
    mapper_registry.metadata,
    Column(
        "publisher_id",
        IdColumnType,
        ForeignKey("publisher.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column("site", String(32), primary_key=True),
    Column("keyword", String(256), primary_key=True),
    # one publisher per (site, keyword)
    UniqueConstraint("site", "keyword", name="uq_publisher_keyword_site_keyword"),
)

series_table = Table(
    "series",
    mapper_registry.metadata,
    Column("id", IdColumnType, primary_key=True, autoincrement=True),
    Column("name", String(512), nullable=True),
    Column("isbn", String(13), nullable=True, unique=True),
    # reserved for title similarity search, never read by the catalog
    Column("main_title_vec", JSON, nullable=True),
    Column(
        "registered_at",
        UTCDateTime(),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
    ),
    Column("modified_at", UTCDateTime(), nullable=True),
    Index("ix_series_name", "name"),
)

book_table = Table(
    "book",
    mapper_registry.metadata,
    Column("id", IdColumnType, primary_key=True, autoincrement=True),
    Column("isbn", String(13), nullable=True, unique=True),
    Column("title", String(512), nullable=False),
    Column("publisher_id", IdColumnType, ForeignKey("publisher.id"), nullable=False),
    Column("series_id", IdColumnType, ForeignKey("series.id"), nullable=True),
    Column("scheduled_pub_date", Date, nullable=True),
    Column("actual_pub_date", Date, nullable=True),
    Column(
        "registered_at",
        UTCDateTime(),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
    ),
    Column("modified_at", UTCDateTime(), nullable=True),
    Index("ix_book_title_publisher", "title", "publisher_id"),
)

# books without an ISBN are identified by title and publisher
Index(
    "uq_book_title_publisher_without_isbn",
    book_table.c.title,
    book_table.c.publisher_id,
    unique=True,
    sqlite_where=book_table.c.isbn.is_(None),
    postgresql_where=book_table.c.isbn.is_(None),
)

book_origin_data_table = Table(
    "book_origin_data",
    mapper_registry.metadata,
    Column(
        "book_id",
        IdColumnType,
        ForeignKey("book.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column("site", String(32), primary_key=True),
    Column("property", String(64), key="property_name", primary_key=True),
    Column("val", String, key="value", nullable=True),
)

book_origin_filter_table = Table(
    "book_origin_filter",
    mapper_registry.metadata,
    Column("id", IdColumnType, primary_key=True, autoincrement=True),
    Column("name", String(64), nullable=False),
    Column("site", String(32), nullable=False),
    Column("is_root", Boolean, nullable=False, default=False),
    Column("operator_type", String(32), nullable=True),
    Column("property_name", String(32), nullable=True),
    Column("regex", String(256), nullable=True),
    Column("parent_id", IdColumnType, ForeignKey("book_origin_filter.id"), nullable=True),
    Index("ix_book_origin_filter_site", "site"),
)


@cache
def start_mappers() -> orm.registry:
    """Configure SQLAlchemy mappers for the domain model."""

    log.info("Starting SQLAlchemy mappers")

    mapper_registry.map_imperatively(
        PublisherKeyword,
        publisher_keyword_table,
    )

    mapper_registry.map_imperatively(
        Publisher,
        publisher_table,
        properties={
            "_keywords": relationship(
                PublisherKeyword,
                cascade="all, delete-orphan",
                order_by=publisher_keyword_table.c.keyword,
            ),
        },
    )

    mapper_registry.map_imperatively(
        Series,
        series_table,
        exclude_properties={"main_title_vec"},
    )

    mapper_registry.map_imperatively(
        BookOriginData,
        book_origin_data_table,
    )

    mapper_registry.map_imperatively(
        Book,
        book_table,
        properties={
            "_origin_data": relationship(
                BookOriginData,
                cascade="all, delete-orphan",
            ),
        },
    )

    mapper_registry.map_imperatively(
        OriginFilter,
        book_origin_filter_table,
    )

    configure_mappers()
    return mapper_registry


def create_all_tables(engine: Engine) -> None:
    """Create database tables for the mapped metadata."""

    log.info("Creating all tables")
    mapper_registry.metadata.create_all(engine)
