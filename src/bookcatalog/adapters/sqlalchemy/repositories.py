"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from bookcatalog.adapters.sqlalchemy.mappings import (
    book_origin_filter_table,
    book_table,
    publisher_keyword_table,
    publisher_table,
    series_table,
)
from bookcatalog.domain.errors import ConflictError, NotFoundError
from bookcatalog.domain.model import (
    Book,
    OriginFilter,
    Publisher,
    PublisherKeyword,
    Series,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from sqlalchemy.orm import Session

    from bookcatalog.domain.model import Isbn, Site

log = logging.getLogger(__name__)


class _SqlAlchemyRepository[TEntity]:
    """Shared ``add``: stage, flush and translate constraint violations."""

    def __init__(self, session: Session, entity_cls: type[TEntity]) -> None:
        self.session = session
        self._entity_cls = entity_cls

    def add(self, entity: TEntity) -> None:
        self.session.add(entity)
        try:
            self.session.flush()
        except IntegrityError as exc:
            log.debug("Flush of %s rejected: %s", self._entity_cls.__name__, exc.orig)
            raise ConflictError(
                f"{self._entity_cls.__name__} violates a uniqueness constraint"
            ) from exc

    def _get(self, entity_id: int) -> TEntity:
        entity = self.session.get(self._entity_cls, entity_id)
        if entity is None:
            raise NotFoundError(f"{self._entity_cls.__name__} {entity_id} does not exist")
        return entity


class SqlAlchemyPublisherRepository(_SqlAlchemyRepository[Publisher]):
    def __init__(self, session: Session) -> None:
        super().__init__(session, Publisher)

    def get(self, publisher_id: int) -> Publisher:
        return self._get(publisher_id)

    def find_by_name(self, name: str) -> Publisher | None:
        stmt = (
            select(Publisher)
            .where(publisher_table.c.name == name)
            .order_by(publisher_table.c.id)
            .limit(1)
        )
        return self.session.execute(stmt).scalars().first()

    def list_with_keywords(self, site: Site | None = None) -> Sequence[Publisher]:
        owners = select(publisher_keyword_table.c.publisher_id)
        if site is not None:
            owners = owners.where(publisher_keyword_table.c.site == site)
        stmt = (
            select(Publisher)
            .where(publisher_table.c.id.in_(owners))
            .order_by(publisher_table.c.id)
        )
        return self.session.execute(stmt).scalars().all()


class SqlAlchemyPublisherKeywordRepository(_SqlAlchemyRepository[PublisherKeyword]):
    def __init__(self, session: Session) -> None:
        super().__init__(session, PublisherKeyword)

    def add(self, entity: PublisherKeyword) -> None:
        # keep the owning aggregate's collection in step when it is loaded
        publisher = self.session.get(Publisher, entity.publisher_id)
        if publisher is not None:
            publisher._keywords.append(entity)  # noqa: SLF001  # pyright: ignore[reportPrivateUsage]
        super().add(entity)

    def find(self, site: Site, keyword: str) -> PublisherKeyword | None:
        stmt = (
            select(PublisherKeyword)
            .where(publisher_keyword_table.c.site == site)
            .where(publisher_keyword_table.c.keyword == keyword)
            .limit(1)
        )
        return self.session.execute(stmt).scalars().first()

    def keywords_for(self, publisher_id: int, site: Site) -> tuple[str, ...]:
        stmt = (
            select(publisher_keyword_table.c.keyword)
            .where(publisher_keyword_table.c.publisher_id == publisher_id)
            .where(publisher_keyword_table.c.site == site)
            .order_by(publisher_keyword_table.c.keyword)
        )
        return tuple(self.session.execute(stmt).scalars().all())


class SqlAlchemySeriesRepository(_SqlAlchemyRepository[Series]):
    def __init__(self, session: Session) -> None:
        super().__init__(session, Series)

    def get(self, series_id: int) -> Series:
        return self._get(series_id)

    def find_by_isbn(self, isbn: Isbn) -> Series | None:
        stmt = select(Series).where(series_table.c.isbn == isbn).limit(1)
        return self.session.execute(stmt).scalars().first()

    def find_by_name(self, name: str) -> Series | None:
        stmt = (
            select(Series)
            .where(series_table.c.name == name)
            .order_by(series_table.c.id)
            .limit(1)
        )
        return self.session.execute(stmt).scalars().first()


class SqlAlchemyBookRepository(_SqlAlchemyRepository[Book]):
    def __init__(self, session: Session) -> None:
        super().__init__(session, Book)

    def get(self, book_id: int) -> Book:
        return self._get(book_id)

    def find_by_isbn(self, isbn: Isbn) -> Book | None:
        stmt = select(Book).where(book_table.c.isbn == isbn).limit(1)
        return self.session.execute(stmt).scalars().first()

    def find_many_by_isbn(self, isbns: Iterable[Isbn]) -> dict[Isbn, Book]:
        wanted = sorted({isbn for isbn in isbns if isbn})
        if not wanted:
            return {}
        stmt = select(Book).where(book_table.c.isbn.in_(wanted))
        books = self.session.execute(stmt).scalars().all()
        return {book.isbn: book for book in books if book.isbn is not None}

    def find_by_title_and_publisher(self, title: str, publisher_id: int) -> Book | None:
        stmt = (
            select(Book)
            .where(book_table.c.title == title)
            .where(book_table.c.publisher_id == publisher_id)
            .order_by(book_table.c.id)
            .limit(1)
        )
        return self.session.execute(stmt).scalars().first()


class SqlAlchemyOriginFilterRepository(_SqlAlchemyRepository[OriginFilter]):
    def __init__(self, session: Session) -> None:
        super().__init__(session, OriginFilter)

    def list_all(self) -> Sequence[OriginFilter]:
        stmt = select(OriginFilter).order_by(book_origin_filter_table.c.id)
        return self.session.execute(stmt).scalars().all()

    def list_for_site(self, site: Site) -> Sequence[OriginFilter]:
        stmt = (
            select(OriginFilter)
            .where(book_origin_filter_table.c.site == site)
            .order_by(book_origin_filter_table.c.id)
        )
        return self.session.execute(stmt).scalars().all()

    def list_sites(self) -> tuple[Site, ...]:
        stmt = (
            select(book_origin_filter_table.c.site)
            .distinct()
            .order_by(book_origin_filter_table.c.site)
        )
        return tuple(self.session.execute(stmt).scalars().all())


if TYPE_CHECKING:
    from bookcatalog.domain.ports import (
        BookRepository,
        OriginFilterRepository,
        PublisherKeywordRepository,
        PublisherRepository,
        SeriesRepository,
    )

    def _check_protocols(session: Session) -> None:
        _publishers: PublisherRepository = SqlAlchemyPublisherRepository(session)
        _keywords: PublisherKeywordRepository = SqlAlchemyPublisherKeywordRepository(session)
        _series: SeriesRepository = SqlAlchemySeriesRepository(session)
        _books: BookRepository = SqlAlchemyBookRepository(session)
        _filters: OriginFilterRepository = SqlAlchemyOriginFilterRepository(session)
