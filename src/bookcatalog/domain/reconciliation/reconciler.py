"""Identity reconciliation: admit, resolve and persist one raw book record.

Flow per record:
1) admission gate (site filter forest)
2) publisher via keyword, then exact name, else created and bound
3) series via ISBN, then name, else created
4) book via ISBN (or title + publisher when the record has no ISBN), else created
5) origin data of the site replaced, commit

Steps 2-5 share one unit of work. A ``ConflictError`` from a concurrent writer
rolls everything back and the whole resolution runs once more against fresh
state; a second conflict propagates.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from bookcatalog.domain.errors import CatalogError, ConflictError
from bookcatalog.domain.keywords import KeywordResolver
from bookcatalog.domain.model import Book, KeywordMatch, Publisher, Series, utcnow

from .contracts import Admitted, Deadline, IngestReport, Rejected

if TYPE_CHECKING:
    from collections.abc import Iterable
    from datetime import datetime

    from bookcatalog.domain.filtering import OriginFilterEvaluator
    from bookcatalog.domain.ports import CatalogRepositories, CatalogUnitOfWork

    from .contracts import IngestOutcome, RawBookRecord

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ReconcilePolicy:
    keyword_match: KeywordMatch = KeywordMatch.EXACT
    require_isbn: bool = True
    conflict_retries: int = 1
    timeout_seconds: float | None = None


@dataclass(slots=True)
class _BookResolution:
    book: Book
    created: bool
    updated: bool


@dataclass(slots=True)
class IdentityReconciler:
    """Orchestrates ingestion of raw records into the canonical catalog."""

    unit_of_work_factory: Callable[[], CatalogUnitOfWork]
    evaluator: OriginFilterEvaluator
    policy: ReconcilePolicy = field(default_factory=ReconcilePolicy)
    clock: Callable[[], datetime] = utcnow

    def ingest(self, record: RawBookRecord, *, deadline: Deadline | None = None) -> IngestOutcome:
        """Ingest ``record`` and return the admitted book id or a rejection.

        Raises ``ValidationError``, ``MalformedFilterError``, ``ConflictError`` (after
        the retry), ``DeadlineExceededError`` and ``NotFoundError`` untouched.
        """

        effective_deadline = deadline or self._default_deadline()
        record = record.validated(require_isbn=self.policy.require_isbn)

        decision = self.evaluator.decide(record.site, record.candidate())
        if not decision.admitted:
            log.info(
                "Rejected %r from %s (%s)", record.title, record.site, decision.reason
            )
            return Rejected(
                site=record.site,
                reason=decision.reason,
                matched_leaves=decision.matched_leaves,
            )

        attempt = 0
        while True:
            effective_deadline.check("catalog resolution")
            try:
                outcome = self._resolve_once(record, effective_deadline)
            except ConflictError as exc:
                if attempt >= self.policy.conflict_retries:
                    raise
                attempt += 1
                log.warning(
                    "Conflict while ingesting %r from %s, re-resolving (%s)",
                    record.title,
                    record.site,
                    exc,
                )
                continue
            log.info(
                "Ingested %r from %s: book=%s created=%s updated=%s",
                record.title,
                record.site,
                outcome.book_id,
                outcome.created,
                outcome.updated,
            )
            return outcome

    def ingest_many(
        self,
        records: Iterable[RawBookRecord],
        *,
        timeout_seconds: float | None = None,
        report: IngestReport | None = None,
    ) -> IngestReport:
        """Ingest records independently; catalog errors are counted, not raised.

        Outcomes are added to ``report`` when one is passed in.
        """

        report = report if report is not None else IngestReport()
        for record in records:
            deadline = Deadline.after(timeout_seconds) if timeout_seconds is not None else None
            try:
                outcome = self.ingest(record, deadline=deadline)
            except CatalogError as exc:
                log.exception("Failed to ingest %r from %s", record.title, record.site)
                report.failed.append((record, exc))
                continue
            report.record(record, outcome)

        log.info(
            "Batch finished: created=%d updated=%d unchanged=%d "
            "rejected=%d failed=%d invalid=%d",
            len(report.created),
            len(report.updated),
            len(report.unchanged),
            len(report.rejected),
            len(report.failed),
            len(report.invalid),
        )
        return report

    def _default_deadline(self) -> Deadline:
        if self.policy.timeout_seconds is None:
            return Deadline.never()
        return Deadline.after(self.policy.timeout_seconds)

    def _resolve_once(self, record: RawBookRecord, deadline: Deadline) -> Admitted:
        now = self.clock()
        with self.unit_of_work_factory() as uow:
            repositories = uow.repositories

            deadline.check("publisher resolution")
            publisher_id = self._resolve_publisher(repositories, record)

            deadline.check("series resolution")
            series_id = self._resolve_series(repositories, record, now)

            deadline.check("book resolution")
            resolution = self._resolve_book(repositories, record, publisher_id, series_id, now)

            deadline.check("commit")
            uow.commit()
            return Admitted(
                book_id=resolution.book.require_id(),
                publisher_id=publisher_id,
                series_id=resolution.book.series_id,
                created=resolution.created,
                updated=resolution.updated,
            )

    def _resolve_publisher(self, repositories: CatalogRepositories, record: RawBookRecord) -> int:
        resolver = KeywordResolver(repositories, match=self.policy.keyword_match)
        publisher_id = resolver.resolve(record.site, record.publisher_keyword)
        if publisher_id is not None:
            return publisher_id

        name = (record.publisher_name or record.publisher_keyword).strip()
        publisher = repositories.publishers.find_by_name(name)
        if publisher is None:
            publisher = Publisher(name=name)
            repositories.publishers.add(publisher)
            log.info("Created publisher %r (id=%s)", name, publisher.id)
        else:
            log.debug("Publisher %r matched by name (id=%s)", name, publisher.id)

        publisher_id = publisher.require_id()
        resolver.bind(record.site, record.publisher_keyword, publisher_id)
        return publisher_id

    def _resolve_series(
        self,
        repositories: CatalogRepositories,
        record: RawBookRecord,
        now: datetime,
    ) -> int | None:
        if not record.has_series:
            return None

        series: Series | None = None
        if record.series_isbn is not None:
            series = repositories.series.find_by_isbn(record.series_isbn)
        if series is None and record.series_name is not None:
            series = repositories.series.find_by_name(record.series_name)

        if series is None:
            series = Series(name=record.series_name, isbn=record.series_isbn, registered_at=now)
            repositories.series.add(series)
            log.info("Created series %r (id=%s)", series.name or series.isbn, series.id)
        elif series.fill_missing(name=record.series_name, isbn=record.series_isbn):
            series.modified_at = now
        return series.require_id()

    def _resolve_book(
        self,
        repositories: CatalogRepositories,
        record: RawBookRecord,
        publisher_id: int,
        series_id: int | None,
        now: datetime,
    ) -> _BookResolution:
        if record.isbn is not None:
            book = repositories.books.find_by_isbn(record.isbn)
        else:
            book = repositories.books.find_by_title_and_publisher(record.title, publisher_id)

        if book is None:
            book = Book(
                title=record.title,
                publisher_id=publisher_id,
                isbn=record.isbn,
                series_id=series_id,
                scheduled_pub_date=record.scheduled_pub_date,
                actual_pub_date=record.actual_pub_date,
                registered_at=now,
            )
            book.replace_origin_data(record.site, record.candidate())
            repositories.books.add(book)
            return _BookResolution(book=book, created=True, updated=False)

        changed = book.merge(
            title=record.title,
            scheduled_pub_date=record.scheduled_pub_date,
            actual_pub_date=record.actual_pub_date,
            series_id=series_id,
        )
        if book.replace_origin_data(record.site, record.candidate()):
            changed = True
        if changed:
            book.touch(now)
        return _BookResolution(book=book, created=False, updated=changed)
