"""End-to-end identity reconciliation against the SQLite-backed store."""

from __future__ import annotations

from datetime import UTC, date, datetime
from typing import TYPE_CHECKING

import pytest

from bookcatalog.domain.errors import (
    DeadlineExceededError,
    MalformedFilterError,
    ValidationError,
)
from bookcatalog.domain.model import Publisher
from bookcatalog.domain.reconciliation import (
    Admitted,
    Deadline,
    IdentityReconciler,
    ReconcilePolicy,
    Rejected,
)
from tests.helpers.catalog import (
    ISBN,
    ISBN10,
    OTHER_ISBN,
    SITE,
    acme_book_filters,
    make_evaluator,
    make_filter,
    make_record,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from bookcatalog.adapters.sqlalchemy.unit_of_work import SqlAlchemyCatalogUnitOfWork
    from bookcatalog.domain.model import OriginFilter

    UowFactory = Callable[[], SqlAlchemyCatalogUnitOfWork]

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=UTC)


def _reconciler(
    uow_factory: UowFactory,
    rows: Iterable[OriginFilter] = (),
    *,
    policy: ReconcilePolicy | None = None,
) -> IdentityReconciler:
    return IdentityReconciler(
        unit_of_work_factory=uow_factory,
        evaluator=make_evaluator(rows),
        policy=policy or ReconcilePolicy(),
        clock=lambda: NOW,
    )


class _StepClock:
    """Monotonic stand-in returning the given readings, then repeating the last."""

    def __init__(self, *readings: float) -> None:
        self._readings = list(readings)

    def __call__(self) -> float:
        if len(self._readings) > 1:
            return self._readings.pop(0)
        return self._readings[0]


def _count_books(uow_factory: UowFactory, *isbns: str) -> int:
    with uow_factory() as uow:
        return len(uow.repositories.books.find_many_by_isbn(isbns))


def test_admitted_record_creates_publisher_keyword_and_book(
    sqlite_unit_of_work: UowFactory,
) -> None:
    reconciler = _reconciler(sqlite_unit_of_work, acme_book_filters())
    record = make_record(
        "Book of Examples",
        publisher_name="Acme Publishing",
        scheduled_pub_date=date(2024, 7, 1),
        properties={"genre": "novel"},
    )

    outcome = reconciler.ingest(record)

    assert isinstance(outcome, Admitted)
    assert outcome.created
    with sqlite_unit_of_work() as uow:
        book = uow.repositories.books.get(outcome.book_id)
        publisher = uow.repositories.publishers.get(outcome.publisher_id)
        assert book.isbn == ISBN
        assert book.publisher_id == publisher.id
        assert book.scheduled_pub_date == date(2024, 7, 1)
        assert book.registered_at == NOW
        assert publisher.name == "Acme Publishing"
        assert uow.repositories.publisher_keywords.keywords_for(outcome.publisher_id, SITE) == (
            "Acme",
        )
        assert book.origin_for(SITE) == {
            "genre": "novel",
            "title": "Book of Examples",
            "publisherText": "Acme",
            "isbn": ISBN,
        }


def test_reingesting_updates_existing_book_in_place(sqlite_unit_of_work: UowFactory) -> None:
    reconciler = _reconciler(sqlite_unit_of_work)
    first = reconciler.ingest(make_record("Book of Examples"))

    second = reconciler.ingest(
        make_record("Book of Examples, Revised", actual_pub_date=date(2024, 8, 1))
    )
    third = reconciler.ingest(
        make_record("Book of Examples, Revised", actual_pub_date=date(2024, 8, 1))
    )

    assert isinstance(first, Admitted)
    assert isinstance(second, Admitted)
    assert isinstance(third, Admitted)
    assert second.book_id == first.book_id == third.book_id
    assert (second.created, second.updated) == (False, True)
    assert (third.created, third.updated) == (False, False)
    with sqlite_unit_of_work() as uow:
        book = uow.repositories.books.get(first.book_id)
        assert book.title == "Book of Examples, Revised"
        assert book.actual_pub_date == date(2024, 8, 1)
        assert book.modified_at == NOW


def test_isbn10_and_isbn13_resolve_to_same_book(sqlite_unit_of_work: UowFactory) -> None:
    reconciler = _reconciler(sqlite_unit_of_work)

    first = reconciler.ingest(make_record(isbn=ISBN10))
    second = reconciler.ingest(make_record(isbn=ISBN))

    assert isinstance(first, Admitted)
    assert isinstance(second, Admitted)
    assert first.book_id == second.book_id
    assert _count_books(sqlite_unit_of_work, ISBN) == 1


def test_rejected_record_writes_nothing(sqlite_unit_of_work: UowFactory) -> None:
    reconciler = _reconciler(sqlite_unit_of_work, acme_book_filters())

    outcome = reconciler.ingest(make_record("Other Title"))

    assert isinstance(outcome, Rejected)
    assert outcome.reason == "no_root_matched"
    assert outcome.matched_leaves == frozenset({3})
    with sqlite_unit_of_work() as uow:
        assert uow.repositories.books.find_by_isbn(ISBN) is None
        assert uow.repositories.publishers.find_by_name("Acme") is None


def test_malformed_filters_fail_closed(sqlite_unit_of_work: UowFactory) -> None:
    reconciler = _reconciler(
        sqlite_unit_of_work, [make_filter(1, is_root=True, operator="AND")]
    )

    with pytest.raises(MalformedFilterError):
        reconciler.ingest(make_record())

    assert _count_books(sqlite_unit_of_work, ISBN) == 0


def test_missing_isbn_is_rejected_by_default(sqlite_unit_of_work: UowFactory) -> None:
    reconciler = _reconciler(sqlite_unit_of_work)

    with pytest.raises(ValidationError, match="no ISBN"):
        reconciler.ingest(make_record(isbn=None))


@pytest.mark.parametrize(
    "record_kwargs",
    [{"title": "   "}, {"publisher_keyword": " "}, {"site": ""}, {"isbn": "123"}],
)
def test_invalid_records_raise_validation_error(
    sqlite_unit_of_work: UowFactory, record_kwargs: dict[str, str]
) -> None:
    reconciler = _reconciler(sqlite_unit_of_work)
    record = make_record()
    for key, value in record_kwargs.items():
        object.__setattr__(record, key, value)

    with pytest.raises(ValidationError):
        reconciler.ingest(record)


def test_records_without_isbn_match_on_title_and_publisher(
    sqlite_unit_of_work: UowFactory,
) -> None:
    reconciler = _reconciler(sqlite_unit_of_work, policy=ReconcilePolicy(require_isbn=False))

    first = reconciler.ingest(make_record("Untitled Zine", isbn=None))
    second = reconciler.ingest(make_record("Untitled Zine", isbn=None))
    other = reconciler.ingest(make_record("Untitled Zine", isbn=None, publisher_keyword="Globex"))

    assert isinstance(first, Admitted)
    assert isinstance(second, Admitted)
    assert isinstance(other, Admitted)
    assert first.book_id == second.book_id
    assert other.book_id != first.book_id


def test_keyword_reuses_publisher_across_records(sqlite_unit_of_work: UowFactory) -> None:
    reconciler = _reconciler(sqlite_unit_of_work)

    first = reconciler.ingest(make_record(publisher_name="Acme Publishing"))
    second = reconciler.ingest(
        make_record("Second Book", isbn=OTHER_ISBN, publisher_name="Somebody Else")
    )

    assert isinstance(first, Admitted)
    assert isinstance(second, Admitted)
    assert second.publisher_id == first.publisher_id


def test_publisher_name_match_binds_keyword_on_new_site(sqlite_unit_of_work: UowFactory) -> None:
    reconciler = _reconciler(sqlite_unit_of_work)

    first = reconciler.ingest(make_record(publisher_name="Acme Publishing"))
    second = reconciler.ingest(
        make_record(
            "Second Book",
            site="shopB",
            isbn=OTHER_ISBN,
            publisher_keyword="ACME PUB.",
            publisher_name="Acme Publishing",
        )
    )

    assert isinstance(first, Admitted)
    assert isinstance(second, Admitted)
    assert second.publisher_id == first.publisher_id
    with sqlite_unit_of_work() as uow:
        keywords = uow.repositories.publisher_keywords
        assert keywords.keywords_for(first.publisher_id, "shopB") == ("ACME PUB.",)


def test_blank_publisher_name_falls_back_to_keyword(sqlite_unit_of_work: UowFactory) -> None:
    reconciler = _reconciler(sqlite_unit_of_work)

    outcome = reconciler.ingest(make_record(publisher_name="   "))

    assert make_record(publisher_name="   ").validated(require_isbn=True).publisher_name is None
    assert isinstance(outcome, Admitted)
    with sqlite_unit_of_work() as uow:
        publisher = uow.repositories.publishers.get(outcome.publisher_id)
        assert publisher.name == "Acme"
        assert uow.repositories.publishers.find_by_name("") is None


def test_series_is_created_once_and_shared(sqlite_unit_of_work: UowFactory) -> None:
    reconciler = _reconciler(sqlite_unit_of_work)

    first = reconciler.ingest(make_record("Saga 1", series_name="Saga"))
    second = reconciler.ingest(make_record("Saga 2", isbn=OTHER_ISBN, series_name="Saga"))

    assert isinstance(first, Admitted)
    assert isinstance(second, Admitted)
    assert first.series_id is not None
    assert second.series_id == first.series_id


def test_series_isbn_completes_series_found_by_name(sqlite_unit_of_work: UowFactory) -> None:
    reconciler = _reconciler(sqlite_unit_of_work)
    first = reconciler.ingest(make_record("Saga 1", series_name="Saga"))

    second = reconciler.ingest(
        make_record("Saga 2", isbn=OTHER_ISBN, series_name="Saga", series_isbn="9781234567897")
    )

    assert isinstance(first, Admitted)
    assert isinstance(second, Admitted)
    assert second.series_id == first.series_id
    with sqlite_unit_of_work() as uow:
        assert second.series_id is not None
        series = uow.repositories.series.get(second.series_id)
        assert series.isbn == "9781234567897"
        assert series.modified_at == NOW


def test_expired_deadline_leaves_no_partial_writes(sqlite_unit_of_work: UowFactory) -> None:
    reconciler = _reconciler(sqlite_unit_of_work)
    # passes the first two checks, expires before series resolution
    deadline = Deadline(expires_at=5.0, clock=_StepClock(0.0, 0.0, 10.0))

    with pytest.raises(DeadlineExceededError, match="series resolution"):
        reconciler.ingest(make_record(publisher_name="Acme Publishing"), deadline=deadline)

    with sqlite_unit_of_work() as uow:
        assert uow.repositories.publishers.find_by_name("Acme Publishing") is None
        assert uow.repositories.publisher_keywords.find(SITE, "Acme") is None


def test_policy_timeout_applies_without_explicit_deadline(sqlite_unit_of_work: UowFactory) -> None:
    reconciler = _reconciler(sqlite_unit_of_work, policy=ReconcilePolicy(timeout_seconds=30))

    outcome = reconciler.ingest(make_record())

    assert isinstance(outcome, Admitted)


def test_ingest_many_reports_every_record(sqlite_unit_of_work: UowFactory) -> None:
    with sqlite_unit_of_work() as uow:
        uow.repositories.publishers.add(Publisher(name="Preexisting"))
        uow.commit()
    reconciler = _reconciler(sqlite_unit_of_work, acme_book_filters())
    records = [
        make_record("Book One"),
        make_record("Book One, Revised"),
        make_record("Book One, Revised"),
        make_record("Not Admitted", isbn=OTHER_ISBN),
        make_record("Book Without ISBN", isbn=None),
    ]

    report = reconciler.ingest_many(records)

    assert len(report.created) == 1
    assert report.updated == report.created
    assert report.unchanged == report.created
    assert report.admitted == 3
    assert [record.title for record in report.rejected] == ["Not Admitted"]
    assert len(report.failed) == 1
    failed_record, error = report.failed[0]
    assert failed_record.title == "Book Without ISBN"
    assert isinstance(error, ValidationError)
