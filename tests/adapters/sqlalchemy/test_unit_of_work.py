"""Lifecycle of the SQLAlchemy adapter state and catalog units of work."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from bookcatalog.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyCatalogUnitOfWork,
    StartupError,
    configured_engine,
    is_started,
    shutdown,
    startup,
)
from bookcatalog.domain.model import Publisher

if TYPE_CHECKING:
    from collections.abc import Callable

    from sqlalchemy.engine import Engine


def test_unit_of_work_requires_startup() -> None:
    shutdown()

    assert not is_started()
    with pytest.raises(StartupError):
        SqlAlchemyCatalogUnitOfWork()


def test_startup_twice_requires_force(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)
    try:
        with pytest.raises(StartupError):
            startup(engine=sqlite_engine)
        assert configured_engine() is sqlite_engine
    finally:
        shutdown()


def test_repositories_unavailable_outside_block(
    sqlite_unit_of_work: Callable[[], SqlAlchemyCatalogUnitOfWork],
) -> None:
    uow = sqlite_unit_of_work()

    with pytest.raises(StartupError):
        _ = uow.repositories


def test_leaving_without_commit_discards_changes(
    sqlite_unit_of_work: Callable[[], SqlAlchemyCatalogUnitOfWork],
) -> None:
    with sqlite_unit_of_work() as uow:
        uow.repositories.publishers.add(Publisher(name="Ephemeral"))

    with sqlite_unit_of_work() as uow:
        assert uow.repositories.publishers.find_by_name("Ephemeral") is None


def test_exception_rolls_back_and_propagates(
    sqlite_unit_of_work: Callable[[], SqlAlchemyCatalogUnitOfWork],
) -> None:
    with pytest.raises(RuntimeError, match="boom"):
        with sqlite_unit_of_work() as uow:
            uow.repositories.publishers.add(Publisher(name="Doomed"))
            raise RuntimeError("boom")

    with sqlite_unit_of_work() as uow:
        assert uow.repositories.publishers.find_by_name("Doomed") is None


def test_committed_changes_are_visible_to_later_units(
    sqlite_unit_of_work: Callable[[], SqlAlchemyCatalogUnitOfWork],
) -> None:
    with sqlite_unit_of_work() as uow:
        uow.repositories.publishers.add(Publisher(name="Durable"))
        uow.commit()

    with sqlite_unit_of_work() as uow:
        assert uow.repositories.publishers.find_by_name("Durable") is not None
