"""Application orchestration entry points."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from bookcatalog.adapters.origin_payload import translate_payload
from bookcatalog.adapters.sqlalchemy import SqlAlchemyCatalogUnitOfWork, is_started, startup
from bookcatalog.config import configure_logging, get_catalog_config
from bookcatalog.domain.errors import CatalogError
from bookcatalog.domain.filtering import FilterForestCache, OriginFilterEvaluator
from bookcatalog.domain.ports import CatalogUnitOfWork
from bookcatalog.domain.reconciliation import IdentityReconciler, IngestReport, ReconcilePolicy

if TYPE_CHECKING:
    from collections.abc import Iterable

    from sqlalchemy.engine import Engine

    from bookcatalog.adapters.origin_payload import SiteBookPayloadInput
    from bookcatalog.config import CatalogConfig
    from bookcatalog.domain.filtering import FilterSnapshot
    from bookcatalog.domain.model import OriginFilter, Site
    from bookcatalog.domain.reconciliation import IngestOutcome, RawBookRecord

UnitOfWorkFactory = Callable[[], CatalogUnitOfWork]


log = logging.getLogger(__name__)


@dataclass(slots=True)
class _AppState:
    filter_cache: FilterForestCache | None = None


_STATE = _AppState()


def bootstrap(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    force: bool = False,
    load_env: bool = True,
    log_level: int = logging.INFO,
) -> CatalogConfig:
    """Load ``.env``, configure logging, start the storage adapter and read the policy."""

    if load_env:
        load_dotenv()
    configure_logging(level=log_level)
    if force or not is_started():
        startup(engine=engine, database_uri=database_uri, force=force)
        _STATE.filter_cache = None
    config = get_catalog_config()
    log.info(
        "Catalog ready: keyword_match=%s regex_mode=%s require_isbn=%s",
        config.keyword_match,
        config.regex_mode,
        config.require_isbn,
    )
    return config


def load_filter_rows(
    unit_of_work_factory: UnitOfWorkFactory = SqlAlchemyCatalogUnitOfWork,
) -> list[OriginFilter]:
    with unit_of_work_factory() as uow:
        return list(uow.repositories.origin_filters.list_all())


def build_filter_cache(
    unit_of_work_factory: UnitOfWorkFactory = SqlAlchemyCatalogUnitOfWork,
) -> FilterForestCache:
    return FilterForestCache(lambda: load_filter_rows(unit_of_work_factory))


def get_filter_cache() -> FilterForestCache:
    """Return the process-wide filter cache, creating it on first use."""

    if _STATE.filter_cache is None:
        _STATE.filter_cache = build_filter_cache()
    return _STATE.filter_cache


def reload_filters(cache: FilterForestCache | None = None) -> FilterSnapshot:
    """Re-read every site's filter rows and swap the new snapshot in."""

    return (cache or get_filter_cache()).reload()


def build_reconciler(
    *,
    config: CatalogConfig | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    filter_cache: FilterForestCache | None = None,
) -> IdentityReconciler:
    effective_config = config or get_catalog_config()
    effective_uow = unit_of_work_factory or SqlAlchemyCatalogUnitOfWork
    evaluator = OriginFilterEvaluator(
        cache=filter_cache or get_filter_cache(),
        regex_mode=effective_config.regex_mode,
        admit_unfiltered_sites=effective_config.admit_unfiltered_sites,
    )
    policy = ReconcilePolicy(
        keyword_match=effective_config.keyword_match,
        require_isbn=effective_config.require_isbn,
        timeout_seconds=effective_config.ingest_timeout_seconds,
    )
    return IdentityReconciler(
        unit_of_work_factory=effective_uow,
        evaluator=evaluator,
        policy=policy,
    )


def ingest_record(
    record: RawBookRecord,
    *,
    reconciler: IdentityReconciler | None = None,
) -> IngestOutcome:
    """Ingest one record with the configured adapters; errors propagate."""

    return (reconciler or build_reconciler()).ingest(record)


def ingest_payloads(
    site: Site,
    payloads: Iterable[SiteBookPayloadInput],
    *,
    reconciler: IdentityReconciler | None = None,
) -> IngestReport:
    """Translate and ingest raw site payloads; failures are reported, not raised."""

    effective_reconciler = reconciler or build_reconciler()
    report = IngestReport()
    records: list[RawBookRecord] = []
    for index, payload in enumerate(payloads):
        try:
            records.append(translate_payload(site, payload))
        except CatalogError as exc:
            log.warning("Skipping payload #%d from %s: %s", index, site, exc)
            report.invalid.append(exc)

    log.info("Ingesting %d payloads from %s", len(records), site)
    return effective_reconciler.ingest_many(records, report=report)
