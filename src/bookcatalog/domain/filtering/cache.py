"""Shared, atomically swappable filter forest snapshots.

Workers read whatever snapshot is current; a reload builds a complete new
snapshot first and only then replaces the reference, so nobody observes a
half-built forest.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING

from bookcatalog.domain.errors import MalformedFilterError
from bookcatalog.domain.model import RegexMode, utcnow

from .evaluate import AdmissionDecision, evaluate
from .forest import FilterForest, build_forest

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping
    from datetime import datetime

    from bookcatalog.domain.model import OriginFilter, PropertyName, Site

log = logging.getLogger(__name__)

type FilterRowLoader = Callable[[], Iterable[OriginFilter]]


def _empty_forests() -> Mapping[Site, FilterForest]:
    return MappingProxyType({})


def _empty_errors() -> Mapping[Site, MalformedFilterError]:
    return MappingProxyType({})


@dataclass(frozen=True, slots=True)
class FilterSnapshot:
    """Immutable view of every site's forest at one point in time."""

    forests: Mapping[Site, FilterForest] = field(default_factory=_empty_forests)
    errors: Mapping[Site, MalformedFilterError] = field(default_factory=_empty_errors)
    loaded_at: datetime | None = None

    @property
    def sites(self) -> tuple[Site, ...]:
        return tuple(sorted({*self.forests, *self.errors}))

    def forest_for(self, site: Site) -> FilterForest:
        """Return the forest of ``site``; sites without rows get an empty forest.

        Raises ``MalformedFilterError`` when the site's rows failed validation.
        """
        error = self.errors.get(site)
        if error is not None:
            raise MalformedFilterError(str(error), site=site, node_id=error.node_id)
        return self.forests.get(site) or FilterForest(site=site)


def build_snapshot(rows: Iterable[OriginFilter], *, now: datetime | None = None) -> FilterSnapshot:
    """Group ``rows`` by site and build each forest; bad sites are kept as errors."""

    rows_by_site: dict[Site, list[OriginFilter]] = {}
    for row in rows:
        rows_by_site.setdefault(row.site, []).append(row)

    forests: dict[Site, FilterForest] = {}
    errors: dict[Site, MalformedFilterError] = {}
    for site, site_rows in rows_by_site.items():
        try:
            forests[site] = build_forest(site, site_rows)
        except MalformedFilterError as exc:
            log.warning("Filter forest for site %s is malformed: %s", site, exc)
            errors[site] = exc

    return FilterSnapshot(
        forests=MappingProxyType(forests),
        errors=MappingProxyType(errors),
        loaded_at=now or utcnow(),
    )


class FilterForestCache:
    """Process-wide holder of the current ``FilterSnapshot``.

    The first read loads lazily; ``reload`` is the administrative refresh path.
    """

    def __init__(self, loader: FilterRowLoader) -> None:
        self._loader = loader
        self._lock = threading.Lock()
        self._snapshot: FilterSnapshot | None = None

    def snapshot(self) -> FilterSnapshot:
        current = self._snapshot
        if current is not None:
            return current
        with self._lock:
            if self._snapshot is None:
                self._snapshot = self._load()
            return self._snapshot

    def reload(self) -> FilterSnapshot:
        with self._lock:
            fresh = self._load()
            self._snapshot = fresh
        log.info(
            "Reloaded origin filters: %d sites, %d malformed",
            len(fresh.forests),
            len(fresh.errors),
        )
        return fresh

    def replace(self, snapshot: FilterSnapshot) -> None:
        """Install an externally built snapshot (tests, admin tooling)."""
        with self._lock:
            self._snapshot = snapshot

    def _load(self) -> FilterSnapshot:
        return build_snapshot(self._loader())


@dataclass(slots=True)
class OriginFilterEvaluator:
    """Admission gate: evaluates a candidate against its site's current forest."""

    cache: FilterForestCache
    regex_mode: RegexMode = RegexMode.SEARCH
    admit_unfiltered_sites: bool = True

    def decide(self, site: Site, candidate: Mapping[PropertyName, str]) -> AdmissionDecision:
        """Return the admission decision for ``candidate``.

        Raises ``MalformedFilterError`` (never evaluates) when the site's forest is
        invalid; callers must treat that as a rejection.
        """
        forest = self.cache.snapshot().forest_for(site)
        decision = evaluate(
            forest,
            candidate,
            regex_mode=self.regex_mode,
            admit_empty=self.admit_unfiltered_sites,
        )
        log.debug(
            "Admission for %s: admitted=%s reason=%s matched=%s",
            site,
            decision.admitted,
            decision.reason,
            sorted(decision.matched_leaves),
        )
        return decision

    def admits(self, site: Site, candidate: Mapping[PropertyName, str]) -> bool:
        """Fail-closed boolean form of ``decide``."""
        try:
            return self.decide(site, candidate).admitted
        except MalformedFilterError as exc:
            log.warning("Rejecting candidate for %s: %s", site, exc)
            return False
