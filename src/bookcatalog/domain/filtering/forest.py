"""In-memory filter forest built from ``book_origin_filter`` rows.

Rows are validated and classified once per load:

- a row with an ``operator_type`` (other than ``LEAF``) is a combinator and must
  not carry a regex
- a row without one (or with ``LEAF``) is a leaf and needs both ``property_name``
  and ``regex``
- roots have no parent, every other row has a parent of the same site, and
  following parents from any row ends at a root
- no row sits more than ``MAX_FILTER_DEPTH`` levels below its root

Anything else raises ``MalformedFilterError`` and the site gets no forest.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from bookcatalog.domain.errors import MalformedFilterError
from bookcatalog.domain.model import FilterOperator

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from bookcatalog.domain.model import OriginFilter, PropertyName, Site

log = logging.getLogger(__name__)

_UNARY_OPERATORS = frozenset({FilterOperator.NOT})

MAX_FILTER_DEPTH = 64


@dataclass(frozen=True, slots=True)
class LeafNode:
    id: int
    name: str
    property_name: PropertyName
    pattern: re.Pattern[str]


@dataclass(frozen=True, slots=True)
class CombinatorNode:
    id: int
    name: str
    operator: FilterOperator
    children: tuple[FilterNode, ...]


type FilterNode = LeafNode | CombinatorNode


@dataclass(frozen=True, slots=True)
class FilterForest:
    """All filter trees of one site. An empty forest has no rules at all."""

    site: Site
    roots: tuple[FilterNode, ...] = ()
    node_count: int = 0

    @property
    def is_empty(self) -> bool:
        return not self.roots


def build_forest(site: Site, rows: Iterable[OriginFilter]) -> FilterForest:
    """Validate ``rows`` and assemble the forest of ``site``."""

    by_id: dict[int, OriginFilter] = {}
    for row in rows:
        row_id = _row_id(site, row)
        if row.site != site:
            raise MalformedFilterError(
                f"filter {row_id} belongs to site {row.site!r}, not {site!r}",
                site=site,
                node_id=row_id,
            )
        if row_id in by_id:
            raise MalformedFilterError(f"duplicate filter id {row_id}", site=site, node_id=row_id)
        by_id[row_id] = row

    if not by_id:
        return FilterForest(site=site)

    children_of = _children_by_parent(site, by_id)
    _ensure_reaches_root(site, by_id)

    roots = tuple(
        _build_node(site, by_id[row_id], by_id, children_of)
        for row_id in sorted(by_id)
        if by_id[row_id].is_root
    )
    log.debug("Built filter forest for %s: %d roots, %d nodes", site, len(roots), len(by_id))
    return FilterForest(site=site, roots=roots, node_count=len(by_id))


def _row_id(site: Site, row: OriginFilter) -> int:
    if row.id is None:
        raise MalformedFilterError(f"filter {row.name!r} has no id", site=site)
    return row.id


def _children_by_parent(site: Site, by_id: Mapping[int, OriginFilter]) -> dict[int, list[int]]:
    children_of: dict[int, list[int]] = {}
    for row_id in sorted(by_id):
        row = by_id[row_id]
        if row.is_root:
            if row.parent_id is not None:
                raise MalformedFilterError(
                    f"root filter {row_id} has parent {row.parent_id}", site=site, node_id=row_id
                )
            continue
        if row.parent_id is None:
            raise MalformedFilterError(
                f"filter {row_id} is neither a root nor attached to a parent",
                site=site,
                node_id=row_id,
            )
        if row.parent_id not in by_id:
            raise MalformedFilterError(
                f"filter {row_id} references missing parent {row.parent_id}",
                site=site,
                node_id=row_id,
            )
        children_of.setdefault(row.parent_id, []).append(row_id)
    return children_of


def _ensure_reaches_root(site: Site, by_id: Mapping[int, OriginFilter]) -> None:
    """Walk parent pointers from every row; each chain must end at a root
    within ``MAX_FILTER_DEPTH`` levels.
    """

    depth: dict[int, int] = {}
    for start in by_id:
        path: list[int] = []
        on_path: set[int] = set()
        current: int | None = start
        while current is not None and current not in depth:
            if current in on_path:
                raise MalformedFilterError(
                    f"filter {current} is part of a parent cycle", site=site, node_id=current
                )
            path.append(current)
            on_path.add(current)
            current = by_id[current].parent_id
        level = -1 if current is None else depth[current]
        for row_id in reversed(path):
            level += 1
            if level >= MAX_FILTER_DEPTH:
                raise MalformedFilterError(
                    f"filter {row_id} is nested deeper than {MAX_FILTER_DEPTH} levels",
                    site=site,
                    node_id=row_id,
                )
            depth[row_id] = level


def _build_node(
    site: Site,
    row: OriginFilter,
    by_id: Mapping[int, OriginFilter],
    children_of: Mapping[int, list[int]],
) -> FilterNode:
    row_id = row.require_id()
    child_ids = children_of.get(row_id, [])
    operator = _parse_operator(site, row)

    if operator is None:
        if child_ids:
            raise MalformedFilterError(
                f"leaf filter {row_id} has children {child_ids}", site=site, node_id=row_id
            )
        return _build_leaf(site, row)

    if row.regex is not None:
        raise MalformedFilterError(
            f"combinator filter {row_id} ({operator}) also carries a regex",
            site=site,
            node_id=row_id,
        )
    if not child_ids:
        raise MalformedFilterError(
            f"combinator filter {row_id} ({operator}) has no children", site=site, node_id=row_id
        )
    if operator in _UNARY_OPERATORS and len(child_ids) != 1:
        raise MalformedFilterError(
            f"{operator} filter {row_id} needs exactly one child, has {len(child_ids)}",
            site=site,
            node_id=row_id,
        )
    children = tuple(_build_node(site, by_id[child], by_id, children_of) for child in child_ids)
    return CombinatorNode(id=row_id, name=row.name, operator=operator, children=children)


def _parse_operator(site: Site, row: OriginFilter) -> FilterOperator | None:
    raw = (row.operator_type or "").strip().upper()
    if not raw:
        return None
    try:
        operator = FilterOperator(raw)
    except ValueError as exc:
        raise MalformedFilterError(
            f"filter {row.id} has unknown operator {row.operator_type!r}",
            site=site,
            node_id=row.id,
        ) from exc
    if operator is FilterOperator.LEAF:
        return None
    return operator


def _build_leaf(site: Site, row: OriginFilter) -> LeafNode:
    row_id = row.require_id()
    if not row.property_name or row.regex is None:
        raise MalformedFilterError(
            f"leaf filter {row_id} needs both property_name and regex", site=site, node_id=row_id
        )
    try:
        pattern = re.compile(row.regex)
    except re.error as exc:
        raise MalformedFilterError(
            f"leaf filter {row_id} has an invalid regex {row.regex!r}: {exc}",
            site=site,
            node_id=row_id,
        ) from exc
    return LeafNode(id=row_id, name=row.name, property_name=row.property_name, pattern=pattern)
