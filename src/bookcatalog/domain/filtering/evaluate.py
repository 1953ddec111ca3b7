"""Admission decisions over a site's filter forest.

Evaluation is pure: the same forest and candidate always yield the same
decision. Every leaf is visited once so the decision can report all matches.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from bookcatalog.domain.model import FilterOperator, RegexMode

from .forest import LeafNode

if TYPE_CHECKING:
    from collections.abc import Mapping

    from bookcatalog.domain.model import PropertyName, Site

    from .forest import CombinatorNode, FilterForest, FilterNode

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class AdmissionDecision:
    site: Site
    admitted: bool
    matched_leaves: frozenset[int] = frozenset()
    reason: str = ""


def evaluate(
    forest: FilterForest,
    candidate: Mapping[PropertyName, str],
    *,
    regex_mode: RegexMode = RegexMode.SEARCH,
    admit_empty: bool = True,
) -> AdmissionDecision:
    """Decide whether ``candidate`` passes the rules of ``forest.site``.

    Independent roots are OR-ed: matching any one rule set admits the record.
    """

    if forest.is_empty:
        return AdmissionDecision(
            site=forest.site,
            admitted=admit_empty,
            reason="no_filters" if admit_empty else "no_filters_configured",
        )

    matched: set[int] = set()
    root_results = [
        _evaluate_node(forest.site, node, candidate, regex_mode, matched) for node in forest.roots
    ]
    admitted = any(root_results)
    return AdmissionDecision(
        site=forest.site,
        admitted=admitted,
        matched_leaves=frozenset(matched),
        reason="matched" if admitted else "no_root_matched",
    )


def _evaluate_node(
    site: Site,
    node: FilterNode,
    candidate: Mapping[PropertyName, str],
    regex_mode: RegexMode,
    matched: set[int],
) -> bool:
    if isinstance(node, LeafNode):
        result = _match_leaf(site, node, candidate, regex_mode)
        if result:
            matched.add(node.id)
        return result

    results = [
        _evaluate_node(site, child, candidate, regex_mode, matched) for child in node.children
    ]
    return _combine(node, results)


def _combine(node: CombinatorNode, results: list[bool]) -> bool:
    match node.operator:
        case FilterOperator.AND:
            return all(results)
        case FilterOperator.OR:
            return any(results)
        case FilterOperator.NOT:
            return not results[0]
        case FilterOperator.NOR:
            return not any(results)
        case FilterOperator.NAND:
            return not all(results)
        case _:
            raise AssertionError(f"unhandled operator {node.operator}")


def _match_leaf(
    site: Site,
    node: LeafNode,
    candidate: Mapping[PropertyName, str],
    regex_mode: RegexMode,
) -> bool:
    value = candidate.get(node.property_name)
    if value is None:
        log.debug(
            "Filter %s on %s: property %s missing from candidate",
            node.id,
            site,
            node.property_name,
        )
        return False
    if regex_mode is RegexMode.FULLMATCH:
        result = node.pattern.fullmatch(value) is not None
    else:
        result = node.pattern.search(value) is not None
    if not result:
        log.debug(
            "Filter %s on %s: %s=%r does not match %r",
            node.id,
            site,
            node.property_name,
            value,
            node.pattern.pattern,
        )
    return result
