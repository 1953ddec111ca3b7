"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class FilterOperator(StrEnum):
    """Value of ``book_origin_filter.operator_type``.

    ``LEAF`` marks a regex matcher explicitly; a row without an operator is a leaf too.
    """

    AND = "AND"
    OR = "OR"
    NOT = "NOT"
    NOR = "NOR"
    NAND = "NAND"
    LEAF = "LEAF"


class KeywordMatch(StrEnum):
    """How publisher keywords are compared."""

    EXACT = "exact"
    CASEFOLD = "casefold"


class RegexMode(StrEnum):
    """How a leaf regex is applied to a candidate value."""

    SEARCH = "search"
    FULLMATCH = "fullmatch"
