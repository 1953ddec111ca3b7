"""Filter tree evaluation for per-site origin admission rules."""

from __future__ import annotations

from .cache import (
    FilterForestCache,
    FilterRowLoader,
    FilterSnapshot,
    OriginFilterEvaluator,
    build_snapshot,
)
from .evaluate import AdmissionDecision, evaluate
from .forest import (
    MAX_FILTER_DEPTH,
    CombinatorNode,
    FilterForest,
    FilterNode,
    LeafNode,
    build_forest,
)

__all__ = [
    "MAX_FILTER_DEPTH",
    "AdmissionDecision",
    "CombinatorNode",
    "FilterForest",
    "FilterForestCache",
    "FilterNode",
    "FilterRowLoader",
    "FilterSnapshot",
    "LeafNode",
    "OriginFilterEvaluator",
    "build_forest",
    "build_snapshot",
    "evaluate",
]
