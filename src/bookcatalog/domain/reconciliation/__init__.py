"""Identity reconciliation of incoming book records against the catalog."""

from __future__ import annotations

from .contracts import (
    ISBN_PROPERTY,
    PUBLISHER_PROPERTY,
    TITLE_PROPERTY,
    Admitted,
    Deadline,
    IngestOutcome,
    IngestReport,
    RawBookRecord,
    Rejected,
)
from .reconciler import IdentityReconciler, ReconcilePolicy

__all__ = [
    "ISBN_PROPERTY",
    "PUBLISHER_PROPERTY",
    "TITLE_PROPERTY",
    "Admitted",
    "Deadline",
    "IdentityReconciler",
    "IngestOutcome",
    "IngestReport",
    "RawBookRecord",
    "ReconcilePolicy",
    "Rejected",
]
