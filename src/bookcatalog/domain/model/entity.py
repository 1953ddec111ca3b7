"""
Base building block: store-assigned surrogate identity.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(eq=False, kw_only=True)
class Entity:
    """Catalog row. ``id`` stays ``None`` until the store has flushed the row."""

    id: int | None = None

    @property
    def is_persisted(self) -> bool:
        return self.id is not None

    def require_id(self) -> int:
        if self.id is None:
            raise RuntimeError(f"{type(self).__name__} has not been persisted yet")
        return self.id
