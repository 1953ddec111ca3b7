"""Administrative origin filter rows (``book_origin_filter``)."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from bookcatalog.domain.model.entity import Entity

if TYPE_CHECKING:
    from bookcatalog.domain.model.primitives import PropertyName, Site


@dataclass(eq=False, kw_only=True)
class OriginFilter(Entity):
    """One node of a site's filter forest, exactly as stored.

    Whether the row is a combinator or a leaf is decided when the forest is
    built, see ``bookcatalog.domain.filtering.forest``.
    """

    name: str
    site: Site
    is_root: bool = False
    operator_type: str | None = None
    property_name: PropertyName | None = None
    regex: str | None = None
    parent_id: int | None = None
