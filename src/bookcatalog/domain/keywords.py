"""Resolution of free-text publisher mentions to canonical publishers.

A ``(site, keyword)`` pair maps to at most one publisher; a publisher may own
any number of keywords per site. Matching is exact after normalisation, there is
no fuzzy matching.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from bookcatalog.domain.errors import ConflictError, ValidationError
from bookcatalog.domain.model import KeywordMatch, PublisherKeyword

if TYPE_CHECKING:
    from bookcatalog.domain.model import Site
    from bookcatalog.domain.ports import CatalogRepositories

log = logging.getLogger(__name__)


def normalize_keyword(keyword: str, *, match: KeywordMatch = KeywordMatch.EXACT) -> str:
    normalized = keyword.strip()
    if match is KeywordMatch.CASEFOLD:
        normalized = normalized.casefold()
    return normalized


@dataclass(slots=True)
class KeywordResolver:
    """Keyword lookups and bindings inside the caller's unit of work."""

    repositories: CatalogRepositories
    match: KeywordMatch = KeywordMatch.EXACT

    def normalize(self, keyword: str) -> str:
        normalized = normalize_keyword(keyword, match=self.match)
        if not normalized:
            raise ValidationError("publisher keyword must not be blank")
        return normalized

    def resolve(self, site: Site, keyword: str) -> int | None:
        row = self.repositories.publisher_keywords.find(site, self.normalize(keyword))
        return None if row is None else row.publisher_id

    def bind(self, site: Site, keyword: str, publisher_id: int) -> PublisherKeyword:
        """Map ``(site, keyword)`` to ``publisher_id``.

        Binding an existing identical mapping is a no-op. Raises ``ConflictError``
        when the pair already belongs to another publisher and ``NotFoundError``
        when the publisher does not exist.
        """
        normalized = self.normalize(keyword)
        existing = self.repositories.publisher_keywords.find(site, normalized)
        if existing is not None:
            if existing.publisher_id != publisher_id:
                raise ConflictError(
                    f"keyword {normalized!r} on {site} already maps to publisher "
                    f"{existing.publisher_id}, not {publisher_id}"
                )
            return existing

        self.repositories.publishers.get(publisher_id)
        row = PublisherKeyword(publisher_id=publisher_id, site=site, keyword=normalized)
        self.repositories.publisher_keywords.add(row)
        log.debug("Bound keyword %r on %s to publisher %s", normalized, site, publisher_id)
        return row

    def keywords_for(self, publisher_id: int, site: Site) -> tuple[str, ...]:
        return self.repositories.publisher_keywords.keywords_for(publisher_id, site)
