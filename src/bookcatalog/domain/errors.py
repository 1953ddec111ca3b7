"""Error taxonomy shared by the catalog services and their adapters."""

from __future__ import annotations


class CatalogError(Exception):
    """Base class for catalog failures surfaced to callers."""


class ConflictError(CatalogError):
    """A uniqueness constraint was violated, usually by a concurrent writer.

    Recoverable: re-read the catalog and decide again.
    """


class MalformedFilterError(CatalogError):
    """The origin filter forest of a site cannot be evaluated."""

    def __init__(self, message: str, *, site: str | None = None, node_id: int | None = None):
        super().__init__(message)
        self.site = site
        self.node_id = node_id


class NotFoundError(CatalogError, LookupError):
    """A referenced row does not exist."""


class ValidationError(CatalogError, ValueError):
    """Incoming data is missing a required field or carries an invalid value."""


class DeadlineExceededError(CatalogError, TimeoutError):
    """The caller-supplied deadline expired before ingestion finished."""
