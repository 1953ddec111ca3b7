"""Translate site payloads into ``RawBookRecord`` instances."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

import pydantic

from bookcatalog.domain.errors import ValidationError
from bookcatalog.domain.reconciliation import RawBookRecord

from .schema import SiteBookPayload

if TYPE_CHECKING:
    from collections.abc import Mapping

    from bookcatalog.domain.model import PropertyName, Site

    from .schema import SiteBookPayloadInput

log = getLogger(__name__)


def _ensure_payload(payload: SiteBookPayloadInput) -> SiteBookPayload:
    if isinstance(payload, SiteBookPayload):
        return payload
    try:
        return SiteBookPayload.model_validate(payload)
    except pydantic.ValidationError as exc:
        raise ValidationError(f"invalid book payload: {exc}") from exc


def _property_value(value: object) -> str | None:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str | int | float):
        return str(value)
    return None


def _properties(site: Site, extras: Mapping[str, object]) -> dict[PropertyName, str]:
    properties: dict[PropertyName, str] = {}
    for key, value in extras.items():
        if key in SiteBookPayload.KNOWN_KEYS or value is None:
            continue
        text = _property_value(value)
        if text is None:
            log.debug("Dropping non-scalar property %r from %s payload", key, site)
            continue
        properties[key] = text
    return properties


def translate_payload(site: Site, payload: SiteBookPayloadInput) -> RawBookRecord:
    """Build the record ``site`` reported; raises ``ValidationError`` on bad input."""

    model = _ensure_payload(payload)
    return RawBookRecord(
        site=site,
        title=model.title,
        publisher_keyword=model.publisher,
        isbn=model.isbn,
        publisher_name=model.publisher_name,
        series_name=model.series_name,
        series_isbn=model.series_isbn,
        scheduled_pub_date=model.scheduled_pub_date,
        actual_pub_date=model.actual_pub_date,
        properties=_properties(site, model.extras),
    )
