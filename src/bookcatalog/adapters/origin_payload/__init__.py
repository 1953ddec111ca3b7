"""Public interface for the site payload adapter."""

from __future__ import annotations

from .schema import SiteBookPayload, SiteBookPayloadInput
from .translator import translate_payload

__all__ = [
    "SiteBookPayload",
    "SiteBookPayloadInput",
    "translate_payload",
]
