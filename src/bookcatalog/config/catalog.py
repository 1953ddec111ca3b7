"""Ingestion policy configuration."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from bookcatalog.domain.model import KeywordMatch, RegexMode

from .env import env_flag, env_seconds, optional_env_var
from .errors import ConfigurationError


@dataclass(frozen=True, slots=True)
class CatalogConfig:
    keyword_match: KeywordMatch = KeywordMatch.EXACT
    regex_mode: RegexMode = RegexMode.SEARCH
    require_isbn: bool = True
    admit_unfiltered_sites: bool = True
    ingest_timeout_seconds: float | None = None


def _parse_choice[TEnum: StrEnum](
    name: str, enum_cls: type[TEnum], default: TEnum
) -> TEnum:
    value = optional_env_var(name)
    if value is None:
        return default
    try:
        return enum_cls(value.lower())
    except ValueError as exc:
        choices = ", ".join(member.value for member in enum_cls)
        raise ConfigurationError(f"{name} must be one of: {choices} (got {value!r})") from exc


def get_catalog_config() -> CatalogConfig:
    return CatalogConfig(
        keyword_match=_parse_choice(
            "BOOKCATALOG_KEYWORD_MATCH", KeywordMatch, KeywordMatch.EXACT
        ),
        regex_mode=_parse_choice("BOOKCATALOG_REGEX_MODE", RegexMode, RegexMode.SEARCH),
        require_isbn=env_flag("BOOKCATALOG_REQUIRE_ISBN", default=True),
        admit_unfiltered_sites=env_flag("BOOKCATALOG_ADMIT_UNFILTERED_SITES", default=True),
        ingest_timeout_seconds=env_seconds("BOOKCATALOG_INGEST_TIMEOUT"),
    )
