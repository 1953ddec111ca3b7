from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from bookcatalog.config import (
    CatalogConfig,
    ConfigurationError,
    MissingConfigurationError,
    env_flag,
    get_catalog_config,
    get_database_config,
    get_storage_config,
    require_env_vars,
)
from bookcatalog.domain.model import KeywordMatch, RegexMode

if TYPE_CHECKING:
    from pathlib import Path

_CATALOG_VARS = (
    "BOOKCATALOG_KEYWORD_MATCH",
    "BOOKCATALOG_REGEX_MODE",
    "BOOKCATALOG_REQUIRE_ISBN",
    "BOOKCATALOG_ADMIT_UNFILTERED_SITES",
    "BOOKCATALOG_INGEST_TIMEOUT",
)


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    for name in _CATALOG_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_require_env_vars_raises_when_any_missing(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PRESENT_VAR", "value")
    monkeypatch.setenv("BLANK_VAR", "   ")
    monkeypatch.delenv("MISSING_VAR", raising=False)

    with pytest.raises(MissingConfigurationError) as exc:
        require_env_vars(["PRESENT_VAR", "BLANK_VAR", "MISSING_VAR"])

    assert "BLANK_VAR, MISSING_VAR" in str(exc.value)


def test_catalog_config_defaults(clean_env: pytest.MonkeyPatch) -> None:
    _ = clean_env

    assert get_catalog_config() == CatalogConfig()


def test_catalog_config_from_environment(clean_env: pytest.MonkeyPatch) -> None:
    clean_env.setenv("BOOKCATALOG_KEYWORD_MATCH", "CaseFold")
    clean_env.setenv("BOOKCATALOG_REGEX_MODE", "fullmatch")
    clean_env.setenv("BOOKCATALOG_REQUIRE_ISBN", "no")
    clean_env.setenv("BOOKCATALOG_ADMIT_UNFILTERED_SITES", "off")
    clean_env.setenv("BOOKCATALOG_INGEST_TIMEOUT", "2.5")

    config = get_catalog_config()

    assert config.keyword_match is KeywordMatch.CASEFOLD
    assert config.regex_mode is RegexMode.FULLMATCH
    assert config.require_isbn is False
    assert config.admit_unfiltered_sites is False
    assert config.ingest_timeout_seconds == 2.5


@pytest.mark.parametrize(
    ("name", "value"),
    [
        ("BOOKCATALOG_KEYWORD_MATCH", "fuzzy"),
        ("BOOKCATALOG_REGEX_MODE", "glob"),
        ("BOOKCATALOG_REQUIRE_ISBN", "maybe"),
        ("BOOKCATALOG_INGEST_TIMEOUT", "soon"),
        ("BOOKCATALOG_INGEST_TIMEOUT", "-1"),
    ],
)
def test_invalid_catalog_settings_raise(
    clean_env: pytest.MonkeyPatch, name: str, value: str
) -> None:
    clean_env.setenv(name, value)

    with pytest.raises(ConfigurationError, match=name):
        get_catalog_config()


def test_env_flag_blank_uses_default(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SOME_FLAG", " ")

    assert env_flag("SOME_FLAG", default=True) is True


def test_database_uri_prefers_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATABASE_URI", "postgresql+psycopg://catalog@db/catalog")

    assert get_database_config().uri == "postgresql+psycopg://catalog@db/catalog"


def test_database_uri_falls_back_to_sqlite_in_data_dir(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    monkeypatch.delenv("DATABASE_URI", raising=False)
    monkeypatch.setenv("BOOKCATALOG_DATA_DIR", str(tmp_path / "data"))

    storage = get_storage_config()
    uri = get_database_config().uri

    assert storage.resolve_data_dir() == (tmp_path / "data").resolve()
    assert uri == f"sqlite+pysqlite:///{(tmp_path / 'data' / 'bookcatalog.db').resolve()}"
    assert (tmp_path / "data").is_dir()
