"""Settings — environment prefix, defaults, URL normalisation."""

import pytest
from pydantic import ValidationError

from modelrest.config import Settings, get_settings


def test_defaults(monkeypatch):
    monkeypatch.delenv("MODELREST_DATABASE_URL", raising=False)
    monkeypatch.delenv("MODELREST_LOG_FORMAT", raising=False)
    settings = Settings(_env_file=None)
    assert settings.database_url == "sqlite+aiosqlite:///./modelrest.db"
    assert settings.database_pool_size == 20
    assert settings.default_limit is None
    assert settings.log_level == "INFO"
    assert settings.log_format == "json"


def test_reads_prefixed_env(monkeypatch):
    monkeypatch.setenv("MODELREST_DEFAULT_LIMIT", "25")
    monkeypatch.setenv("MODELREST_LOG_LEVEL", "DEBUG")
    settings = get_settings()
    assert settings.default_limit == 25
    assert settings.log_level == "DEBUG"


def test_get_settings_is_cached():
    assert get_settings() is get_settings()


def test_postgres_url_gets_async_driver():
    settings = Settings(_env_file=None, database_url="postgresql://u:p@db/app")
    assert settings.database_url == "postgresql+asyncpg://u:p@db/app"


def test_default_limit_must_be_positive():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, default_limit=0)
