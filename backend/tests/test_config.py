"""
Tests for environment driven settings.
"""
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from searchpanes.config import Settings, settings
from searchpanes.db import Database, dispose_engines, get_engine_from_dsn


def test_defaults(monkeypatch):
    """Defaults without any environment"""
    for key in ("APP_ENV", "ENVIRONMENT", "DATABASE_URL", "SQL_DIALECT", "CONCURRENT_PANE_QUERIES", "LOG_SQL"):
        monkeypatch.delenv(key, raising=False)
    s = Settings(_env_file=None)
    assert s.environment == "dev"
    assert s.sql_dialect is None
    assert s.concurrent_queries is False
    assert s.log_sql is False


def test_env_aliases(monkeypatch):
    """Environment aliases populate the settings"""
    monkeypatch.setenv("APP_ENV", "prod")
    monkeypatch.setenv("DATABASE_URL", "sqlite://")
    monkeypatch.setenv("SQL_DIALECT", "postgresql")
    monkeypatch.setenv("CONCURRENT_PANE_QUERIES", "true")
    monkeypatch.setenv("LOG_SQL", "1")
    s = Settings(_env_file=None)
    assert s.environment == "prod"
    assert s.database_url == "sqlite://"
    assert s.sql_dialect == "postgresql"
    assert s.concurrent_queries is True
    assert s.log_sql is True


def test_cors_origins_list():
    """Comma separated origins are split and trimmed"""
    s = Settings(_env_file=None, cors_origins=" http://a.test , ,http://b.test")
    assert s.cors_origins_list == ["http://a.test", "http://b.test"]


def test_dialect_setting_overrides_engine(monkeypatch):
    """SQL_DIALECT overrides the engine dialect"""
    monkeypatch.setattr(settings, "sql_dialect", "mysql")
    eng = create_engine("sqlite://", poolclass=StaticPool)
    try:
        assert Database(eng).dialect == "mysql"
        # An explicit argument still wins
        assert Database(eng, dialect="postgresql").dialect == "postgres"
    finally:
        eng.dispose()


def test_engines_are_cached_per_dsn():
    """One engine per DSN"""
    try:
        first = get_engine_from_dsn("sqlite://")
        assert get_engine_from_dsn(" sqlite:// ") is first
        db = Database.from_dsn("sqlite://")
        assert db.engine is first
        assert db.execute("SELECT 1 AS one").fetch() == {"one": 1}
    finally:
        dispose_engines()
