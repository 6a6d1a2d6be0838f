"""Tests for settings used by both the API and migrations."""

import pytest

from umoja.settings import Settings


class TestDatabaseUrl:
    def test_plain_postgres_url_gets_async_driver(self):
        settings = Settings(database_url="postgresql://u:p@db.example.com:5432/umoja")
        assert settings.async_database_url == "postgresql+asyncpg://u:p@db.example.com:5432/umoja"
        assert settings.asyncpg_connect_args == {}

    def test_internal_railway_host_disables_ssl(self):
        settings = Settings(database_url="postgresql://u:p@postgres.railway.internal:5432/umoja")
        assert settings.asyncpg_connect_args == {"ssl": False, "timeout": 20}

    def test_sqlite_url_is_left_alone(self):
        settings = Settings(database_url="sqlite+aiosqlite:///./umoja.db")
        assert settings.async_database_url == "sqlite+aiosqlite:///./umoja.db"
        assert settings.asyncpg_connect_args == {}


@pytest.mark.parametrize(
    "raw,expected",
    [
        ('["https://a.example","http://localhost:3000"]', ["https://a.example", "http://localhost:3000"]),
        ("https://a.example, https://b.example", ["https://a.example", "https://b.example"]),
        ("", []),
    ],
)
def test_cors_origins_parsing(raw, expected):
    assert Settings(CORS_ORIGINS=raw).cors_origins == expected
