"""Tests for application settings and startup security validation."""

import pytest

from config.database import DatabaseSettings
from config.settings import (
    Settings,
    StartupSecurityError,
    get_settings,
    validate_startup_security,
)


class TestSettingsDefaults:

    def test_permission_cache_ttl_defaults_to_five_minutes(self):
        assert Settings().permission_cache_ttl == 300

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("APP_PERMISSION_CACHE_TTL", "60")
        monkeypatch.setenv("APP_API_PREFIX", "/api")

        settings = Settings()

        assert settings.permission_cache_ttl == 60
        assert settings.api_prefix == "/api"

    def test_ttl_must_be_positive(self):
        from pydantic import ValidationError

        with pytest.raises(ValidationError):
            Settings(permission_cache_ttl=0)

    def test_nested_settings_read_their_own_prefix(self, monkeypatch):
        monkeypatch.setenv("REDIS_URL", "redis://cache:6379/3")
        monkeypatch.setenv("JWT_ALGORITHM", "HS512")

        settings = Settings()

        assert settings.redis.url == "redis://cache:6379/3"
        assert settings.auth.algorithm == "HS512"

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()


class TestProductionSecurity:

    def test_non_production_skips_checks(self, monkeypatch):
        monkeypatch.delenv("JWT_SECRET", raising=False)

        assert Settings(environment="development").validate_production_security() == []

    def test_production_requires_jwt_secret(self, monkeypatch):
        monkeypatch.delenv("JWT_SECRET", raising=False)

        errors = Settings(environment="production").validate_production_security()

        assert len(errors) == 1
        assert errors[0].startswith("JWT_SECRET")

    def test_production_rejects_short_secret(self, monkeypatch):
        monkeypatch.setenv("JWT_SECRET", "too-short")

        errors = Settings(environment="production").validate_production_security()

        assert errors == ["JWT_SECRET: Must be at least 32 characters"]

    def test_startup_validation_raises_without_exit(self, monkeypatch):
        monkeypatch.delenv("JWT_SECRET", raising=False)

        with pytest.raises(StartupSecurityError):
            validate_startup_security(Settings(environment="staging"), exit_on_failure=False)

    def test_startup_validation_exits(self, monkeypatch):
        monkeypatch.delenv("JWT_SECRET", raising=False)

        with pytest.raises(SystemExit):
            validate_startup_security(Settings(environment="production"))

    def test_startup_validation_passes_with_secret(self, monkeypatch):
        monkeypatch.setenv("JWT_SECRET", "x" * 64)

        assert validate_startup_security(Settings(environment="production")) is True


class TestDatabaseSettings:

    def test_sqlite_url(self, tmp_path):
        db_path = tmp_path / "school.db"
        settings = DatabaseSettings(driver="sqlite+aiosqlite", sqlite_path=db_path)

        assert settings.is_sqlite
        assert settings.async_url == f"sqlite+aiosqlite:///{db_path.absolute()}"

    def test_postgres_url(self):
        settings = DatabaseSettings(
            driver="postgresql+asyncpg",
            host="db",
            port=5432,
            name="school",
            user="svc",
            password="secret",
        )

        assert not settings.is_sqlite
        assert settings.async_url == "postgresql+asyncpg://svc:secret@db:5432/school"
