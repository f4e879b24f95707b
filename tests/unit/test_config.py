"""
Unit tests for settings loading and validation.
"""

import pytest
from pydantic import ValidationError

from myhome.config import Settings, get_settings


class TestDefaults:

    def test_pagination_defaults(self):
        settings = Settings()

        assert settings.pagination_default_limit == 200
        assert settings.pagination_max_limit == 1000

    def test_jwt_defaults_to_hs512(self):
        assert Settings().jwt_algorithm == "HS512"

    def test_rate_limit_notation(self):
        settings = Settings(rate_limit_requests=10, rate_limit_window=30)

        assert settings.rate_limit == "10 per 30 second"

    def test_database_dsn_strips_driver(self):
        settings = Settings(database_url="postgresql+asyncpg://u:p@db:5432/myhome")

        assert settings.database_dsn == "postgresql://u:p@db:5432/myhome"


class TestValidation:

    def test_log_level_is_upper_cased(self):
        assert Settings(log_level="debug").log_level == "DEBUG"

    def test_unknown_log_level(self):
        with pytest.raises(ValidationError):
            Settings(log_level="verbose")

    def test_unknown_environment(self):
        with pytest.raises(ValidationError):
            Settings(environment="qa")

    def test_unsupported_jwt_algorithm(self):
        with pytest.raises(ValidationError):
            Settings(jwt_algorithm="RS256")

    def test_short_jwt_secret(self):
        with pytest.raises(ValidationError):
            Settings(jwt_secret_key="too-short")

    def test_empty_cors_origins_allow_all(self):
        assert Settings(cors_origins=[]).cors_origins == ["*"]


class TestEnvironment:

    def test_env_prefix(self, monkeypatch, reset_settings):
        monkeypatch.setenv("MYHOME_PAGINATION_DEFAULT_LIMIT", "25")
        monkeypatch.setenv("MYHOME_BOOTSTRAP_ENABLED", "false")

        settings = get_settings()

        assert settings.pagination_default_limit == 25
        assert settings.bootstrap_enabled is False

    def test_settings_are_cached(self):
        assert get_settings() is get_settings()

    def test_environment_flags(self):
        assert Settings(environment="Development").is_development is True
        assert Settings(environment="production").is_production is True
