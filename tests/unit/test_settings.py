"""
Unit tests for backend/settings.py
"""

import pytest
from pydantic import ValidationError

from backend.settings import Settings, get_settings


# Environment variables that CI might set which we need to clear for default tests
CI_ENV_VARS = [
    "ENVIRONMENT",
    "LOG_LEVEL",
    "SUPABASE_URL",
    "SUPABASE_SERVICE_ROLE_KEY",
    "SUPABASE_ANON_KEY",
    "LOCAL_CACHE_PATH",
    "WEEKLY_WORKOUT_TARGET",
    "ACHIEVEMENT_CATALOG_SOURCE",
    "SENTRY_DSN",
]


@pytest.fixture
def clean_env(monkeypatch):
    """Clear CI environment variables to test true defaults."""
    for var in CI_ENV_VARS:
        monkeypatch.delenv(var, raising=False)


@pytest.mark.unit
class TestSettingsDefaults:
    """Test that Settings applies correct defaults."""

    def test_environment_default(self, clean_env):
        settings = Settings(_env_file=None)
        assert settings.environment == "development"
        assert not settings.is_production

    def test_gamification_defaults(self, clean_env):
        settings = Settings(_env_file=None)
        assert settings.weekly_workout_target == 3
        assert settings.achievement_catalog_source == "file"
        assert settings.achievement_catalog_path is None

    def test_supabase_not_configured_by_default(self, clean_env):
        settings = Settings(_env_file=None)
        assert settings.supabase_key is None
        assert settings.supabase_configured is False


@pytest.mark.unit
class TestSettingsFromEnvironment:

    def test_reads_environment_variables(self, clean_env, monkeypatch):
        monkeypatch.setenv("ENVIRONMENT", "production")
        monkeypatch.setenv("WEEKLY_WORKOUT_TARGET", "4")
        monkeypatch.setenv("LOG_LEVEL", "debug")

        settings = Settings(_env_file=None)

        assert settings.is_production
        assert settings.weekly_workout_target == 4
        assert settings.log_level == "DEBUG"

    def test_service_role_key_preferred(self, clean_env, monkeypatch):
        monkeypatch.setenv("SUPABASE_URL", "https://example.supabase.co")
        monkeypatch.setenv("SUPABASE_ANON_KEY", "anon")
        monkeypatch.setenv("SUPABASE_SERVICE_ROLE_KEY", "service")

        settings = Settings(_env_file=None)

        assert settings.supabase_key == "service"
        assert settings.supabase_configured

    def test_anon_key_fallback(self, clean_env, monkeypatch):
        monkeypatch.setenv("SUPABASE_URL", "https://example.supabase.co")
        monkeypatch.setenv("SUPABASE_ANON_KEY", "anon")

        assert Settings(_env_file=None).supabase_key == "anon"


@pytest.mark.unit
class TestSettingsValidation:

    def test_invalid_environment(self, clean_env):
        with pytest.raises(ValidationError):
            Settings(environment="moon", _env_file=None)

    def test_environment_is_lowercased(self, clean_env):
        assert Settings(environment="TEST", _env_file=None).is_test

    def test_invalid_catalog_source(self, clean_env):
        with pytest.raises(ValidationError):
            Settings(achievement_catalog_source="http", _env_file=None)

    def test_invalid_log_level(self, clean_env):
        with pytest.raises(ValidationError):
            Settings(log_level="loud", _env_file=None)

    def test_weekly_target_must_be_positive(self, clean_env):
        with pytest.raises(ValidationError):
            Settings(weekly_workout_target=0, _env_file=None)

    def test_retry_attempts_must_be_positive(self, clean_env):
        with pytest.raises(ValidationError):
            Settings(remote_retry_attempts=0, _env_file=None)


@pytest.mark.unit
class TestGetSettings:

    def test_cached_instance(self, clean_env):
        get_settings.cache_clear()
        try:
            assert get_settings() is get_settings()
        finally:
            get_settings.cache_clear()
