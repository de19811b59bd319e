"""
Unit tests for backend/settings.py
"""

import pytest
from pydantic import ValidationError

from backend.settings import Settings, get_settings


# Environment variables that CI might set which we need to clear for default tests
CI_ENV_VARS = [
    "ENVIRONMENT",
    "SUPABASE_URL",
    "SUPABASE_SERVICE_ROLE_KEY",
    "SUPABASE_ANON_KEY",
    "API_KEYS",
    "JWT_SECRET",
    "SENTRY_DSN",
    "PROGRESSION_RETENTION_DAYS",
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
        """Default environment should be development."""
        settings = Settings(_env_file=None)
        assert settings.environment == "development"

    def test_supabase_fields_default_to_none(self, clean_env):
        """Supabase fields should default to None."""
        settings = Settings(_env_file=None)
        assert settings.supabase_url is None
        assert settings.supabase_service_role_key is None
        assert settings.supabase_anon_key is None
        assert settings.supabase_configured is False

    def test_progression_defaults(self, clean_env):
        """Progression analytics defaults."""
        settings = Settings(_env_file=None)
        assert settings.progression_table == "progression_series"
        assert settings.progression_retention_days == 365
        assert settings.trend_window_days == 30
        assert settings.prediction_horizon_days == 30
        assert settings.prediction_confidence_cap == 70
        assert settings.default_bodyweight_kg == 70
        assert settings.default_equipment_weight_kg == 3

    def test_jwt_secret_has_default(self, clean_env):
        """JWT secret should have a default value."""
        settings = Settings(_env_file=None)
        assert settings.jwt_secret == "progression-jwt-secret-change-in-production"

    def test_sentry_dsn_default_to_none(self, clean_env):
        settings = Settings(_env_file=None)
        assert settings.sentry_dsn is None


@pytest.mark.unit
class TestSettingsFromEnvironment:
    """Test that Settings reads environment variables."""

    def test_reads_retention_from_env(self, clean_env, monkeypatch):
        monkeypatch.setenv("PROGRESSION_RETENTION_DAYS", "90")
        settings = Settings(_env_file=None)
        assert settings.progression_retention_days == 90

    def test_environment_is_case_insensitive(self, clean_env, monkeypatch):
        monkeypatch.setenv("ENVIRONMENT", "PRODUCTION")
        settings = Settings(_env_file=None)
        assert settings.environment == "production"
        assert settings.is_production is True


@pytest.mark.unit
class TestSettingsValidation:
    """Test field validation."""

    def test_invalid_environment_rejected(self, clean_env):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, environment="qa")

    def test_non_positive_retention_rejected(self, clean_env):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, progression_retention_days=0)

    def test_confidence_cap_bounded(self, clean_env):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, prediction_confidence_cap=120)

    def test_non_positive_default_bodyweight_rejected(self, clean_env):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, default_bodyweight_kg=0)


@pytest.mark.unit
class TestSettingsProperties:
    """Test helper properties."""

    def test_supabase_key_prefers_service_role(self, clean_env):
        settings = Settings(
            _env_file=None,
            supabase_url="https://example.supabase.co",
            supabase_service_role_key="service",
            supabase_anon_key="anon",
        )
        assert settings.supabase_key == "service"
        assert settings.supabase_configured is True

    def test_supabase_key_falls_back_to_anon(self, clean_env):
        settings = Settings(_env_file=None, supabase_anon_key="anon")
        assert settings.supabase_key == "anon"
        assert settings.supabase_configured is False

    def test_api_keys_list(self, clean_env):
        settings = Settings(_env_file=None, api_keys=" sk_one, ,sk_two ")
        assert settings.api_keys_list == ["sk_one", "sk_two"]

    def test_api_keys_list_empty(self, clean_env):
        assert Settings(_env_file=None).api_keys_list == []

    @pytest.mark.parametrize("env,flag", [
        ("development", "is_development"),
        ("production", "is_production"),
        ("test", "is_test"),
    ])
    def test_environment_flags(self, clean_env, env, flag):
        settings = Settings(_env_file=None, environment=env)
        assert getattr(settings, flag) is True


@pytest.mark.unit
class TestGetSettings:
    """Test the cached accessor."""

    def test_returns_cached_instance(self, clean_env):
        get_settings.cache_clear()
        try:
            assert get_settings() is get_settings()
        finally:
            get_settings.cache_clear()
