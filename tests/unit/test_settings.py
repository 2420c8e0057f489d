"""
Unit tests for backend/settings.py

Part of PT-101: Service configuration
"""

import pytest
from pydantic import ValidationError

from backend.settings import Settings, get_settings
from domain.models import CellEditMode


# Environment variables that CI might set which we need to clear for default tests
CI_ENV_VARS = [
    "ENVIRONMENT",
    "LOG_LEVEL",
    "SUPABASE_URL",
    "SUPABASE_SERVICE_ROLE_KEY",
    "SUPABASE_ANON_KEY",
    "API_KEYS",
    "CELL_EDIT_MODE",
    "SENTRY_DSN",
]


@pytest.fixture
def clean_env(monkeypatch):
    """Clear CI environment variables to test true defaults."""
    for var in CI_ENV_VARS:
        monkeypatch.delenv(var, raising=False)


@pytest.mark.unit
class TestSettingsDefaults:

    def test_environment_default(self, clean_env):
        settings = Settings(_env_file=None)
        assert settings.environment == "development"
        assert settings.is_development

    def test_supabase_fields_default_to_none(self, clean_env):
        settings = Settings(_env_file=None)
        assert settings.supabase_url is None
        assert settings.supabase_key is None

    def test_cell_edit_mode_default(self, clean_env):
        settings = Settings(_env_file=None)
        assert settings.cell_edit_mode == CellEditMode.EDIT_PLAN_ONLY

    def test_log_level_default(self, clean_env):
        assert Settings(_env_file=None).log_level == "INFO"


@pytest.mark.unit
class TestSettingsFromEnv:

    def test_cell_edit_mode_from_env(self, clean_env, monkeypatch):
        monkeypatch.setenv("CELL_EDIT_MODE", "edit_plan_and_push")
        assert Settings(_env_file=None).cell_edit_mode == CellEditMode.EDIT_PLAN_AND_PUSH

    def test_service_role_key_preferred(self, clean_env, monkeypatch):
        monkeypatch.setenv("SUPABASE_ANON_KEY", "anon")
        monkeypatch.setenv("SUPABASE_SERVICE_ROLE_KEY", "service")
        assert Settings(_env_file=None).supabase_key == "service"

    def test_anon_key_fallback(self, clean_env, monkeypatch):
        monkeypatch.setenv("SUPABASE_ANON_KEY", "anon")
        assert Settings(_env_file=None).supabase_key == "anon"

    def test_api_keys_list(self, clean_env):
        settings = Settings(api_keys=" sk_a , ,sk_b", _env_file=None)
        assert settings.api_keys_list == ["sk_a", "sk_b"]

    def test_cors_origins_list(self, clean_env):
        settings = Settings(cors_allowed_origins="https://clinic.example.com,", _env_file=None)
        assert settings.cors_origins_list == ["https://clinic.example.com"]


@pytest.mark.unit
class TestSettingsValidation:

    def test_environment_normalized(self):
        assert Settings(environment="PRODUCTION", _env_file=None).is_production

    def test_invalid_environment(self):
        with pytest.raises(ValidationError):
            Settings(environment="qa", _env_file=None)

    def test_log_level_normalized(self):
        assert Settings(log_level="debug", _env_file=None).log_level == "DEBUG"

    def test_invalid_log_level(self):
        with pytest.raises(ValidationError):
            Settings(log_level="loud", _env_file=None)

    def test_invalid_cell_edit_mode(self):
        with pytest.raises(ValidationError):
            Settings(cell_edit_mode="overwrite", _env_file=None)


@pytest.mark.unit
def test_get_settings_is_cached():
    get_settings.cache_clear()
    assert get_settings() is get_settings()
    get_settings.cache_clear()
